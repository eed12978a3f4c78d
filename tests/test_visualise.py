import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from cartpole_pid.simulation import ClosedLoopSimulation
import cartpole_pid.visualise as visualise

@pytest.fixture
def result():
    sim = ClosedLoopSimulation(controller_enabled=False)
    yield sim.run(1.5, 0.01)
    plt.close("all")

def test_plot_history_draws_both_panels(result):
    fig = visualise.plot_history(result)
    angle_ax, phase_ax = fig.axes[:2]

    times, angles = angle_ax.lines[0].get_data()
    assert np.allclose(times, result.t)
    assert np.allclose(angles, np.degrees(result.x_states[:, 2]))

    positions, _ = phase_ax.lines[0].get_data()
    assert np.allclose(positions, result.x_states[:, 0])

def test_animation_keeps_every_frame_of_short_runs(result):
    ani = visualise.animate_pendulum(result.t, result.x_states, show=False)
    # 150 samples fit under the frame target, so none are dropped
    assert len(list(ani.new_frame_seq())) == len(result.t)
