import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import cartpole_pid.config as config
from cartpole_pid.controller import PIDController
from cartpole_pid.dynamics import DynamicsModel
from cartpole_pid.simulation import ClosedLoopSimulation

@pytest.fixture
def sim() -> ClosedLoopSimulation:
    return ClosedLoopSimulation(DynamicsModel(1.0, 0.1, 1.0, 0.1), PIDController(100.0, 1.0, 50.0))

def test_hand_driven_loop_stabilizes_small_tilt():
    """
    Read state, compute the force, apply it: 5 s at 10 ms per tick.
    """
    model = DynamicsModel(1.0, 0.1, 1.0, 0.1)
    controller = PIDController(100.0, 1.0, 50.0)
    dt = 0.01

    for i in range(500):
        state = model.get_state()
        force = controller.calculate(0.0, state["pendulum_angle"], (i + 1) * dt)
        model.update(force, dt)
        assert not model.get_state()["has_failed"]

    assert abs(model.get_state()["pendulum_angle"]) < 0.05

def test_run_stabilizes_small_tilt(sim: ClosedLoopSimulation):
    result = sim.run(5.0, 0.01)

    assert len(result.t) == 500
    assert result.x_states.shape == (500, 4)
    assert not result.failed.any()
    assert abs(result.x_states[-1, 2]) < 0.05
    assert np.all(np.abs(result.forces) <= config.OUTPUT_LIMIT)

def test_recovers_from_disturbance(sim: ClosedLoopSimulation):
    sim.run(2.0, 0.01)
    before = sim.model.pendulum_angle
    sim.perturb(0.05)
    assert sim.model.pendulum_angle == pytest.approx(before + 0.05)

    result = sim.run(3.0, 0.01)
    assert not result.failed.any()
    assert abs(result.x_states[-1, 2]) < 0.02

def test_uncontrolled_pendulum_falls(capsys):
    sim = ClosedLoopSimulation(controller_enabled=False, verbose=True)
    result = sim.run(2.0, 0.01)

    assert np.all(result.forces == 0.0)
    assert result.failed[-1]
    assert "Pendulum fell" in capsys.readouterr().out

def test_enabling_controller_resets_it(sim: ClosedLoopSimulation):
    sim.run(0.5, 0.01)
    assert sim.controller.is_initialized

    sim.set_controller_enabled(False)
    sim.run(0.1, 0.01)
    sim.set_controller_enabled(True)

    assert not sim.controller.is_initialized
    assert sim.controller.integral == 0.0

def test_frame_time_is_clamped(sim: ClosedLoopSimulation):
    sim.step(0.5)
    assert sim.time == pytest.approx(config.MAX_FRAME_DT)

def test_history_accumulates_and_reset_clears_it(sim: ClosedLoopSimulation):
    sim.run(0.1, 0.01)
    sim.run(0.05, 0.01)
    history = sim.history()
    assert len(history.t) == 15
    assert history.t[-1] == pytest.approx(0.15)

    sim.reset(0.2)
    assert sim.time == 0.0
    assert len(sim.history().t) == 0
    assert sim.history().x_states.shape == (0, 4)
    assert sim.model.get_state()["pendulum_angle"] == 0.2

@pytest.mark.parametrize("duration, dt", [(0.0, 0.01), (1.0, 0.0), (1.0, -0.01), (1.0, 0.05)])
def test_run_rejects_invalid_arguments(sim: ClosedLoopSimulation, duration, dt):
    with pytest.raises(ValueError):
        sim.run(duration, dt)

def test_run_covers_full_duration_at_largest_frame(sim: ClosedLoopSimulation):
    result = sim.run(0.99, config.MAX_FRAME_DT)
    assert len(result.t) == 30
    assert sim.time == pytest.approx(0.99)

def test_oversized_run_frame_does_not_advance_clock(sim: ClosedLoopSimulation):
    with pytest.raises(ValueError, match="must not exceed"):
        sim.run(1.0, 0.05)
    assert sim.time == 0.0
    assert len(sim.history().t) == 0

def test_history_is_unbounded_by_default(sim: ClosedLoopSimulation):
    sim.run(7.0, 0.01)
    assert sim.max_history is None
    assert len(sim.history().t) == 700

def test_bounded_history_keeps_newest_rows():
    sim = ClosedLoopSimulation(DynamicsModel(1.0, 0.1, 1.0, 0.1), PIDController(100.0, 1.0, 50.0),
                               max_history=50)
    result = sim.run(1.0, 0.01)
    # The run result is complete, only the retained history is windowed
    assert len(result.t) == 100

    history = sim.history()
    assert len(history.t) == 50
    assert history.x_states.shape == (50, 4)
    assert history.t[0] == pytest.approx(0.51)
    assert history.t[-1] == pytest.approx(1.0)
    assert np.array_equal(history.x_states, result.x_states[-50:])

    sim.step(0.01)
    assert len(sim.history().t) == 50
    assert sim.history().t[-1] == pytest.approx(1.01)

def test_zero_history_keeps_nothing_but_run_still_reports():
    sim = ClosedLoopSimulation(max_history=0)
    result = sim.run(0.1, 0.01)
    assert len(result.t) == 10
    assert len(sim.history().t) == 0
    assert sim.history().x_states.shape == (0, 4)

def test_negative_history_limit_is_rejected():
    with pytest.raises(ValueError):
        ClosedLoopSimulation(max_history=-1)
