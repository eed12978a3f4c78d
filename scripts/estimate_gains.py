import sys
import os

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.append(project_root)

import numpy as np
import matplotlib.pyplot as plt

import cartpole_pid.config as config
from cartpole_pid.controller import PIDController, angle_loop_poles, get_linearized_model
from cartpole_pid.dynamics import DynamicsModel
from cartpole_pid.simulation import ClosedLoopSimulation

def settle_time(t, angles, tolerance=0.05):
    """Time after which the angle stays within tolerance, or inf if it never does"""
    outside = np.abs(angles) > tolerance
    if not outside.any():
        return 0.0
    last = np.nonzero(outside)[0][-1]
    return t[last + 1] if last + 1 < len(t) else np.inf

if __name__ == "__main__":

    model = DynamicsModel()
    A, B = get_linearized_model(model)
    try:
        open_loop_poles = np.linalg.eigvals(A)
    except np.linalg.LinAlgError:
        print("Error: could not compute the open-loop eigenvalues.")
        sys.exit(1)

    print("--- Linearized Model About Upright ---")
    print(f"A =\n{A}\nB =\n{B.flatten()}")
    print(f"Open-loop poles: {np.round(open_loop_poles, 3)}")
    print(f"Minimum stabilizing Kp (ideal PID): {(model.mass_cart + model.mass_pendulum) * model.gravity:.2f}")

    kp_values = [5.0, 20.0, 50.0, 100.0, 200.0]
    kd_values = [5.0, 20.0, 50.0]
    settle = np.full((len(kd_values), len(kp_values)), np.nan)

    print("\n--- Gain Sweep (Ki = 1, linear column from the [theta, theta_dot] loop) ---")
    for i, kd in enumerate(kd_values):
        for j, kp in enumerate(kp_values):
            poles = angle_loop_poles(kp, config.KI, kd, model)
            linear_stable = np.all(np.real(poles) < 0)

            sim = ClosedLoopSimulation(DynamicsModel(), PIDController(kp, config.KI, kd))
            result = sim.run(config.T_END, config.DT)
            t_s = settle_time(result.t, result.x_states[:, 2])
            settle[i, j] = t_s

            print(f"Kp={kp:6.1f} Kd={kd:5.1f}  linear stable: {str(linear_stable):5s}  "
                  f"max Re(p)={np.max(np.real(poles)):8.3f}  failed: {str(result.failed.any()):5s}  "
                  f"settle: {t_s:.2f}s")

    fig, ax = plt.subplots(figsize=(6, 4), constrained_layout=True)
    image = ax.imshow(np.where(np.isinf(settle), np.nan, settle), cmap='viridis', origin='lower')
    ax.set_xticks(range(len(kp_values)), [f"{kp:g}" for kp in kp_values])
    ax.set_yticks(range(len(kd_values)), [f"{kd:g}" for kd in kd_values])
    ax.set_xlabel(r'$K_p$')
    ax.set_ylabel(r'$K_d$')
    ax.set_title('Settling Time to 0.05 rad (blank: never)')
    fig.colorbar(image, ax=ax, label='Time (s)')
    plt.show()
