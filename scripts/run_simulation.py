import sys
import os

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.append(project_root)

import argparse

import numpy as np
import matplotlib.pyplot as plt

import cartpole_pid.config as config
from cartpole_pid.controller import PIDController
from cartpole_pid.dynamics import DynamicsModel
from cartpole_pid.simulation import ClosedLoopSimulation
import cartpole_pid.visualise as visualise

def main():
    """
    Balances the pendulum from its initial tilt, kicks it halfway through the
    run and shows the angle history and an animation of the cart.
    """
    parser = argparse.ArgumentParser(description="Closed-loop cart-pendulum PID simulation")
    parser.add_argument("--theta0", type=float, default=config.THETA0, help="initial angle (rad)")
    parser.add_argument("--duration", type=float, default=2 * config.T_END, help="simulated time (s)")
    parser.add_argument("--no-control", action="store_true", help="let the pendulum fall freely")
    parser.add_argument("--save", action="store_true", help=f"save the animation to {config.ANIMATION_PATH}")
    parser.add_argument("--window", action="store_true",
                        help=f"keep only the newest {config.MAX_HISTORY} samples, like a scrolling plot")
    args = parser.parse_args()

    print("--- Closed-Loop Simulation ---")
    model = DynamicsModel(config.M, config.m, config.L, args.theta0)
    controller = PIDController(config.KP, config.KI, config.KD)
    sim = ClosedLoopSimulation(model, controller, controller_enabled=not args.no_control,
                               verbose=True, max_history=config.MAX_HISTORY if args.window else None)

    print(f"Gains: {controller.get_gains()}")
    print(f"Parameters: {model.get_parameters()}")

    sim.run(args.duration / 2, config.DT)
    print(f"Applying disturbance of {config.PERTURBATION} rad at t = {sim.time:.2f}s")
    sim.perturb(config.PERTURBATION)
    sim.run(args.duration / 2, config.DT)

    result = sim.history()
    final_state = model.get_state()
    print("\n--- RESULTS ---")
    print(f"Final angle:        {np.degrees(final_state['pendulum_angle']):.3f} deg")
    print(f"Final cart position: {final_state['cart_position']:.3f} m")
    print(f"Peak force:          {np.max(np.abs(result.forces)):.2f} N")
    print(f"Failed:              {final_state['has_failed']}")

    visualise.plot_history(result)
    save_path = config.ANIMATION_PATH if args.save else None
    if save_path:
        os.makedirs(os.path.dirname(save_path), exist_ok=True)
    visualise.animate_pendulum(result.t, result.x_states, save_path, length=model.length, show=False)
    plt.show()

if __name__ == "__main__":
    main()
