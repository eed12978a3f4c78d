from collections import deque, namedtuple

import numpy as np

import cartpole_pid.config as config
from cartpole_pid.controller import PIDController
from cartpole_pid.dynamics import DynamicsModel

SimulationResult = namedtuple("SimulationResult", ["t", "x_states", "forces", "failed"])


class ClosedLoopSimulation:
    """
    Step driver for the pendulum and its controller.

    Every tick reads the model state, asks the controller for a force and
    applies it, in that order. Nothing is scheduled here; whoever owns the
    instance calls step() at its own cadence and one tick runs at a time.

    History keeps one (t, state, force, failed) row per tick. With
    max_history set only the newest rows are kept, like a scrolling plot.
    """

    def __init__(self, model=None, controller=None, setpoint=config.SETPOINT,
                 controller_enabled=True, verbose=False, max_history=None):
        self.model = model if model is not None else DynamicsModel()
        self.controller = controller if controller is not None else PIDController()
        self.setpoint = setpoint
        self.controller_enabled = controller_enabled
        self.verbose = verbose

        if max_history is not None and max_history < 0:
            raise ValueError(f"max_history must be non-negative, got {max_history}")
        self.max_history = max_history

        self.time = 0.0
        self._reported_failure = False
        self._history = deque(maxlen=max_history)

    def step(self, dt):
        """
        Runs one read -> compute -> apply tick.

        Args:
            dt (float): Elapsed frame time (s). Clamped to MAX_FRAME_DT here;
                the model clamps it further to its own step limit.

        Returns:
            float: The force applied to the cart.
        """
        return self._tick(dt)[2]

    def _tick(self, dt):
        dt = min(dt, config.MAX_FRAME_DT)
        self.time += dt

        state = self.model.get_state()

        force = 0.0
        if self.controller_enabled:
            force = self.controller.calculate(self.setpoint, state["pendulum_angle"], self.time)

        self.model.update(force, dt)

        if self.model.has_failed and not self._reported_failure:
            self._reported_failure = True
            if self.verbose:
                print(f"Pendulum fell past {np.degrees(config.FAILURE_ANGLE):.0f} deg at t = {self.time:.2f}s")

        row = (self.time, self.model.state_vector, force, self.model.has_failed)
        self._history.append(row)
        return row

    def run(self, duration=config.T_END, dt=config.DT):
        """
        Steps the loop for the given duration at a fixed frame time.

        dt may not exceed MAX_FRAME_DT, since step() would silently shorten
        every frame and the run would cover less than duration.

        Returns:
            SimulationResult: Every step taken by this call, whatever max_history is.
        """
        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        if dt > config.MAX_FRAME_DT:
            raise ValueError(f"dt must not exceed {config.MAX_FRAME_DT}, got {dt}")

        n_steps = int(round(duration / dt))
        if self.verbose:
            print(f"Simulating {n_steps} steps of {dt}s from state: {self.model.state_vector}")

        rows = [self._tick(dt) for _ in range(n_steps)]
        return _to_result(rows)

    def perturb(self, offset=config.PERTURBATION):
        """Kicks the pendulum by adding offset (rad) to its angle."""
        self.model.pendulum_angle += offset

    def set_controller_enabled(self, enabled):
        # A fresh start avoids carrying a stale integral into the loop
        if enabled and not self.controller_enabled:
            self.controller.reset()
        self.controller_enabled = enabled

    def reset(self, initial_angle=config.THETA0):
        self.model.reset(initial_angle)
        self.controller.reset()
        self.time = 0.0
        self._reported_failure = False
        self._history.clear()

    def history(self):
        return _to_result(self._history)


def _to_result(rows):
    rows = list(rows)
    return SimulationResult(
        t=np.array([r[0] for r in rows], dtype=float),
        x_states=np.array([r[1] for r in rows], dtype=float).reshape(-1, 4),
        forces=np.array([r[2] for r in rows], dtype=float),
        failed=np.array([r[3] for r in rows], dtype=bool),
    )
