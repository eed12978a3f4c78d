import numpy as np
from scipy.integrate import solve_ivp

import cartpole_pid.config as config
from cartpole_pid.numerics import clamp, normalize_angle, sign


def cart_pendulum_dynamics(t, x_state, force, params):
    """
    Computes the state derivatives for the inverted pendulum on a cart.
    The angle is measured from the upright vertical, so theta = 0 is the
    unstable equilibrium the controller holds.

    The accelerations are:
    x_ddot = (F - F_f + m*L*omega^2*sin(theta) - m*g*sin(theta)*cos(theta)) / D
    theta_ddot = (F*cos(theta) - F_f*cos(theta) + (M+m)*g*sin(theta)
                  + m*L*omega^2*sin(theta)*cos(theta) - tau_d*L) / (L*D)
    with D = (M+m) - m*cos(theta)^2, cart friction F_f = b*v + 0.01*v*|v|
    and angular damping tau_d = c*omega + 0.001*omega*|omega|.

    Args:
        t (float): Current time (required by solve_ivp, unused)
        x_state (np.array): Current state vector [x, x_dot, theta, theta_dot]
        force (float): Horizontal force applied to the cart (N)
        params: Object exposing mass_cart, mass_pendulum, length, gravity,
            friction and air_resistance

    Returns:
        np.array: The state derivative vector [x_dot, x_ddot, theta_dot, theta_ddot].
    """
    M, m, L = params.mass_cart, params.mass_pendulum, params.length
    g, b, c = params.gravity, params.friction, params.air_resistance

    x, v, theta, omega = x_state

    sin_theta = np.sin(theta)
    cos_theta = np.cos(theta)

    total_mass = M + m
    denominator = total_mass - m * cos_theta**2

    # Near-singular configuration: drop the accelerations instead of blowing up
    if abs(denominator) < config.SINGULAR_DENOMINATOR:
        return np.array([v, 0.0, omega, 0.0])

    friction_force = b * v + config.QUADRATIC_FRICTION * v * abs(v)

    cart_accel = (
        force
        - friction_force
        + m * L * omega**2 * sin_theta
        - m * g * sin_theta * cos_theta
    ) / denominator

    angular_damping = c * omega + config.QUADRATIC_DAMPING * omega * abs(omega)

    angular_accel = (
        force * cos_theta
        - friction_force * cos_theta
        + total_mass * g * sin_theta
        + m * L * omega**2 * sin_theta * cos_theta
        - angular_damping * L
    ) / (L * denominator)

    return np.array([v, cart_accel, omega, angular_accel])


def mechanical_energy(x_state, params):
    """Kinetic plus potential energy of cart and bob, potential referenced to the pivot."""
    M, m, L, g = params.mass_cart, params.mass_pendulum, params.length, params.gravity
    _, v, theta, omega = x_state

    kinetic = (
        0.5 * (M + m) * v**2
        + m * L * v * omega * np.cos(theta)
        + 0.5 * m * L**2 * omega**2
    )
    potential = m * g * L * np.cos(theta)
    return kinetic + potential


def simulate_open_loop(x0, t_end, dt, force=0.0, params=None):
    """
    Integrates the raw equations of motion with solve_ivp under a constant force.
    No clamping, wrapping or failure detection is applied, which makes this a
    reference for the fixed-step integrator of DynamicsModel.
    """
    if params is None:
        params = DynamicsModel()

    t_eval = np.arange(0, t_end, dt)
    return solve_ivp(
        lambda t, x: cart_pendulum_dynamics(t, x, force, params),
        [0, t_end],
        x0,
        t_eval=t_eval,
        rtol=1e-9,
        atol=1e-9,
    )


class DynamicsModel:
    """
    Inverted pendulum on a cart, advanced one step at a time with RK4.

    The state lives in four public floats so a driver can read it, and may
    nudge pendulum_angle between steps to inject a disturbance. Inputs are
    sanitized rather than rejected: force and dt are clamped, velocities are
    soft limited, the cart bounces off the track ends and the angle is
    wrapped into (-pi, pi] after every step.
    """

    def __init__(self, mass_cart=config.M, mass_pendulum=config.m, length=config.L,
                 initial_angle=config.THETA0, friction=config.b, air_resistance=config.c):
        self.mass_cart = mass_cart
        self.mass_pendulum = mass_pendulum
        self.length = length
        self.gravity = config.g
        self.friction = friction
        self.air_resistance = air_resistance

        self.cart_position = 0.0
        self.cart_velocity = 0.0
        self.pendulum_angle = initial_angle
        self.pendulum_angular_velocity = 0.0
        self.has_failed = False

    @property
    def state_vector(self):
        return np.array([
            self.cart_position,
            self.cart_velocity,
            self.pendulum_angle,
            self.pendulum_angular_velocity,
        ], dtype=float)

    def update(self, force, dt):
        """
        Advances the state by one time step.

        Args:
            force (float): Force applied to the cart (N), clamped to +/- MAX_FORCE
            dt (float): Time step (s), clamped to at most MAX_DT
        """
        force = clamp(force, -config.MAX_FORCE, config.MAX_FORCE)
        dt = min(dt, config.MAX_DT)

        # Sticky: integration carries on after a fall, the driver decides what to do
        if abs(self.pendulum_angle) > config.FAILURE_ANGLE:
            self.has_failed = True

        x, v, theta, omega = (float(s) for s in self._rk4_step(self.state_vector, force, dt))

        if abs(v) > config.MAX_CART_VELOCITY:
            v = sign(v) * config.MAX_CART_VELOCITY * config.VELOCITY_LIMIT_FACTOR
        if abs(omega) > config.MAX_ANGULAR_VELOCITY:
            omega = sign(omega) * config.MAX_ANGULAR_VELOCITY * config.VELOCITY_LIMIT_FACTOR

        # Inelastic bounce off the track ends
        if abs(x) > config.MAX_CART_POSITION:
            x = sign(x) * config.MAX_CART_POSITION
            v *= config.BOUNCE_RESTITUTION

        self.cart_position = x
        self.cart_velocity = v
        self.pendulum_angle = normalize_angle(theta)
        self.pendulum_angular_velocity = omega

    def _rk4_step(self, x_state, force, dt):
        k1 = cart_pendulum_dynamics(0.0, x_state, force, self)
        k2 = cart_pendulum_dynamics(dt / 2, x_state + k1 * dt / 2, force, self)
        k3 = cart_pendulum_dynamics(dt / 2, x_state + k2 * dt / 2, force, self)
        k4 = cart_pendulum_dynamics(dt, x_state + k3 * dt, force, self)
        return x_state + (dt / 6) * (k1 + 2 * k2 + 2 * k3 + k4)

    def reset(self, initial_angle=config.THETA0):
        """Returns to rest at initial_angle, keeping the configured parameters."""
        self.cart_position = 0.0
        self.cart_velocity = 0.0
        self.pendulum_angle = initial_angle
        self.pendulum_angular_velocity = 0.0
        self.has_failed = False

    def get_state(self):
        return {
            "cart_position": self.cart_position,
            "cart_velocity": self.cart_velocity,
            "pendulum_angle": self.pendulum_angle,
            "pendulum_angular_velocity": self.pendulum_angular_velocity,
            "has_failed": self.has_failed,
        }

    def set_masses(self, cart_mass, pendulum_mass):
        self.mass_cart = max(config.MIN_MASS_CART, cart_mass)
        self.mass_pendulum = max(config.MIN_MASS_PENDULUM, pendulum_mass)

    def set_air_resistance(self, resistance):
        self.air_resistance = max(0.0, resistance)

    def set_friction(self, friction):
        self.friction = max(0.0, friction)

    def get_parameters(self):
        return {
            "mass_cart": self.mass_cart,
            "mass_pendulum": self.mass_pendulum,
            "air_resistance": self.air_resistance,
        }
