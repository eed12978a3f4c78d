import numpy as np
import control as ct

import cartpole_pid.config as config
from cartpole_pid.filter import LowPassFilter
from cartpole_pid.numerics import clamp, normalize_angle, sign

def get_linearized_model(params):
    """
    Linearizes the cart-pendulum dynamics around the upright equilibrium point
    (theta=0, x_dot=0, theta_dot=0). The quadratic friction and damping terms
    vanish at the operating point.
    The state-space form is x_dot = A*x + B*u.

    Returns:
        A (np.array): State matrix.
        B (np.array): Input matrix.
    """
    M, m, L = params.mass_cart, params.mass_pendulum, params.length
    g, b, c = params.gravity, params.friction, params.air_resistance

    # At theta=0 the denominator (M+m) - m*cos(theta)^2 reduces to M
    A = np.array([
        [0, 1,              0,                     0],
        [0, -b / M,         -m * g / M,            0],
        [0, 0,              0,                     1],
        [0, -b / (L * M),   (M + m) * g / (L * M), -c / M]
    ])

    B = np.array([
        [0],
        [1 / M],
        [0],
        [1 / (L * M)]
    ])

    return A, B

def angle_loop_poles(kp, ki, kd, params):
    """
    Closed-loop poles of the pendulum angle loop under an ideal PID
    (no derivative filter, no saturation), u = PID(0 - theta).

    Only the [theta, theta_dot] subsystem is used. The cart velocity feeds
    the pendulum through friction but an angle-only controller never
    regulates it, so the full plant always keeps a slow cart-drift pole
    near zero that says nothing about balancing.

    Returns:
        np.array: Complex poles; the loop is locally stable when all real parts are negative.
    """
    A, B = get_linearized_model(params)

    plant = ct.ss(A[2:, 2:], B[2:], [[1, 0]], [[0]])
    pid = ct.tf([kd, kp, ki], [1, 0])

    closed_loop = ct.feedback(pid * ct.ss2tf(plant), 1)
    return ct.poles(closed_loop)


class PIDController:
    """
    PID controller producing a bounded cart force from an angle error.

    The derivative is low-pass filtered, the integral is clamped and, while
    the output saturates, partially unwound by back-calculation. Disabling
    filter_derivative, back_calculation and use_angle_wrapping gives the plain
    textbook controller.
    """

    def __init__(self, kp=config.KP, ki=config.KI, kd=config.KD, use_angle_wrapping=True,
                 filter_derivative=True, back_calculation=True):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.use_angle_wrapping = use_angle_wrapping
        self.back_calculation = back_calculation

        alpha = config.DERIVATIVE_FILTER_ALPHA if filter_derivative else 1.0
        self.derivative_filter = LowPassFilter(alpha)

        self.integral = 0.0
        self.previous_error = 0.0
        self.previous_time = 0.0  # 0 means no sample has been taken yet

    @property
    def filtered_derivative(self):
        return self.derivative_filter.value

    @property
    def is_initialized(self):
        return self.previous_time != 0

    def calculate(self, setpoint, process_variable, current_time):
        """
        Computes the control output for one sample.

        Args:
            setpoint (float): Desired value (target)
            process_variable (float): Measured value
            current_time (float): Monotonic timestamp in seconds

        Returns:
            float: Control force, saturated to +/- OUTPUT_LIMIT
        """
        error = setpoint - process_variable
        if self.use_angle_wrapping:
            error = normalize_angle(error)

        if self.previous_time == 0:
            dt = config.DEFAULT_SAMPLE_TIME
        else:
            dt = current_time - self.previous_time
        # Irregular sampling would otherwise blow up the D term or the integral
        dt = clamp(dt, config.MIN_SAMPLE_TIME, config.MAX_SAMPLE_TIME)

        P = self.kp * error

        self.integral += error * dt
        self.integral = clamp(self.integral, -config.INTEGRAL_LIMIT, config.INTEGRAL_LIMIT)
        I = self.ki * self.integral

        raw_derivative = (error - self.previous_error) / dt
        D = self.kd * self.derivative_filter.step(raw_derivative)

        output = P + I + D
        saturated_output = clamp(output, -config.OUTPUT_LIMIT, config.OUTPUT_LIMIT)

        # Back-calculation: bleed off part of the integral that pushes further into saturation
        if self.back_calculation and output != saturated_output \
                and sign(error) == sign(self.integral):
            self.integral -= error * dt * config.BACK_CALCULATION_GAIN

        self.previous_error = error
        self.previous_time = current_time

        return saturated_output

    def reset(self):
        self.integral = 0.0
        self.previous_error = 0.0
        self.previous_time = 0.0
        self.derivative_filter.reset()

    def set_gains(self, kp, ki, kd):
        self.kp = kp
        self.ki = ki
        self.kd = kd

    def get_gains(self):
        return {"kp": self.kp, "ki": self.ki, "kd": self.kd}

    def set_angle_wrapping(self, enabled):
        self.use_angle_wrapping = enabled
