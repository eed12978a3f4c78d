import numpy as np

# Physical Parameters of the Cart-Pendulum
M = 1.0       # Mass of the cart (kg)
m = 0.1       # Mass of the pendulum bob (kg)
L = 1.0       # Length of the pendulum rod (m)
g = 9.81      # Acceleration due to gravity (m/s^2)
b = 0.1       # Viscous friction coefficient of the cart (N/(m/s))
c = 0.01      # Air resistance (angular damping) coefficient of the pendulum

MIN_MASS_CART = 0.1
MIN_MASS_PENDULUM = 0.01
QUADRATIC_FRICTION = 0.01    # Cart drag proportional to v*|v|
QUADRATIC_DAMPING = 0.001    # Pendulum drag proportional to omega*|omega|

# Constraints of the physical model
MAX_CART_POSITION = 5.0       # Track half-length (m)
MAX_CART_VELOCITY = 10.0      # (m/s)
MAX_ANGULAR_VELOCITY = 20.0   # (rad/s)
MAX_FORCE = 50.0              # Actuator limit (N)
MAX_DT = 0.02                 # Largest integration step (s)
FAILURE_ANGLE = np.pi / 3     # Pendulum counts as fallen beyond 60 degrees
VELOCITY_LIMIT_FACTOR = 0.95  # Soft velocity limit keeps 95% of the maximum
BOUNCE_RESTITUTION = -0.5     # Velocity factor on hitting the track end
SINGULAR_DENOMINATOR = 1e-3

# PID Controller Parameters
KP = 100.0
KI = 1.0
KD = 50.0
OUTPUT_LIMIT = 50.0              # Controller output saturation (N)
INTEGRAL_LIMIT = 100.0
DERIVATIVE_FILTER_ALPHA = 0.1
DEFAULT_SAMPLE_TIME = 0.016      # Assumed period for the first sample (s)
MIN_SAMPLE_TIME = 0.001
MAX_SAMPLE_TIME = 0.1
BACK_CALCULATION_GAIN = 0.5

# Simulation Parameters
DT = 0.01                 # Time step for simulation (s)
T_END = 5.0               # Total simulation time (s)
THETA0 = 0.1              # Initial pendulum angle (rad)
SETPOINT = 0.0            # Upright
MAX_FRAME_DT = 0.033      # Driver-side frame clamp (s)
PERTURBATION = 0.3        # Angle disturbance added by the perturbation hook (rad)
MAX_HISTORY = 500         # Rows kept by the live driver, like a scrolling plot window

# File Paths
ANIMATION_PATH = "./data/pendulum_pid_animation.gif"
