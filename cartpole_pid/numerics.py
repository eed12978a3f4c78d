import numpy as np


def clamp(value, low, high):
    """Limits value to the closed interval [low, high]."""
    return max(low, min(high, value))


def sign(value):
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def normalize_angle(angle):
    """
    Wraps an angle into (-pi, pi] by repeated 2*pi shifts.

    Winding information is lost; callers that need a continuous angle
    must track it themselves. Non-finite input is returned unchanged.
    """
    if not np.isfinite(angle):
        return angle
    if abs(angle) > 4 * np.pi:
        # Large magnitudes would take millions of shifts, or never move at all
        angle = np.fmod(angle, 2 * np.pi)
    while angle > np.pi:
        angle -= 2 * np.pi
    while angle <= -np.pi:
        angle += 2 * np.pi
    return angle
