import cartpole_pid.config as cfg

class LowPassFilter:
    def __init__(self, alpha=cfg.DERIVATIVE_FILTER_ALPHA, initial=0.0):
        self.alpha = alpha # Weight of the newest sample, 1.0 passes the input through
        self.initial = initial
        self.value = initial

    def step(self, raw):
        # First-order exponential smoothing
        self.value = self.alpha * raw + (1 - self.alpha) * self.value
        return self.value

    def reset(self):
        self.value = self.initial
        return self.value
