from __future__ import annotations


class FixedStep:
    """Fixed-timestep accumulator.

    Wall-clock time goes into ``advance``; it answers how many simulation
    ticks are due. The leftover fraction of a tick is ``alpha``.
    """

    def __init__(self, step: float = 1.0 / 60.0, max_lag: float = 0.25) -> None:
        if step <= 0.0:
            raise ValueError("step must be positive")
        self.step = float(step)
        self.max_lag = max(float(max_lag), self.step)
        self.lag = 0.0
        self.ticks = 0

    def advance(self, elapsed: float) -> int:
        # Clamp so a stall (window drag, breakpoint) doesn't trigger a burst of ticks.
        self.lag = min(self.lag + max(float(elapsed), 0.0), self.max_lag)
        n = int(self.lag // self.step)
        self.lag -= n * self.step
        self.ticks += n
        return n

    @property
    def alpha(self) -> float:
        return min(self.lag / self.step, 1.0)
