import astropy.units as u


class SimulationClock:
    """
    Tick counter and elapsed simulated time
    """

    def __init__(self, dt=1 * u.d) -> None:
        self.dt = dt
        self.tick = 0
        self.elapsed = 0 * u.s

    def __repr__(self):
        return f"{type(self).__name__}(tick={self.tick}, elapsed={self.elapsed.to(u.d):.4g})"

    def advance(self, dt=None):
        """
        Step the clock forward by dt (or the default step) and return the
        step that was taken
        """
        dt = self.dt if dt is None else dt
        self.tick += 1
        self.elapsed = self.elapsed + dt.to(u.s)
        return dt
