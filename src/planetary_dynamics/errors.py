class PlanetaryDynamicsError(Exception):
    """
    Base class for every error raised by planetary_dynamics
    """


class InvalidId(PlanetaryDynamicsError, KeyError):
    """
    A BodyId that is stale, already freed, or was never issued.
    Always recoverable, the caller should stop using the id.
    """

    def __init__(self, body_id, reason="expired reference"):
        self.body_id = body_id
        self.reason = reason
        super().__init__(f"{body_id}: {reason}")

    def __str__(self):
        return f"{self.body_id}: {self.reason}"


class ConvergenceFailure(PlanetaryDynamicsError, ArithmeticError):
    """
    Kepler's equation did not converge for a body within the iteration cap
    """

    def __init__(
        self, mean_anomaly, eccentricity, iterations, residual, body_id=None
    ):
        self.body_id = body_id
        self.mean_anomaly = mean_anomaly
        self.eccentricity = eccentricity
        self.iterations = iterations
        self.residual = residual
        super().__init__(
            f"Kepler solver did not converge for {body_id} after {iterations} "
            f"iterations (M={mean_anomaly:.6g} rad, e={eccentricity:.6g}, "
            f"residual={residual:.3g} rad)"
        )


class InvalidOrbitalParameters(PlanetaryDynamicsError, ValueError):
    """
    Orbital elements or host assignment that would corrupt the host forest
    """


class InvariantViolation(PlanetaryDynamicsError):
    """
    Internal structural corruption, e.g. a host cycle or a dangling host found
    while propagating. Well-formed scenarios never raise this.
    """


class ConfigurationError(PlanetaryDynamicsError, ValueError):
    """
    Invalid simulation parameters
    """
