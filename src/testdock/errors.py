"""
Exception hierarchy for testdock.
"""


class TestdockError(Exception):
    """Base class for all testdock errors."""


class PortNotMappedError(TestdockError, LookupError):
    """
    Raised when a host port is requested for an internal port that was never
    exposed or mapped. This is a configuration mistake, not a transient failure.
    """

    def __init__(self, internal_port: int, family: str = "IPv4"):
        self.internal_port = internal_port
        self.family = family
        super().__init__(
            f"Container does not have a mapped {family} port for {internal_port}"
        )


class ReadinessError(TestdockError):
    """Base class for failures while waiting for a container to become ready."""


class ContainerUnhealthyError(ReadinessError):
    """Raised when the engine reports the container health status as unhealthy."""


class ReadinessTimeoutError(ReadinessError):
    """Raised when a readiness condition is not met before the timeout expires."""

    def __init__(self, condition, timeout: float):
        self.condition = condition
        self.timeout = timeout
        super().__init__(f"Condition {condition!r} not satisfied within {timeout}s")


class SpecError(TestdockError, ValueError):
    """Raised when a dependency file is malformed."""
