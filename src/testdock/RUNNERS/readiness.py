# Copyright 2024 The testdock Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Evaluation of readiness conditions against an observed container.

The runner owning the container supplies a ``ContainerProbe`` (log streams and
health status); this module decides whether each condition holds and walks a
condition list strictly in order.
"""
import logging
import math
import time
from datetime import timedelta
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol

from tenacity import (
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from ..errors import ContainerUnhealthyError, ReadinessError, ReadinessTimeoutError
from ..MODELS.image import ExecCommand
from ..MODELS.wait_for import (
    Duration,
    Healthcheck,
    Nothing,
    StdErrMessage,
    StdOutMessage,
    WaitFor,
)
from ..UTILS.environment import EnvLookup

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 0.1

TIMEOUT_ENV_VAR = "TESTDOCK_STARTUP_TIMEOUT"
POLL_INTERVAL_ENV_VAR = "TESTDOCK_POLL_INTERVAL"


class HealthStatus(str, Enum):
    """Health status reported by the engine."""

    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    NONE = "none"  # No health check configured


class ContainerProbe(Protocol):
    """
    Observed state of a running container (or of an exec'd command).
    """

    def stdout(self) -> str:
        """Everything written to stdout since start."""
        ...

    def stderr(self) -> str:
        """Everything written to stderr since start."""
        ...

    def health_status(self) -> HealthStatus:
        ...


def _health_status(value) -> HealthStatus:
    # Containers without a health block report an empty status
    if not value:
        return HealthStatus.NONE
    try:
        return HealthStatus(value)
    except ValueError:
        raise ReadinessError(f"Unknown health status: {value!r}") from None


def is_satisfied(
    condition: WaitFor, probe: ContainerProbe, elapsed: timedelta = timedelta(0)
) -> bool:
    """
    Check a single condition against the current state of ``probe``.

    :param condition: The condition to check.
    :param probe: Observed container state.
    :param elapsed: Time already waited, only relevant for ``Duration``.
    :return: True if the condition holds.
    :raises ContainerUnhealthyError: If a healthcheck reports ``unhealthy``.
    :raises ReadinessError: If the engine reports a health status it does not recognise.
    """
    if isinstance(condition, Nothing):
        return True
    if isinstance(condition, StdOutMessage):
        return condition.message in probe.stdout()
    if isinstance(condition, StdErrMessage):
        return condition.message in probe.stderr()
    if isinstance(condition, Duration):
        return elapsed >= condition.length
    if isinstance(condition, Healthcheck):
        status = _health_status(probe.health_status())
        if status == HealthStatus.UNHEALTHY:
            raise ContainerUnhealthyError("Container reported unhealthy status")
        return status == HealthStatus.HEALTHY
    raise TypeError(f"Unknown readiness condition: {condition!r}")


def _read_seconds(lookup: EnvLookup, name: str, default: float) -> float:
    value = lookup(name)
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        seconds = -1.0
    if seconds <= 0 or math.isinf(seconds) or math.isnan(seconds):
        logger.warning("Invalid %s=%r, using %s", name, value, default)
        return default
    return seconds


class ReadinessWaiter:
    """
    Waits until every condition in a list holds, one after the other.

    Log and health conditions are polled every ``poll_interval`` seconds for at
    most ``timeout`` seconds each. ``Duration`` conditions sleep once.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        :param timeout: Seconds allowed per polled condition.
        :param poll_interval: Seconds between two polls.
        :param sleep: Sleep function, replaceable in tests.
        """
        if timeout <= 0 or poll_interval <= 0:
            raise ValueError("timeout and poll_interval must be positive")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.sleep = sleep

    @classmethod
    def from_env(
        cls, lookup: EnvLookup, sleep: Callable[[float], None] = time.sleep
    ) -> "ReadinessWaiter":
        """
        Build a waiter configured by ``TESTDOCK_STARTUP_TIMEOUT`` and
        ``TESTDOCK_POLL_INTERVAL`` (seconds). Invalid values fall back to defaults.
        """
        return cls(
            timeout=_read_seconds(lookup, TIMEOUT_ENV_VAR, DEFAULT_TIMEOUT),
            poll_interval=_read_seconds(lookup, POLL_INTERVAL_ENV_VAR, DEFAULT_POLL_INTERVAL),
            sleep=sleep,
        )

    def _max_attempts(self) -> int:
        return int(math.ceil(self.timeout / self.poll_interval)) + 1

    def wait_for(self, condition: WaitFor, probe: ContainerProbe) -> None:
        """
        Block until ``condition`` holds.

        :raises ReadinessTimeoutError: If it does not hold within ``timeout``.
        :raises ContainerUnhealthyError: If a healthcheck reports ``unhealthy``.
        """
        if isinstance(condition, Duration):
            self.sleep(condition.length.total_seconds())
            logger.debug("Waited %s", condition.length)
            return

        retryer = Retrying(
            retry=retry_if_result(lambda ready: not ready),
            stop=stop_after_delay(self.timeout) | stop_after_attempt(self._max_attempts()),
            wait=wait_fixed(self.poll_interval),
            sleep=self.sleep,
        )
        try:
            retryer(is_satisfied, condition, probe)
        except RetryError:
            raise ReadinessTimeoutError(condition, self.timeout) from None

        logger.debug("Condition satisfied: %r", condition)

    def wait_until_ready(
        self, conditions: Iterable[WaitFor], probe: ContainerProbe
    ) -> None:
        """
        Evaluate ``conditions`` strictly in order against ``probe``.
        """
        for condition in conditions:
            self.wait_for(condition, probe)

    def wait_for_exec(
        self,
        command: ExecCommand,
        command_probe: ContainerProbe,
        container_probe: Optional[ContainerProbe] = None,
    ) -> None:
        """
        Wait for an executed command to complete, then re-check the container.

        :param command: The executed command.
        :param command_probe: Output of the command itself.
        :param container_probe: The container; defaults to ``command_probe``.
        """
        self.wait_for(command.cmd_ready_condition, command_probe)
        self.wait_until_ready(
            command.container_ready_conditions,
            container_probe if container_probe is not None else command_probe,
        )
