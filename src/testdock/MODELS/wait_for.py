"""
Readiness conditions a started container must satisfy before it is usable.

Conditions are evaluated strictly in the order they are listed: each one has to
be met before the next is looked at. A typical list starts with a log message
condition and ends with a short ``Duration`` as a settle buffer.
"""
import logging
import re
from datetime import timedelta
from typing import Annotated, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

logger = logging.getLogger(__name__)

# Largest millisecond count a timedelta can hold.
MAX_MILLIS = timedelta.max // timedelta(milliseconds=1)

_UNSIGNED = re.compile(r"\+?[0-9]+")


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True)


class Nothing(_Condition):
    """An empty condition. Satisfied immediately."""

    kind: Literal["nothing"] = "nothing"


class StdOutMessage(_Condition):
    """Wait for a message on the stdout stream of the container's logs."""

    kind: Literal["stdout"] = "stdout"
    message: str


class StdErrMessage(_Condition):
    """Wait for a message on the stderr stream of the container's logs."""

    kind: Literal["stderr"] = "stderr"
    message: str


class Duration(_Condition):
    """Wait for a fixed amount of time."""

    kind: Literal["duration"] = "duration"
    length: timedelta


class Healthcheck(_Condition):
    """Wait for the container's health status to become ``healthy``."""

    kind: Literal["healthcheck"] = "healthcheck"


WaitFor = Annotated[
    Union[Nothing, StdOutMessage, StdErrMessage, Duration, Healthcheck],
    Field(discriminator="kind"),
]

# Validates readiness lists coming from plain data such as YAML files.
wait_for_list_adapter = TypeAdapter(List[WaitFor])


def nothing() -> Nothing:
    return Nothing()


def healthcheck() -> Healthcheck:
    return Healthcheck()


def message_on_stdout(message: str) -> StdOutMessage:
    return StdOutMessage(message=message)


def message_on_stderr(message: str) -> StdErrMessage:
    return StdErrMessage(message=message)


def seconds(length: int) -> Duration:
    return Duration(length=timedelta(seconds=length))


def millis(length: int) -> Duration:
    return Duration(length=timedelta(milliseconds=length))


def millis_in_env_var(
    name: str, lookup: Callable[[str], Optional[str]]
) -> Union[Duration, Nothing]:
    """
    Build a ``Duration`` from an environment value holding milliseconds.

    The value is read through ``lookup`` (see ``testdock.UTILS.environment``).
    A missing or unparsable value yields ``Nothing`` instead of an error.

    :param name: Name of the environment variable.
    :param lookup: Callable returning the value for a name, or None if unset.
    :return: ``Duration`` on success, ``Nothing`` otherwise.
    """
    value = lookup(name)
    if value is None:
        return Nothing()

    if not _UNSIGNED.fullmatch(value):
        logger.warning("Ignoring %s=%r: not a millisecond count", name, value)
        return Nothing()

    digits = value.lstrip("+").lstrip("0") or "0"
    # Checked on length first so huge strings never reach int()
    if len(digits) > len(str(MAX_MILLIS)) or int(digits) > MAX_MILLIS:
        logger.warning("Ignoring %s=%r: out of range", name, value)
        return Nothing()

    return millis(int(digits))


class WaitForFactory:
    """
    Namespace bundling the condition constructors, e.g. ``wait_for.seconds(2)``.
    """

    nothing = staticmethod(nothing)
    healthcheck = staticmethod(healthcheck)
    message_on_stdout = staticmethod(message_on_stdout)
    message_on_stderr = staticmethod(message_on_stderr)
    seconds = staticmethod(seconds)
    millis = staticmethod(millis)
    millis_in_env_var = staticmethod(millis_in_env_var)


wait_for = WaitForFactory()
