"""
Environment lookups and ``${VAR}`` interpolation.

Code that needs environment values takes a lookup callable instead of reading
``os.environ`` itself, so configuration stays free of hidden process state.
"""
import logging
import os
import re
from typing import Callable, Mapping, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

EnvLookup = Callable[[str], Optional[str]]

# ${VAR}, ${VAR:-default} or ${VAR:+value}
_PATTERN = re.compile(r"\$\{([^}:]+)(?::(-|\+)([^}]*))?\}")


def os_environ_lookup(name: str) -> Optional[str]:
    """Reads the current process environment."""
    return os.environ.get(name)


def mapping_lookup(values: Mapping[str, Optional[str]]) -> EnvLookup:
    """Lookup over a fixed snapshot of ``values``."""
    snapshot = dict(values)
    return snapshot.get


def dotenv_lookup(path: str, fallback: Optional[EnvLookup] = None) -> EnvLookup:
    """
    Lookup over the variables of a ``.env`` file.

    :param path: Path to the .env file.
    :param fallback: Consulted for names the file does not define.
    :return: A lookup callable.
    """
    values = dotenv_values(path)
    logger.debug("Loaded %d variables from %s", len(values), path)

    def lookup(name: str) -> Optional[str]:
        value = values.get(name)
        if value is None and fallback is not None:
            return fallback(name)
        return value

    return lookup


def interpolate(template: str, lookup: EnvLookup) -> str:
    """
    Substitutes ``${VAR}``, ``${VAR:-default}`` and ``${VAR:+value}`` in ``template``.

    :param template: The string containing placeholders.
    :param lookup: Source of variable values.
    :return: The interpolated string.
    :raises KeyError: If a plain ``${VAR}`` is unset.
    """

    def replace(match: "re.Match[str]") -> str:
        var_name, modifier, alt_value = match.groups()
        value = lookup(var_name)

        if modifier == "-":
            return value if value else alt_value
        if modifier == "+":
            return alt_value if value else ""
        if value is None:
            raise KeyError(f"Variable {var_name} not found in context")
        return value

    return _PATTERN.sub(replace, template)
