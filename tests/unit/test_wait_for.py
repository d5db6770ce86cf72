"""
Unit tests for the readiness condition vocabulary.
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from testdock.MODELS.wait_for import (
    MAX_MILLIS,
    Duration,
    Healthcheck,
    Nothing,
    StdErrMessage,
    StdOutMessage,
    millis,
    millis_in_env_var,
    seconds,
    wait_for,
    wait_for_list_adapter,
)
from testdock.UTILS.environment import mapping_lookup


class TestConstructors:
    """Tests for the derived constructors."""

    def test_seconds(self):
        assert seconds(2).length == timedelta(milliseconds=2000)

    def test_millis(self):
        assert millis(250).length == timedelta(milliseconds=250)

    def test_zero_duration(self):
        assert seconds(0) == Duration(length=timedelta(0))

    def test_messages(self):
        assert wait_for.message_on_stdout("ready") == StdOutMessage(message="ready")
        assert wait_for.message_on_stderr("ready") == StdErrMessage(message="ready")

    def test_stdout_and_stderr_are_distinct(self):
        assert wait_for.message_on_stdout("x") != wait_for.message_on_stderr("x")

    def test_nothing_and_healthcheck(self):
        assert wait_for.nothing() == Nothing()
        assert wait_for.healthcheck() == Healthcheck()

    def test_conditions_are_immutable(self):
        condition = wait_for.message_on_stdout("ready")
        with pytest.raises(ValidationError):
            condition.message = "other"


class TestMillisInEnvVar:
    """Tests for reading a duration from the environment."""

    def test_valid_value(self):
        lookup = mapping_lookup({"X": "250"})
        assert millis_in_env_var("X", lookup) == Duration(length=timedelta(milliseconds=250))

    def test_unset_value(self):
        assert millis_in_env_var("X", mapping_lookup({})) == Nothing()

    @pytest.mark.parametrize("value", ["", "abc", "-5", "1.5", " 250"])
    def test_unparsable_value(self, value):
        assert millis_in_env_var("X", mapping_lookup({"X": value})) == Nothing()

    @pytest.mark.parametrize("value", [str(2**64), str(2**64 - 1), str(10**17), "9" * 5000])
    def test_out_of_range_is_ignored(self, value):
        assert millis_in_env_var("X", mapping_lookup({"X": value})) == Nothing()

    def test_largest_value(self):
        lookup = mapping_lookup({"X": str(MAX_MILLIS)})
        assert millis_in_env_var("X", lookup) == Duration(length=timedelta(milliseconds=MAX_MILLIS))

    def test_leading_zeros(self):
        assert millis_in_env_var("X", mapping_lookup({"X": "0250"})) == millis(250)
        assert millis_in_env_var("X", mapping_lookup({"X": "+000"})) == millis(0)

    def test_reads_only_named_variable(self):
        seen = []

        def lookup(name):
            seen.append(name)
            return "10"

        millis_in_env_var("SETTLE_MS", lookup)
        assert seen == ["SETTLE_MS"]


class TestValidation:
    """Tests for building conditions from plain data."""

    def test_discriminated_list(self):
        conditions = wait_for_list_adapter.validate_python([
            {"kind": "stdout", "message": "ready"},
            {"kind": "stderr", "message": "listening"},
            {"kind": "duration", "length": 2},
            {"kind": "healthcheck"},
            {"kind": "nothing"},
        ])
        assert conditions == [
            StdOutMessage(message="ready"),
            StdErrMessage(message="listening"),
            seconds(2),
            Healthcheck(),
            Nothing(),
        ]

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            wait_for_list_adapter.validate_python([{"kind": "port", "port": 80}])
