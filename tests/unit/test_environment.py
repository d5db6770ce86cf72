import pytest

from testdock.UTILS.environment import (
    dotenv_lookup,
    interpolate,
    mapping_lookup,
    os_environ_lookup,
)


def test_os_environ_lookup(monkeypatch):
    monkeypatch.setenv("TESTDOCK_SAMPLE", "42")
    monkeypatch.delenv("TESTDOCK_MISSING", raising=False)
    assert os_environ_lookup("TESTDOCK_SAMPLE") == "42"
    assert os_environ_lookup("TESTDOCK_MISSING") is None


def test_mapping_lookup_is_a_snapshot():
    values = {"A": "1"}
    lookup = mapping_lookup(values)
    values["A"] = "2"
    assert lookup("A") == "1"
    assert lookup("B") is None


def test_dotenv_lookup(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text('SETTLE_MS=250\nQUOTED="hello world" # comment\n')
    lookup = dotenv_lookup(str(env_file), fallback=mapping_lookup({"OTHER": "x"}))
    assert lookup("SETTLE_MS") == "250"
    assert lookup("QUOTED") == "hello world"
    assert lookup("OTHER") == "x"
    assert lookup("NOPE") is None


def test_interpolate():
    lookup = mapping_lookup({"TAG": "1.2", "EMPTY": ""})
    assert interpolate("image:${TAG}", lookup) == "image:1.2"
    assert interpolate("${MISSING:-fallback}", lookup) == "fallback"
    assert interpolate("${EMPTY:-fallback}", lookup) == "fallback"
    assert interpolate("${TAG:+set}", lookup) == "set"
    assert interpolate("${MISSING:+set}", lookup) == ""


def test_interpolate_missing_variable():
    with pytest.raises(KeyError):
        interpolate("${MISSING}", mapping_lookup({}))
