import os

import pytest

from smart_calc_repl import REPL


@pytest.fixture
def repl():
    return REPL()


@pytest.fixture
def lines():
    """Builds a read_line callable that replays the given lines, then raises EOFError."""
    def make(*inputs):
        it = iter(inputs)

        def read_line():
            try:
                item = next(it)
            except StopIteration:
                raise EOFError
            if isinstance(item, BaseException):
                raise item
            return item
        return read_line
    return make


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Runs from an empty directory with no SMART_CALC_* variables set. Variables
    loaded from .env files during the test are dropped afterwards.
    """
    for key in list(os.environ):
        if key.startswith("SMART_CALC_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    for key in list(os.environ):
        if key.startswith("SMART_CALC_"):
            del os.environ[key]


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
