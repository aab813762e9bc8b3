"""
Pytest configuration for unit tests.

Provides a scanner isolated from environment configuration and a
recording listener shared by most test modules.
"""

import pytest

from element_scanner import ElementScanner, ScannerSettings


class RecordingListener:
    """Listener that remembers every (path, element) it receives."""

    def __init__(self, fail_on: int = 0):
        self.calls = []
        self.fail_on = fail_on

    def __call__(self, path, element):
        self.calls.append((path, element))
        if self.fail_on and len(self.calls) == self.fail_on:
            raise ValueError(f"listener failure on call {self.fail_on}")

    @property
    def paths(self):
        return [path for path, _ in self.calls]

    @property
    def tags(self):
        return [element.tag for _, element in self.calls]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep ELEMENT_SCANNER_* variables from leaking into the tests."""
    import os

    for key in list(os.environ):
        if key.upper().startswith('ELEMENT_SCANNER_'):
            monkeypatch.delenv(key)


@pytest.fixture
def settings():
    return ScannerSettings(_env_file=None)


@pytest.fixture
def scanner(settings):
    return ElementScanner(settings=settings)


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def make_recorder():
    """Factory for additional recording listeners, e.g. make_recorder(fail_on=1)."""
    return RecordingListener
