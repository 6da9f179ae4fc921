"""
Pytest configuration.

Puts the project root on the Python path so tests can import stream,
utils, models and app directly.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest
from stream import Stream


class CountingStream(Stream):
    """Pass-through stage that records how often it was pulled."""

    def __init__(self, upstream):
        super().__init__(upstream)
        self.pulls = 0

    def next(self):
        self.pulls += 1
        return self._upstream.next()


@pytest.fixture
def counted():
    """counted(source) wraps Stream.of(source) in a CountingStream"""
    def make(source):
        return CountingStream(Stream.of(source))
    return make


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts with empty performance metrics"""
    from utils import clear_performance_metrics
    clear_performance_metrics()
    yield
