"""Stash keys shared by plugin hooks and fixtures."""

import pytest

from pytest_stepwise.reporting import MemorySink
from pytest_stepwise.steps import Scenario

SCENARIO_KEY = pytest.StashKey[Scenario]()
MEMORY_SINK_KEY = pytest.StashKey[MemorySink]()

NO_BASE_URL_REASON = 'no application base URL configured (--stepwise-base-url)'
