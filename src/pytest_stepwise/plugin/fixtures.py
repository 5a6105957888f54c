"""Pytest fixtures exposing scenarios, sinks, settings and page objects."""

from typing import TYPE_CHECKING
from warnings import warn

import pytest

from pytest_stepwise.errors import DataError, ReportingWarning, ScenarioError
from pytest_stepwise.reporting import FanoutSink, MemorySink
from pytest_stepwise.steps import Scenario

from .keys import MEMORY_SINK_KEY, NO_BASE_URL_REASON, SCENARIO_KEY

if TYPE_CHECKING:
    from collections.abc import Iterator

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.fixtures import SubRequest
    from playwright.sync_api import Page

if TYPE_CHECKING:
    from pytest_stepwise.data import Record
    from pytest_stepwise.pages import SearchPage
    from pytest_stepwise.reporting import ReportingSink, ReportRecord
    from pytest_stepwise.settings import StepwiseSettings


def allure_enabled(config: 'Config') -> bool:
    """Check whether allure-pytest is installed and writing results."""
    if not config.pluginmanager.hasplugin('allure_pytest'):
        return False

    return bool(getattr(config.option, 'allure_report_dir', None))


def make_sink(config: 'Config', name: str) -> tuple['ReportingSink', MemorySink]:
    """Build the reporting sink configured for a scenario.

    A memory sink is always present, so the report tree can be inspected
    through the `report` fixture; Allure receives the same events when
    enabled.

    Args:
        config: Pytest configuration.
        name: Scenario name.

    Returns:
        Tuple of the sink to report to and its memory part.
    """
    settings: StepwiseSettings = config.stepwise_settings  # type: ignore[attr-defined]
    memory = MemorySink(name)

    if settings.sink == 'memory':
        return memory, memory

    if not allure_enabled(config):
        if settings.sink == 'allure':
            warn(
                'Allure sink requested but allure-pytest is not writing results '
                '(missing --alluredir); reporting to memory only',
                category=ReportingWarning,
                stacklevel=2,
            )
        return memory, memory

    from pytest_stepwise.reporting.allure import AllureSink  # noqa: PLC0415

    return FanoutSink((memory, AllureSink())), memory


@pytest.fixture(scope='session')
def stepwise_settings(pytestconfig: 'Config') -> 'StepwiseSettings':
    """Resolved plugin settings."""
    return pytestconfig.stepwise_settings  # type: ignore[attr-defined]


@pytest.fixture
def scenario(request: 'SubRequest') -> 'Iterator[Scenario]':
    """Provide the scenario of the current test.

    The scenario is also made current, so module-level `step`,
    `attachment`, `links`, `owner` and `issue` calls report to it.
    Steps left open at teardown are marked aborted.
    """
    sink, memory = make_sink(request.config, request.node.nodeid)

    with Scenario(sink, name=request.node.nodeid) as current:
        request.node.stash[SCENARIO_KEY] = current
        request.node.stash[MEMORY_SINK_KEY] = memory
        yield current


@pytest.fixture
def report(request: 'SubRequest', scenario: Scenario) -> 'ReportRecord':
    """Report tree recorded for the current test."""
    return request.node.stash[MEMORY_SINK_KEY].report


@pytest.fixture
def record(request: 'SubRequest') -> 'Record':
    """Test data record of the current test.

    Parametrized by the `records` marker. A data file that failed to
    load is raised here, so pytest reports a setup error.
    """
    param = getattr(request, 'param', None)
    if param is None:
        raise ScenarioError(
            f'{request.node.nodeid}: the `record` fixture requires '
            '`@pytest.mark.records(path, model=...)`',
        )

    if isinstance(param, DataError):
        raise param

    return param


@pytest.fixture
def app_url(stepwise_settings: 'StepwiseSettings') -> str:
    """Application base URL; skips the test when none is configured."""
    if (url := stepwise_settings.base_url_string) is None:
        pytest.skip(NO_BASE_URL_REASON)

    return url


@pytest.fixture
def search_page(app_url: str, page: 'Page') -> 'SearchPage':
    """Search page object bound to the Playwright `page` fixture."""
    from pytest_stepwise.pages import SearchPage  # noqa: PLC0415

    return SearchPage(page, app_url)
