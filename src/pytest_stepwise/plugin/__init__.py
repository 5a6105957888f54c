"""Pytest plugin wiring steps, test data and reporting together.

This module integrates pytest-stepwise with pytest by:
- registering command-line options overriding `STEPWISE_*` settings;
- resolving `StepwiseSettings` once per session as `config.stepwise_settings`;
- parametrizing the `record` fixture from data files declared with
  the `records` marker;
- attaching a page screenshot to the report of failed browser tests.

Test data files are loaded once per collected test function; a file that
can not be loaded produces a single `data-error` item failing at setup.
"""

from typing import TYPE_CHECKING
from warnings import warn

import pytest

from pytest_stepwise.data import Record, load_records
from pytest_stepwise.errors import DataError, ReportingWarning, ScenarioError

from .fixtures import app_url, record, report, scenario, search_page, stepwise_settings
from .keys import NO_BASE_URL_REASON, SCENARIO_KEY

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.python import Metafunc
    from _pytest.reports import TestReport
    from _pytest.runner import CallInfo

__all__ = (
    'app_url',
    'record',
    'report',
    'scenario',
    'search_page',
    'stepwise_settings',
)

RECORDS_MARKER = 'records'
RECORD_FIXTURE = 'record'
DATA_ERROR_ID = 'data-error'
SCREENSHOT_NAME = 'screenshot on failure'
APP_URL_FIXTURE = 'app_url'


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-stepwise.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('stepwise', 'step reporting and test data')
    group.addoption(
        '--stepwise-base-url',
        action='store',
        dest='stepwise_base_url',
        default=None,
        help='Application base URL passed to page objects (env: STEPWISE_BASE_URL).',
    )
    group.addoption(
        '--stepwise-data-dir',
        action='store',
        dest='stepwise_data_dir',
        default=None,
        help=(
            'Directory that relative test data paths are resolved against, '
            'relative to the rootdir (env: STEPWISE_DATA_DIR).'
        ),
    )
    group.addoption(
        '--stepwise-sink',
        action='store',
        dest='stepwise_sink',
        choices=('auto', 'allure', 'memory'),
        default=None,
        help=(
            'Reporting sink for scenarios. `auto` reports to Allure when '
            'allure-pytest writes results (env: STEPWISE_SINK).'
        ),
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-stepwise integration.

    Registers the `records` marker and attaches the resolved settings
    to the pytest configuration object as `config.stepwise_settings`.

    Args:
        config: Pytest configuration object.
    """
    config.addinivalue_line(
        'markers',
        f'{RECORDS_MARKER}(path, model): parametrize the `record` '
        'fixture with the test data records of a JSON or YAML file',
    )

    from pytest_stepwise.settings import StepwiseSettings  # noqa: PLC0415

    overrides = {
        'base_url': config.getoption('stepwise_base_url', default=None),
        'data_dir': config.getoption('stepwise_data_dir', default=None),
        'sink': config.getoption('stepwise_sink', default=None),
    }

    config.stepwise_settings = StepwiseSettings(**{  # type: ignore[attr-defined]
        key: value
        for key, value in overrides.items()
        if value is not None
    })


def resolve_data_dir(config: 'Config') -> 'Path':
    """Return the absolute test data directory."""
    data_dir = config.stepwise_settings.data_dir  # type: ignore[attr-defined]
    if data_dir.is_absolute():
        return data_dir

    return config.rootpath / data_dir


def pytest_generate_tests(metafunc: 'Metafunc') -> None:
    """Parametrize tests marked with `records`.

    Each record becomes a separate test item identified by the record
    name. Loading errors are deferred to the `record` fixture setup.

    Args:
        metafunc: Pytest metafunc of the collected test function.

    Raises:
        ScenarioError: If the marker is malformed or the test does not
            request the `record` fixture.
    """
    marker = metafunc.definition.get_closest_marker(RECORDS_MARKER)
    if marker is None:
        return

    if RECORD_FIXTURE not in metafunc.fixturenames:
        raise ScenarioError(
            f'{metafunc.definition.nodeid}: the {RECORDS_MARKER!r} marker '
            f'requires the {RECORD_FIXTURE!r} fixture',
        )

    if not marker.args:
        raise ScenarioError(
            f'{metafunc.definition.nodeid}: the {RECORDS_MARKER!r} marker '
            'requires a data file path',
        )

    path, *rest = marker.args
    model: type[Record] | None = marker.kwargs.get('model', rest[0] if rest else None)
    if not isinstance(model, type) or not issubclass(model, Record):
        raise ScenarioError(
            f'{metafunc.definition.nodeid}: the {RECORDS_MARKER!r} marker '
            f'requires a record model, got {model!r}',
        )

    try:
        records = load_records(path, model, base_dir=resolve_data_dir(metafunc.config))

    except DataError as error:
        params = [pytest.param(error, id=DATA_ERROR_ID)]

    else:
        params = [pytest.param(item, id=item.name) for item in records]

    metafunc.parametrize(RECORD_FIXTURE, params, indirect=True)


def pytest_collection_modifyitems(config: 'Config', items: list[pytest.Item]) -> None:
    """Skip browser tests up front when no base URL is configured.

    Skipping at collection avoids launching a browser for tests that
    would be skipped by the `app_url` fixture anyway.
    """
    if config.stepwise_settings.base_url is not None:  # type: ignore[attr-defined]
        return

    skip = pytest.mark.skip(reason=NO_BASE_URL_REASON)
    for item in items:
        if APP_URL_FIXTURE in getattr(item, 'fixturenames', ()):
            item.add_marker(skip)


@pytest.hookimpl(wrapper=True)
def pytest_runtest_makereport(item: pytest.Item,
                              call: 'CallInfo[None]') -> 'Generator[None, TestReport, TestReport]':
    """Attach a page screenshot to the scenario of a failed test.

    Screenshot errors never change the test outcome; they are emitted
    as `ReportingWarning`.
    """
    report = yield

    if report.when != 'call' or not report.failed:
        return report

    current = item.stash.get(SCENARIO_KEY, None)
    page = getattr(item, 'funcargs', {}).get('page')
    if current is None or current.closed or page is None:
        return report

    try:
        screenshot = page.screenshot(full_page=True)
    except Exception as base:  # noqa: BLE001
        warn(
            f'{item.nodeid}: can not take a screenshot: {base!r}',
            category=ReportingWarning,
            stacklevel=2,
        )
    else:
        current.attachment(SCREENSHOT_NAME, screenshot, 'image/png')

    return report
