"""Tests configurations and fixtures."""

from typing import TYPE_CHECKING

import pytest

from pytest_stepwise.reporting import MemorySink
from pytest_stepwise.steps import Scenario

if TYPE_CHECKING:
    from collections.abc import Iterator

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType


@pytest.fixture
def sink() -> MemorySink:
    """Provide an empty in-memory reporting sink."""
    return MemorySink('test')


@pytest.fixture
def current(sink: MemorySink) -> 'Iterator[Scenario]':
    """Provide a current scenario reporting to the memory sink.

    The scenario is entered for the duration of the test, so the
    module-level step API reports to it.
    """
    with Scenario(sink, name='test') as scenario:
        yield scenario


@pytest.fixture
def mock_page(mocker: 'MockerFixture') -> 'MockType':
    """Provide a mocked Playwright page.

    Locators returned by the page are mocks as well; each selector
    gets its own locator mock, memoized by selector.
    """
    page = mocker.Mock(name='page')
    locators: dict[str, MockType] = {}

    def locator(selector: str) -> 'MockType':
        if selector not in locators:
            locators[selector] = mocker.Mock(name=f'locator({selector})')
        return locators[selector]

    page.locator.side_effect = locator
    page.locators = locators

    return page
