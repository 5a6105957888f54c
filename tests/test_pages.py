"""Tests for page objects and components."""

from typing import TYPE_CHECKING

import pytest

from pytest_stepwise.errors import ElementNotFoundError
from pytest_stepwise.pages import BasePage, Component, ResultList, SearchBox, SearchPage

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType


def test_page_wide_component(mock_page: 'MockType') -> None:
    """Resolve lookups against the page without a scope."""
    component = Component(mock_page)

    assert component.root is None
    assert component.locator('button') is mock_page.locators['button']


def test_scoped_component(mock_page: 'MockType') -> None:
    """Resolve the scope once and look up relative to it."""
    component = Component(mock_page, scope='nav')
    root = mock_page.locators['nav']

    assert component.root is root
    assert component.locator() is root
    assert component.locator('a') is root.locator.return_value
    root.locator.assert_called_once_with('a')
    mock_page.locator.assert_called_once_with('nav')


def test_locator_scope(mock_page: 'MockType', mocker: 'MockerFixture') -> None:
    """Use a given locator as the root."""
    root = mocker.Mock(name='root')

    assert Component(mock_page, scope=root).root is root
    mock_page.locator.assert_not_called()


def test_component_scope(mock_page: 'MockType') -> None:
    """Nest a component inside another component."""
    form = SearchBox(mock_page, scope='header')
    results = ResultList(mock_page, scope=form)

    header = mock_page.locators['header']

    assert form.root is header
    assert results.root is header.locator.return_value
    header.locator.assert_called_once_with(ResultList.selector)


def test_default_selector(mock_page: 'MockType') -> None:
    """Use the class selector as the default scope."""
    component = SearchBox(mock_page)

    assert component.root is mock_page.locators[SearchBox.selector]


def test_rootless_locator(mock_page: 'MockType') -> None:
    """Refuse to return a root of a page-wide component."""
    with pytest.raises(ValueError, match=r'^Component has no root element$'):
        Component(mock_page).locator()


def test_require(mock_page: 'MockType') -> None:
    """Raise when a required element is absent."""
    component = Component(mock_page)
    mock_page.locator('button').count.return_value = 0
    mock_page.locator('input').count.return_value = 1

    assert component.require('input') is mock_page.locators['input']

    with pytest.raises(ElementNotFoundError, match=r"^Component: no element matches 'button'$") as info:
        component.require('button')

    assert info.value.selector == 'button'


def test_interactions(mock_page: 'MockType') -> None:
    """Delegate interactions to locators."""
    component = Component(mock_page)
    button = mock_page.locator('button')
    items = mock_page.locator('li')
    button.inner_text.return_value = 'Go'
    button.is_visible.return_value = True
    items.all_inner_texts.return_value = ['a', 'b']

    component.click('button')
    component.fill('input', 'text')

    button.click.assert_called_once_with()
    mock_page.locators['input'].fill.assert_called_once_with('text')
    assert component.text('button') == 'Go'
    assert component.texts('li') == ['a', 'b']
    assert component.is_visible('button') is True

    component.wait_visible('li', timeout=1000)
    items.first.wait_for.assert_called_once_with(state='visible', timeout=1000)


def test_driver_errors_propagate(mock_page: 'MockType') -> None:
    """Propagate driver errors unchanged."""
    error = TimeoutError('Timeout 30000ms exceeded')
    mock_page.locator('button').click.side_effect = error

    with pytest.raises(TimeoutError) as info:
        Component(mock_page).click('button')

    assert info.value is error


def test_search_box_submit(mock_page: 'MockType') -> None:
    """Fill the query input and press Enter."""
    box = SearchBox(mock_page)
    field = box.root.locator(SearchBox.input_selector)
    field.count.return_value = 1

    box.submit('pytest')

    field.fill.assert_called_once_with('pytest')
    field.press.assert_called_once_with('Enter')


def test_result_list(mock_page: 'MockType') -> None:
    """Read result titles."""
    results = ResultList(mock_page)
    items = results.root.locator(ResultList.item_selector)
    items.count.return_value = 2
    items.locator(ResultList.title_selector).all_inner_texts.return_value = [' First ', 'Second\n']

    assert results.count() == 2
    assert results.titles() == ['First', 'Second']


@pytest.mark.parametrize('base_url, path, expected', (
    pytest.param('https://example.org', '/', 'https://example.org/', id='root'),
    pytest.param('https://example.org/', '/search', 'https://example.org/search', id='slash'),
    pytest.param('https://example.org/app', 'search', 'https://example.org/app/search', id='prefix'),
))
def test_page_url(mock_page: 'MockType', base_url: str, path: str, expected: str) -> None:
    """Join the base URL and the page path."""
    page_class = type('CustomPage', (BasePage,), {'path': path})

    page = page_class(mock_page, base_url).open()

    assert page.url == expected
    mock_page.goto.assert_called_once_with(expected)


def test_search_page(mock_page: 'MockType') -> None:
    """Search and read results through components."""
    search_page = SearchPage(mock_page, 'https://example.org')
    field = search_page.search_box.root.locator(SearchBox.input_selector)
    field.count.return_value = 1
    items = search_page.results.root.locator(ResultList.item_selector)
    items.locator(ResultList.title_selector).all_inner_texts.return_value = ['Result']

    search_page.search('query')

    field.fill.assert_called_once_with('query')
    items.first.wait_for.assert_called_once_with(state='visible', timeout=None)
    assert search_page.get_results() == ['Result']
