"""Step definitions for the bundled search scenario.

Each function is a reportable step composed of nested steps that call
into page objects. They report to the current scenario.
"""

from typing import TYPE_CHECKING

from pytest_stepwise.steps import attachment, step

if TYPE_CHECKING:
    from pytest_stepwise.data import ExpectedResults, SearchRecord
    from pytest_stepwise.pages import SearchPage


@step('Perform search for "{query}"')
def perform_search(page: 'SearchPage', query: str) -> None:
    """Open the search page and submit a query."""
    step('Open page', page.open)
    step('Submit query', lambda: page.search(query))


@step('Check results')
def check_results(page: 'SearchPage', expected: 'ExpectedResults') -> list[str]:
    """Assert that the results match the expectation.

    Returns:
        Result titles, attached to the report as text.
    """
    results = step('Read results', page.get_results)
    attachment('results', '\n'.join(results), 'text/plain')

    assert len(results) >= expected.min_count, (
        f'Expected at least {expected.min_count} results, got {len(results)}'
    )

    for text in expected.contains:
        with step(f'Results contain "{text}"'):
            assert any(text.lower() in result.lower() for result in results), (
                f'No result contains {text!r}'
            )

    return results


def run_search(page: 'SearchPage', record: 'SearchRecord') -> list[str]:
    """Run the complete search scenario for one data record."""
    perform_search(page, record.query)
    return check_results(page, record.expected)
