"""Pytest plugin for reportable, data-driven browser tests.

The `pytest_stepwise` package is the skeleton of a browser end-to-end
suite built on Playwright and Allure.

Key features:
- named, nestable steps with attachments and scenario metadata,
  reported to a pluggable sink (Allure or in-memory);
- page objects composed of root-scoped components;
- JSON or YAML test data validated into immutable records and
  expanded into parametrized pytest items.

Steps report to the scenario of the running test:

    @pytest.mark.records('search.json', model=SearchRecord)
    def test_search(scenario, search_page, record):
        owner('QA team')
        run_search(search_page, record)
"""

from .steps import Scenario, StepSpan, attachment, current_scenario, issue, links, owner, step

__all__ = (
    'Scenario',
    'StepSpan',
    'attachment',
    'current_scenario',
    'issue',
    'links',
    'owner',
    'step',
)
