"""Reusable UI components.

A component wraps a recurring UI element of a Playwright page. It may be
scoped to a root element: the scope is resolved once at construction
and every lookup of the component is made relative to it. Driver errors
(timeouts, detached elements) propagate unchanged.
"""

from typing import TYPE_CHECKING, ClassVar

from pytest_stepwise.errors import ElementNotFoundError

if TYPE_CHECKING:
    from playwright.sync_api import Locator, Page

type Scope = 'str | Locator | Component | None'


class Component:
    """Base class for page components.

    Attributes:
        selector: Default root selector used when no scope is given.
            `None` makes the component page-wide.
    """

    selector: ClassVar[str | None] = None

    def __init__(self, page: 'Page', scope: Scope = None) -> None:
        """Initialize a component.

        Args:
            page: Playwright page.
            scope: Root of the component: a selector, a locator, or a
                parent component. Defaults to the class `selector`.
        """
        self.page = page
        self.root = self.resolve_scope(scope if scope is not None else self.selector)

    def resolve_scope(self, scope: Scope) -> 'Locator | None':
        """Resolve a scope into a root locator.

        Args:
            scope: Selector, locator, parent component or `None`.

        Returns:
            Root locator, or `None` for page-wide components.
        """
        if scope is None:
            return None

        if isinstance(scope, Component):
            if scope.root is None:
                return self.resolve_scope(self.selector)
            if self.selector is None:
                return scope.root
            return scope.root.locator(self.selector)

        if isinstance(scope, str):
            return self.page.locator(scope)

        return scope

    def locator(self, selector: str | None = None) -> 'Locator':
        """Return a locator relative to the component root.

        Args:
            selector: Relative selector; the root itself when omitted.

        Raises:
            ValueError: If neither a selector nor a root is available.
        """
        if selector is None:
            if self.root is None:
                raise ValueError(f'{type(self).__name__} has no root element')
            return self.root

        if self.root is None:
            return self.page.locator(selector)

        return self.root.locator(selector)

    def require(self, selector: str | None = None) -> 'Locator':
        """Return a locator that matches at least one element.

        Raises:
            ElementNotFoundError: If nothing matches.
        """
        locator = self.locator(selector)
        if locator.count() == 0:
            description = selector or self.selector or '<root>'
            raise ElementNotFoundError(
                f'{type(self).__name__}: no element matches {description!r}',
                selector=description,
            )

        return locator

    def click(self, selector: str | None = None) -> None:
        self.locator(selector).click()

    def fill(self, selector: str | None, value: str) -> None:
        self.locator(selector).fill(value)

    def text(self, selector: str | None = None) -> str:
        return self.locator(selector).inner_text()

    def texts(self, selector: str | None = None) -> list[str]:
        return self.locator(selector).all_inner_texts()

    def is_visible(self, selector: str | None = None) -> bool:
        return self.locator(selector).is_visible()

    def wait_visible(self, selector: str | None = None, *,
                     timeout: float | None = None) -> None:
        """Wait until the first matching element is visible."""
        self.locator(selector).first.wait_for(state='visible', timeout=timeout)


class SearchBox(Component):
    """Search form with a query input."""

    selector = 'form[role="search"]'
    input_selector: ClassVar[str] = 'input[name="q"]'

    def submit(self, query: str) -> None:
        """Type a query and submit the form."""
        field = self.require(self.input_selector)
        field.fill(query)
        field.press('Enter')

    @property
    def value(self) -> str:
        return self.locator(self.input_selector).input_value()


class ResultList(Component):
    """List of search results."""

    selector = '[data-testid="results"]'
    item_selector: ClassVar[str] = '[data-testid="result"]'
    title_selector: ClassVar[str] = 'h2'

    def items(self) -> 'Locator':
        return self.locator(self.item_selector)

    def count(self) -> int:
        return self.items().count()

    def titles(self) -> list[str]:
        """Titles of the results, in display order."""
        return [
            title.strip()
            for title in self.items().locator(self.title_selector).all_inner_texts()
        ]

    def wait_loaded(self, *, timeout: float | None = None) -> None:
        self.wait_visible(self.item_selector, timeout=timeout)
