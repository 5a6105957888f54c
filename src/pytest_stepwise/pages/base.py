"""Page objects.

A page object aggregates the components of one application route and
exposes user-intent operations built from them. The base URL is passed
in explicitly; pages never read configuration on their own.
"""

from typing import TYPE_CHECKING, ClassVar
from urllib.parse import urljoin

from .components import ResultList, SearchBox

if TYPE_CHECKING:
    from typing import Self

if TYPE_CHECKING:
    from playwright.sync_api import Page


class BasePage:
    """Base class for page objects.

    Attributes:
        path: Route of the page relative to the base URL.
    """

    path: ClassVar[str] = '/'

    def __init__(self, page: 'Page', base_url: str) -> None:
        """Initialize a page object.

        Args:
            page: Playwright page.
            base_url: Application root URL.
        """
        self.page = page
        self.base_url = base_url

    @property
    def url(self) -> str:
        """Absolute URL of the page."""
        return urljoin(f'{self.base_url.rstrip('/')}/', self.path.lstrip('/'))

    @property
    def title(self) -> str:
        return self.page.title()

    def open(self) -> 'Self':
        """Navigate to the page."""
        self.page.goto(self.url)
        return self


class SearchPage(BasePage):
    """Landing page with a search form and a result list."""

    path = '/'

    def __init__(self, page: 'Page', base_url: str) -> None:
        super().__init__(page, base_url)

        self.search_box = SearchBox(page)
        self.results = ResultList(page)

    def search(self, query: str) -> None:
        """Submit a query and wait for the results to load."""
        self.search_box.submit(query)
        self.results.wait_loaded()

    def get_results(self) -> list[str]:
        """Return the titles of the displayed results."""
        return self.results.titles()
