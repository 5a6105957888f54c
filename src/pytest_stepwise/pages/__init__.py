"""Page-Object-Model building blocks.

Pages aggregate components of one route and expose intent operations;
components wrap recurring UI elements scoped to a root element.
"""

from .base import BasePage, SearchPage
from .components import Component, ResultList, SearchBox

__all__ = (
    'BasePage',
    'Component',
    'ResultList',
    'SearchBox',
    'SearchPage',
)
