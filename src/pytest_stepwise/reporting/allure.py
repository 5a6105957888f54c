"""Allure reporting sink.

Forwards step spans, attachments and scenario metadata to the
`allure-pytest` runtime of the currently running test. Allure keeps its
own stack of open steps, so spans must be closed in reverse opening
order, which the step layer guarantees.
"""

from typing import TYPE_CHECKING

import allure

from .sinks import Content, Link, Outcome

if TYPE_CHECKING:
    from allure_commons._allure import StepContext

OWNER_LABEL = 'owner'


class AllureSink:
    """Sink emitting events through the public `allure` API.

    Handles are the entered `allure.step` contexts. Allure only appends
    labels, so the owner is kept here and written once by `end_scenario`.
    """

    def __init__(self) -> None:
        """Initialize a sink with no owner."""
        self.owner: str | None = None

    def begin_step(self, name: str, parent: 'StepContext | None') -> 'StepContext':
        context = allure.step(name)
        context.__enter__()
        return context

    def end_step(self, handle: 'StepContext', outcome: Outcome,
                 error: BaseException | None = None) -> None:
        if outcome is Outcome.COMPLETED or error is None:
            handle.__exit__(None, None, None)
        else:
            handle.__exit__(type(error), error, error.__traceback__)

    def attach(self, handle: 'StepContext | None', name: str,
               content: Content, mime_type: str) -> None:
        allure.attach(content, name=name, attachment_type=mime_type)

    def add_link(self, link: Link) -> None:
        match link.link_type:
            case 'issue':
                allure.dynamic.issue(link.url, name=link.name)
            case 'tms':
                allure.dynamic.testcase(link.url, name=link.name)
            case _:
                allure.dynamic.link(link.url, name=link.name)

    def set_owner(self, name: str) -> None:
        self.owner = name

    def add_issue_ref(self, issue_id: str, url: str) -> None:
        allure.dynamic.issue(url, name=issue_id)

    def end_scenario(self) -> None:
        if self.owner is not None:
            allure.dynamic.label(OWNER_LABEL, self.owner)
