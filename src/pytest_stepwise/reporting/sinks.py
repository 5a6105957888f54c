"""Reporting sink interface.

A sink receives step, attachment and metadata events and renders them
into a report. The step layer never formats output itself: it only
emits the events declared by `ReportingSink`.
"""

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from pydantic import Field

from pytest_stepwise.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Sequence

type LinkType = Literal['link', 'issue', 'tms']
type Content = str | bytes


class Outcome(StrEnum):
    """Terminal state of a step span."""

    COMPLETED = 'completed'
    FAILED = 'failed'
    ABORTED = 'aborted'


class Link(SchemaModel):
    """External link attached to a scenario."""

    url: str = Field(
        min_length=1,
        title='Link URL',
    )
    name: str | None = Field(
        default=None,
        title='Display name',
    )
    link_type: LinkType = Field(
        default='link',
        validation_alias='type',
        title='Link type',
    )


@runtime_checkable
class ReportingSink(Protocol):
    """Receiver of reporting events.

    Handles returned by `begin_step` are opaque to the step layer and
    are passed back unchanged to `end_step` and `attach`. A `None`
    handle addresses the scenario root.
    """

    def begin_step(self, name: str, parent: Any | None) -> Any:  # noqa: ANN401
        """Open a span named `name` under `parent` and return its handle."""
        ...  # pragma: no cover

    def end_step(self, handle: Any, outcome: Outcome,  # noqa: ANN401
                 error: BaseException | None = None) -> None:
        """Close a span with its terminal outcome."""
        ...  # pragma: no cover

    def attach(self, handle: Any | None, name: str,  # noqa: ANN401
               content: Content, mime_type: str) -> None:
        """Attach an artifact to a span or to the scenario root."""
        ...  # pragma: no cover

    def add_link(self, link: Link) -> None:
        """Add an external link to the scenario."""
        ...  # pragma: no cover

    def set_owner(self, name: str) -> None:
        """Set the scenario owner, replacing any previous value."""
        ...  # pragma: no cover

    def add_issue_ref(self, issue_id: str, url: str) -> None:
        """Add an issue reference to the scenario."""
        ...  # pragma: no cover

    def end_scenario(self) -> None:
        """Flush scenario metadata once the scenario is closed."""
        ...  # pragma: no cover


class FanoutSink:
    """Sink forwarding every event to several sinks.

    Handles are tuples holding one handle per wrapped sink, in order.
    """

    def __init__(self, sinks: 'Sequence[ReportingSink]') -> None:
        """Initialize a fan-out sink.

        Args:
            sinks: Sinks receiving the events, in delivery order.
        """
        self.sinks = tuple(sinks)

    def _handles(self, handle: tuple[Any, ...] | None) -> tuple[Any, ...]:
        if handle is None:
            return (None,) * len(self.sinks)

        return handle

    def begin_step(self, name: str, parent: tuple[Any, ...] | None) -> tuple[Any, ...]:
        return tuple(
            sink.begin_step(name, parent_handle)
            for sink, parent_handle in zip(self.sinks, self._handles(parent), strict=True)
        )

    def end_step(self, handle: tuple[Any, ...], outcome: Outcome,
                 error: BaseException | None = None) -> None:
        for sink, sink_handle in zip(self.sinks, handle, strict=True):
            sink.end_step(sink_handle, outcome, error)

    def attach(self, handle: tuple[Any, ...] | None, name: str,
               content: Content, mime_type: str) -> None:
        for sink, sink_handle in zip(self.sinks, self._handles(handle), strict=True):
            sink.attach(sink_handle, name, content, mime_type)

    def add_link(self, link: Link) -> None:
        for sink in self.sinks:
            sink.add_link(link)

    def set_owner(self, name: str) -> None:
        for sink in self.sinks:
            sink.set_owner(name)

    def add_issue_ref(self, issue_id: str, url: str) -> None:
        for sink in self.sinks:
            sink.add_issue_ref(issue_id, url)

    def end_scenario(self) -> None:
        for sink in self.sinks:
            sink.end_scenario()
