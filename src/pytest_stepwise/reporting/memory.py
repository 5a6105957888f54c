"""In-memory reporting sink.

Builds the report tree of a scenario as plain models, which makes the
tree inspectable from tests and serializable with `model_dump`.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .sinks import Content, Link, Outcome

if TYPE_CHECKING:
    from collections.abc import Iterator


class AttachmentRecord(BaseModel):
    """Recorded attachment."""

    name: str
    content: Content
    mime_type: str


class SpanRecord(BaseModel):
    """Recorded step span and its ordered children."""

    name: str
    outcome: Outcome | None = None
    error: str | None = None
    children: list['SpanRecord | AttachmentRecord'] = Field(default_factory=list)

    @property
    def steps(self) -> list['SpanRecord']:
        """Child spans in invocation order."""
        return [item for item in self.children if isinstance(item, SpanRecord)]

    @property
    def attachments(self) -> list[AttachmentRecord]:
        """Attachments in invocation order."""
        return [item for item in self.children if isinstance(item, AttachmentRecord)]

    def walk(self) -> 'Iterator[SpanRecord]':
        """Iterate over this span and all descendant spans, depth first."""
        yield self
        for child in self.steps:
            yield from child.walk()


class ReportRecord(SpanRecord):
    """Root of a scenario report with its metadata."""

    links: list[Link] = Field(default_factory=list)
    owner: str | None = None
    issues: list[tuple[str, str]] = Field(default_factory=list)


class MemorySink:
    """Sink collecting events into a `ReportRecord` tree.

    Handles are the `SpanRecord` instances themselves.
    """

    def __init__(self, name: str = '<scenario>') -> None:
        """Initialize an empty report.

        Args:
            name: Name of the report root.
        """
        self.report = ReportRecord(name=name)

    def begin_step(self, name: str, parent: SpanRecord | None) -> SpanRecord:
        span = SpanRecord(name=name)
        (parent or self.report).children.append(span)
        return span

    def end_step(self, handle: SpanRecord, outcome: Outcome,
                 error: BaseException | None = None) -> None:
        handle.outcome = outcome
        if error is not None:
            handle.error = f'{type(error).__name__}: {error}'

    def attach(self, handle: SpanRecord | None, name: str,
               content: Content, mime_type: str) -> None:
        (handle or self.report).children.append(AttachmentRecord(
            name=name,
            content=content,
            mime_type=mime_type,
        ))

    def add_link(self, link: Link) -> None:
        self.report.links.append(link)

    def set_owner(self, name: str) -> None:
        self.report.owner = name

    def add_issue_ref(self, issue_id: str, url: str) -> None:
        self.report.issues.append((issue_id, url))

    def end_scenario(self) -> None:
        return None
