"""Reporting sinks for step spans, attachments and scenario metadata.

The step layer talks to a single `ReportingSink`. Bundled sinks:
- `MemorySink` builds an inspectable report tree;
- `AllureSink` forwards events to the allure-pytest runtime;
- `FanoutSink` delivers every event to several sinks.
"""

from .memory import AttachmentRecord, MemorySink, ReportRecord, SpanRecord
from .sinks import FanoutSink, Link, Outcome, ReportingSink

__all__ = (
    'AttachmentRecord',
    'FanoutSink',
    'Link',
    'MemorySink',
    'Outcome',
    'ReportRecord',
    'ReportingSink',
    'SpanRecord',
)
