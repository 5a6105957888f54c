"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report test data loading issues, step API misuse, UI lookup failures,
and reporting sink failures in a structured and extensible way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump
from yaml.error import MarkedYAMLError

if TYPE_CHECKING:
    from json import JSONDecodeError
    from typing import Self

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails, ValidationError

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unicode string>'
FORMAT_INDENT = 4

SCALARS = (str, bytes, int, float, bool)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file where the error occurred.
    filename: str | None

    #: Line number in the source file.
    line_num: int | None
    #: Column number in the source file.
    column_num: int | None

    #: Position of the test data record in the file.
    record_num: int | None
    #: Names of the enclosing steps, outermost first.
    step_path: tuple[str, ...] | None

    #: Underlying exception that triggered formatting.
    error: Exception | None

    #: Element associated with the error.
    element: Any


class ErrorFormatter:
    """Utility class for formatting library errors.

    This formatter is responsible for producing human-readable
    error messages with optional source location and YAML-based
    contextual snippets.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and execution location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line,
            column, record number and step path when available.
        """
        indent = cls._ensure_indent(indent)

        message = ''
        if (filename := context.get('filename')) or context.get('record_num') is not None:
            message += f'{indent}in "{filename or FORMAT_FILENAME}"'
            if (line_num := context.get('line_num')) is not None:
                message += f', line {line_num + 1}'
                if (column_num := context.get('column_num')) is not None:
                    message += f', column {column_num + 1}'
            if (record_num := context.get('record_num')) is not None:
                message += f', record {record_num + 1}'
            message += linesep

        if step_path := context.get('step_path'):
            message += f'{indent}on step {' > '.join(step_path)!r}'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a formatted snippet illustrating the error context.

        Args:
            context: Error context containing element or exception data.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no snippet data is available.
        """
        indent = cls._ensure_indent(indent)

        if (error := context.get('error')) and isinstance(error, MarkedYAMLError):
            if error.problem_mark is None:
                return ''
            snippet = error.problem_mark.get_snippet(indent=0) or ''
            return cls._make_indent(snippet, indent) + linesep

        if (element := context.get('element')) is not None:
            snippet = f'{indent}{SNIPPET_ELLIPSIS}'
            snippet += cls._make_yaml(element, indent)
            snippet += linesep
            return snippet

        return ''

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively sanitize values for safe YAML serialization.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, dict):
            return {
                key: cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, (list, tuple, set)):
            return [cls._filter_unsafe(item) for item in value]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a sanitized value to an indented YAML string."""
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string.

        Empty or whitespace-only lines are omitted.
        """
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input to a string prefix."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class ReportingWarning(UserWarning):
    """Warning emitted for non-fatal reporting issues.

    Reporting sink failures never change the outcome of a test; they
    are surfaced through this category instead, so they can be
    filtered or escalated with the usual pytest `-W` options.
    """


class StepwiseError(Exception, ErrorFormatter):
    """Base exception for all pytest-stepwise errors.

    All custom exceptions raised by the library inherit from
    this class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional location values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class DataError(StepwiseError):
    """Error raised when a test data file can not be loaded.

    Covers unreadable files, malformed JSON or YAML and records that do
    not match the declared record model. The error is fatal only to the
    scenarios depending on the file.
    """

    @classmethod
    def from_yaml_error(cls, error: MarkedYAMLError,
                        filename: str | None = None) -> 'Self':
        """Create a data error from a YAML parsing failure.

        Args:
            error: Exception raised by the YAML parser.
            filename: Name of the data file.

        Returns:
            DataError with the position of the problem.
        """
        mark = error.problem_mark
        error_context = ErrorContext(
            filename=filename or (mark.name if mark else None),
            line_num=mark.line if mark else None,
            column_num=mark.column if mark else None,
            error=error,
        )

        message = 'Invalid YAML'
        if error.problem:
            message += f'{linesep}{' ' * FORMAT_INDENT}{error.problem}'

        return cls(message, context=error_context)

    @classmethod
    def from_json_error(cls, error: 'JSONDecodeError',
                        filename: str | None = None) -> 'Self':
        """Create a data error from a JSON parsing failure.

        Args:
            error: Exception raised by the JSON decoder.
            filename: Name of the data file.

        Returns:
            DataError with the position of the problem.
        """
        error_context = ErrorContext(
            filename=filename,
            line_num=error.lineno - 1,
            column_num=error.colno - 1,
            error=error,
        )

        return cls(f'Invalid JSON{linesep}{' ' * FORMAT_INDENT}{error.msg}', context=error_context)

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            data: Any = None,  # noqa: ANN401
                            filename: str | None = None,
                            record_num: int | None = None) -> 'Self':
        """Create a data error from a Pydantic validation failure.

        The most specific failing fragment of the record is located
        and used as the error snippet.

        Args:
            error: ValidationError raised by Pydantic.
            data: Raw record data.
            filename: Name of the data file.
            record_num: Position of the record in the file.

        Returns:
            DataError representing the validation failure.
        """
        error_context = ErrorContext(
            filename=filename,
            record_num=record_num,
            error=error,
            element=data,
        )

        if not data or not isinstance(data, dict):
            return cls('Record type validation error', context=error_context)

        for item in error.errors(include_url=False, include_input=False):
            if context := cls._locate_pydantic_context(data, item):
                message, value = context
                return cls(message, context=ErrorContext({**error_context, 'element': value}))

        return cls('Record validation error', context=error_context)

    @classmethod
    def _locate_pydantic_context(cls, value: Any,  # noqa: ANN401
                                 error: 'ErrorDetails') -> tuple[str, Any] | None:
        """Locate the most specific failing element in validated data.

        Args:
            value: Root data structure being validated.
            error: Pydantic error details including location path.

        Returns:
            A tuple of (error message, extracted element) if a relevant
            context can be located, otherwise None.
        """
        message = next((
            line.strip()
            for line in (error.get('msg') or '').splitlines()
            if line.strip()
        ), None)
        if not message:
            return None

        container = last_item = value
        last_key: int | str | None = None

        for key in error['loc']:
            if isinstance(last_item, (list, tuple)) and isinstance(key, int) and 0 <= key < len(last_item):
                container, last_item, last_key = last_item, last_item[key], key
            elif isinstance(last_item, dict) and key in last_item:
                container, last_item, last_key = last_item, last_item[key], key
            else:
                # Missing fields point at their container.
                return f'{message}: {key!r}', container if last_key is None else {last_key: last_item}

        if isinstance(container, (list, tuple)):
            return message, [last_item]

        if isinstance(container, dict) and last_key is not None:
            return message, {last_key: last_item}

        return None


class ScenarioError(StepwiseError):
    """Error raised when the step API is used outside its contract.

    For example: a module-level step call without an active scenario,
    an empty step name, or work recorded on a closed scenario.
    """


class ElementNotFoundError(StepwiseError):
    """Error raised when a required UI element is absent.

    Raised by components that explicitly require an element to exist
    before interacting with it.
    """

    def __init__(self, message: str, *, selector: str | None = None,
                 context: ErrorContext | None = None) -> None:
        """Initialize a lookup error.

        Args:
            message: Human-readable error description.
            selector: Selector that failed to match.
            context: Error context containing optional location values.
        """
        self.selector = selector

        super().__init__(message, context=context)


class ReportingError(StepwiseError):
    """Error describing a failed reporting sink call.

    Never raised into test code: instances are stored on the scenario
    and emitted as `ReportingWarning`.
    """

    def __init__(self, message: str, *, event: str,
                 error: Exception | None = None) -> None:
        """Initialize a reporting error.

        Args:
            message: Human-readable error description.
            event: Sink operation that failed.
            error: Underlying exception raised by the sink.
        """
        self.event = event
        self.error = error

        super().__init__(message)
