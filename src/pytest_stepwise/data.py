"""Test data records and their loader.

Test data files hold a list of records, each describing one scenario
variant. Files are JSON (`.json`) or YAML (`.yaml`, `.yml`); the list is
either the document itself or the `records` key of a mapping:

    [
        {"name": "python", "query": "python", "expected": {"contains": ["Python"]}}
    ]

Every record is validated against a frozen Pydantic model at load time,
so a malformed record is rejected before any scenario runs.
"""

from json import JSONDecodeError, loads
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import Field, ValidationError
from yaml import YAMLError, safe_load
from yaml.error import MarkedYAMLError

from pytest_stepwise.errors import DataError, ErrorContext
from pytest_stepwise.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Sequence

RECORDS_KEY = 'records'
YAML_SUFFIXES = frozenset(('.yaml', '.yml'))


class Record(SchemaModel):
    """Base test data record.

    Subclasses declare the fields a scenario consumes; unknown fields
    are rejected and instances are immutable.
    """

    name: str = Field(
        min_length=1,
        title='Record name',
        description='Unique name of the scenario variant, used as the test id.',
    )


class ExpectedResults(SchemaModel):
    """Expected outcome of a search."""

    contains: list[str] = Field(
        default_factory=list,
        title='Expected substrings',
        description='Substrings that must appear in the results.',
    )
    min_count: int = Field(
        default=1,
        ge=0,
        title='Minimal result count',
    )


class SearchRecord(Record):
    """Record driving a search scenario."""

    query: str = Field(
        min_length=1,
        title='Search query',
    )
    expected: ExpectedResults = Field(
        default_factory=ExpectedResults,
        title='Expected results',
    )


def parse_records(content: str, *, filename: str | None = None,
                  yaml: bool = False) -> list[Any]:
    """Parse raw test data content into a list of raw records.

    Args:
        content: File content.
        filename: Name of the source, for error reporting.
        yaml: Parse as YAML instead of JSON.

    Returns:
        List of raw record values.

    Raises:
        DataError: If the content is malformed or not a list of records.
    """
    try:
        data = safe_load(content) if yaml else loads(content)

    except MarkedYAMLError as base:
        raise DataError.from_yaml_error(base, filename) from base

    except YAMLError as base:
        raise DataError(f'Invalid YAML: {base}', context=ErrorContext(filename=filename)) from base

    except JSONDecodeError as base:
        raise DataError.from_json_error(base, filename) from base

    if isinstance(data, dict) and RECORDS_KEY in data:
        data = data[RECORDS_KEY]

    if not isinstance(data, list):
        raise DataError(
            f'Expected a list of records, got {type(data).__name__}',
            context=ErrorContext(filename=filename),
        )

    return data


def validate_records[R: Record](data: 'Sequence[Any]', model: type[R], *,
                                filename: str | None = None) -> tuple[R, ...]:
    """Validate raw records against a record model.

    Args:
        data: Raw records.
        model: Record model.
        filename: Name of the source, for error reporting.

    Returns:
        Validated immutable records, in file order.

    Raises:
        DataError: If a record does not match the model or record
            names are not unique.
    """
    records: list[R] = []
    names: set[str] = set()

    for record_num, item in enumerate(data):
        try:
            record = model.model_validate(item)
        except ValidationError as base:
            raise DataError.from_pydantic_error(
                base,
                data=item,
                filename=filename,
                record_num=record_num,
            ) from base

        if record.name in names:
            raise DataError(
                f'Duplicate record name {record.name!r}',
                context=ErrorContext(filename=filename, record_num=record_num),
            )

        names.add(record.name)
        records.append(record)

    return tuple(records)


def load_records[R: Record](path: str | Path, model: type[R], *,
                            base_dir: Path | None = None) -> tuple[R, ...]:
    """Load and validate test data records from a file.

    Args:
        path: Data file path; relative paths are resolved against `base_dir`.
        model: Record model.
        base_dir: Directory for relative paths.

    Returns:
        Validated immutable records, in file order.

    Raises:
        DataError: If the file can not be read, parsed or validated.
    """
    filepath = Path(path)
    if base_dir is not None and not filepath.is_absolute():
        filepath = base_dir / filepath

    filename = filepath.as_posix()

    try:
        content = filepath.read_text(encoding='utf-8')
    except OSError as base:
        raise DataError(
            f'Can not read test data: {base.strerror or base}',
            context=ErrorContext(filename=filename),
        ) from base

    data = parse_records(
        content,
        filename=filename,
        yaml=filepath.suffix.lower() in YAML_SUFFIXES,
    )

    return validate_records(data, model, filename=filename)
