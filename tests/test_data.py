"""Tests for test data records and loading."""

from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from pytest_stepwise.data import ExpectedResults, Record, SearchRecord, load_records, parse_records
from pytest_stepwise.errors import DataError

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


SEARCH_JSON = '''
[
    {
        "name": "python",
        "query": "python",
        "expected": {"contains": ["Python"], "min_count": 2}
    },
    {
        "name": "pytest",
        "query": "pytest fixtures"
    }
]
'''

SEARCH_YAML = '''
records:
  - name: python
    query: python
    expected:
      contains:
        - Python
  - name: playwright
    query: playwright
'''

SEARCH_MISSING_QUERY = '''
[
    {"name": "ok", "query": "ok"},
    {"name": "broken", "expected": {"contains": []}}
]
'''

SEARCH_EXTRA_FIELD = '''
[
    {"name": "extra", "query": "q", "expected": {"contains": [], "limit": 3}}
]
'''

SEARCH_DUPLICATES = '''
[
    {"name": "same", "query": "a"},
    {"name": "same", "query": "b"}
]
'''


def test_load_json_records(fs: 'FakeFilesystem') -> None:
    """Load JSON records in file order."""
    fs.create_file('data/search.json', contents=SEARCH_JSON)

    records = load_records('search.json', SearchRecord, base_dir=Path('data'))

    assert [record.name for record in records] == ['python', 'pytest']
    assert records[0].expected == ExpectedResults(contains=['Python'], min_count=2)
    assert records[1].expected == ExpectedResults()


def test_load_yaml_records(fs: 'FakeFilesystem') -> None:
    """Load YAML records nested under the `records` key."""
    fs.create_file('/suite/search.yaml', contents=SEARCH_YAML)

    records = load_records('/suite/search.yaml', SearchRecord, base_dir=Path('ignored'))

    assert [record.query for record in records] == ['python', 'playwright']
    assert records[0].expected.contains == ['Python']


def test_records_are_immutable(fs: 'FakeFilesystem') -> None:
    """Refuse to mutate loaded records."""
    fs.create_file('search.json', contents=SEARCH_JSON)

    record = load_records('search.json', SearchRecord)[0]

    with pytest.raises(ValidationError, match=r'frozen'):
        record.query = 'changed'  # type: ignore[misc]


def test_missing_file(fs: 'FakeFilesystem') -> None:
    """Report unreadable files."""
    with pytest.raises(DataError, match=r'^Can not read test data') as info:
        load_records('missing.json', SearchRecord)

    assert 'in "missing.json"' in str(info.value)


@pytest.mark.parametrize('content, suffix, pattern', (
    pytest.param('[{"name": ', '.json', r'^Invalid JSON', id='json'),
    pytest.param('- name: [unclosed', '.yml', r'^Invalid YAML', id='yaml'),
    pytest.param('{"name": "single"}', '.json', r'^Expected a list of records, got dict', id='mapping'),
    pytest.param('"text"', '.json', r'^Expected a list of records, got str', id='scalar'),
))
def test_malformed_file(fs: 'FakeFilesystem', content: str, suffix: str, pattern: str) -> None:
    """Reject malformed data files."""
    fs.create_file(f'broken{suffix}', contents=content)

    with pytest.raises(DataError, match=pattern):
        load_records(f'broken{suffix}', SearchRecord)


def test_invalid_json_location() -> None:
    """Point at the line and column of a JSON error."""
    with pytest.raises(DataError) as info:
        parse_records('[\n  {"name": }\n]', filename='search.json')

    assert 'in "search.json", line 2, column 12' in str(info.value)


def test_missing_field(fs: 'FakeFilesystem') -> None:
    """Reject records missing a required field with the record position."""
    fs.create_file('search.json', contents=SEARCH_MISSING_QUERY)

    with pytest.raises(DataError, match=r"^Field required: 'query'") as info:
        load_records('search.json', SearchRecord)

    message = str(info.value)
    assert 'in "search.json", record 2' in message
    assert 'name: broken' in message


def test_extra_field(fs: 'FakeFilesystem') -> None:
    """Reject unknown fields of nested models."""
    fs.create_file('search.json', contents=SEARCH_EXTRA_FIELD)

    with pytest.raises(DataError, match=r'^Extra inputs are not permitted') as info:
        load_records('search.json', SearchRecord)

    assert 'limit: 3' in str(info.value)


def test_duplicate_names(fs: 'FakeFilesystem') -> None:
    """Reject duplicate record names."""
    fs.create_file('search.json', contents=SEARCH_DUPLICATES)

    with pytest.raises(DataError, match=r"^Duplicate record name 'same'"):
        load_records('search.json', SearchRecord)


def test_non_mapping_record() -> None:
    """Reject records that are not mappings."""
    with pytest.raises(DataError, match=r'^Record type validation error'):
        load_records_from(['not a record'])


def test_custom_record_model() -> None:
    """Validate records against a user-defined model."""
    class LoginRecord(Record):
        username: str
        remember: bool = False

    records = load_records_from([{'name': 'admin', 'username': 'admin', 'remember': True}], LoginRecord)

    assert records[0].username == 'admin'
    assert records[0].remember is True


def load_records_from(data: list, model: type[Record] = SearchRecord) -> tuple[Record, ...]:
    """Validate in-memory records."""
    from pytest_stepwise.data import validate_records  # noqa: PLC0415

    return validate_records(data, model, filename='memory.json')
