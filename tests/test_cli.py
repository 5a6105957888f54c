"""Tests for the command-line utilities."""

from json import loads
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from pytest_stepwise.__main__ import cli

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """Provide a CLI runner isolated from `STEPWISE_*` variables."""
    for name in ('STEPWISE_RESULTS_DIR', 'STEPWISE_SINK', 'STEPWISE_BASE_URL', 'STEPWISE_DATA_DIR'):
        monkeypatch.delenv(name, raising=False)

    return CliRunner()


def test_schema(runner: CliRunner) -> None:
    """Print the schema of a list of search records."""
    result = runner.invoke(cli, ['schema'])

    assert result.exit_code == 0

    schema = loads(result.output)
    record = resolve(schema, schema['items'])
    expected = resolve(schema, record['properties']['expected'])

    assert schema['type'] == 'array'
    assert record['title'] == 'SearchRecord'
    assert set(record['required']) == {'name', 'query'}
    assert record['additionalProperties'] is False
    assert expected['title'] == 'ExpectedResults'
    assert set(expected['properties']) == {'contains', 'min_count'}


def resolve(schema: dict, node: dict) -> dict:
    """Follow a local $ref of the schema."""
    if len(node.get('allOf', ())) == 1:
        node = node['allOf'][0]

    if (ref := node.get('$ref')) is None:
        return node

    target = schema
    for key in ref.removeprefix('#/').split('/'):
        target = target[key]

    return target


@pytest.mark.parametrize('reference, message', (
    pytest.param('pytest_stepwise.data', 'Expected a `module:Class` reference', id='format'),
    pytest.param('pytest_stepwise.missing:Record', 'Can not import', id='module'),
    pytest.param('pytest_stepwise.data:Missing', 'Can not import', id='class'),
    pytest.param('pytest_stepwise.data:ExpectedResults', 'is not a test data record model', id='model'),
))
def test_schema_invalid_model(runner: CliRunner, reference: str, message: str) -> None:
    """Refuse references to anything but a record model."""
    result = runner.invoke(cli, ['schema', reference])

    assert result.exit_code == 1
    assert message in result.output


@pytest.mark.parametrize('args, expected', (
    pytest.param([], ['--alluredir=out/allure-results'], id='default'),
    pytest.param(['-r', 'results', '-k', 'search', '-x'], ['--alluredir=results', '-k', 'search', '-x'], id='args'),
))
def test_run(runner: CliRunner, mocker: 'MockerFixture', args: list[str], expected: list[str]) -> None:
    """Run pytest with Allure results and forward its exit code."""
    main = mocker.patch('pytest.main', return_value=pytest.ExitCode.TESTS_FAILED)

    result = runner.invoke(cli, ['run', *args])

    assert result.exit_code == 1
    main.assert_called_once_with(expected)


def test_run_results_dir_from_environment(runner: CliRunner, mocker: 'MockerFixture',
                                          monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the results directory from the environment."""
    monkeypatch.setenv('STEPWISE_RESULTS_DIR', 'reports/allure')
    main = mocker.patch('pytest.main', return_value=pytest.ExitCode.OK)

    result = runner.invoke(cli, ['run'])

    assert result.exit_code == 0
    main.assert_called_once_with(['--alluredir=reports/allure'])


def test_serve(runner: CliRunner, mocker: 'MockerFixture', tmp_path: Path) -> None:
    """Serve the Allure report of existing results."""
    mocker.patch('pytest_stepwise.__main__.which', return_value='/usr/bin/allure')
    process = mocker.patch('pytest_stepwise.__main__.run_process')
    process.return_value.returncode = 0

    result = runner.invoke(cli, ['serve', '-r', tmp_path.as_posix()])

    assert result.exit_code == 0
    process.assert_called_once_with(['/usr/bin/allure', 'serve', tmp_path.as_posix()], check=False)


def test_serve_without_allure(runner: CliRunner, mocker: 'MockerFixture', tmp_path: Path) -> None:
    """Fail when the Allure command-line tool is missing."""
    mocker.patch('pytest_stepwise.__main__.which', return_value=None)

    result = runner.invoke(cli, ['serve', '-r', tmp_path.as_posix()])

    assert result.exit_code == 1
    assert 'Allure command-line tool is not installed' in result.output


def test_serve_without_results(runner: CliRunner, mocker: 'MockerFixture', tmp_path: Path) -> None:
    """Fail when there are no results to serve."""
    mocker.patch('pytest_stepwise.__main__.which', return_value='/usr/bin/allure')
    process = mocker.patch('pytest_stepwise.__main__.run_process')

    result = runner.invoke(cli, ['serve', '-r', (tmp_path / 'missing').as_posix()])

    assert result.exit_code == 1
    assert 'run the tests first' in result.output
    process.assert_not_called()
