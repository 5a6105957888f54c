"""Command-line utilities for pytest-stepwise.

Wraps the usual run/report loop of a browser test suite: running pytest
with Allure results enabled, serving the Allure report, and printing the
JSON Schema of a test data record model.
"""

from importlib import import_module
from json import dumps
from pathlib import Path
from shutil import which
from subprocess import run as run_process
from typing import TYPE_CHECKING

from click import UNPROCESSED, ClickException, argument, echo, group, option, pass_context
from click import Path as PathParam
from pydantic import TypeAdapter

from pytest_stepwise.data import Record
from pytest_stepwise.settings import StepwiseSettings

if TYPE_CHECKING:
    from click import Context

ALLURE_EXECUTABLE = 'allure'

ResultsPath = PathParam(
    file_okay=False,
    path_type=Path,
)


def _default_results_dir() -> Path:
    return StepwiseSettings().results_dir


@group(help='Command-line utilities for pytest-stepwise test suites.')
def cli() -> None:
    """Root CLI group for pytest-stepwise tools."""
    return None


@cli.command(
    name='run',
    help='Run pytest with Allure results written to the results directory.',
    context_settings={'ignore_unknown_options': True},
)
@option(
    '-r', '--results-dir',
    type=ResultsPath,
    default=_default_results_dir,
    show_default='STEPWISE_RESULTS_DIR or out/allure-results',
    help='Directory for Allure results.',
)
@argument('pytest_args', nargs=-1, type=UNPROCESSED)
@pass_context
def run_tests(ctx: 'Context', results_dir: Path, pytest_args: tuple[str, ...]) -> None:
    """Run the test suite.

    Args:
        ctx: Click context.
        results_dir: Allure results directory.
        pytest_args: Extra arguments passed to pytest as is.
    """
    import pytest  # noqa: PLC0415

    exit_code = pytest.main([
        f'--alluredir={results_dir.as_posix()}',
        *pytest_args,
    ])

    ctx.exit(int(exit_code))


@cli.command(
    name='serve',
    help='Generate and open the Allure report for the results directory.',
)
@option(
    '-r', '--results-dir',
    type=ResultsPath,
    default=_default_results_dir,
    show_default='STEPWISE_RESULTS_DIR or out/allure-results',
    help='Directory with Allure results.',
)
@pass_context
def serve_report(ctx: 'Context', results_dir: Path) -> None:
    """Serve the Allure report.

    Raises:
        ClickException: If the Allure command-line tool is not installed
            or the results directory does not exist.
    """
    executable = which(ALLURE_EXECUTABLE)
    if executable is None:
        raise ClickException('Allure command-line tool is not installed')

    if not results_dir.is_dir():
        raise ClickException(f'No results in {results_dir.as_posix()!r}; run the tests first')

    completed = run_process([executable, 'serve', results_dir.as_posix()], check=False)

    ctx.exit(completed.returncode)


def _load_model(reference: str) -> type[Record]:
    """Import a record model from a `module:Class` reference.

    Raises:
        ClickException: If the reference can not be resolved to a record model.
    """
    module_name, _, class_name = reference.partition(':')
    if not module_name or not class_name:
        raise ClickException(f'Expected a `module:Class` reference, got {reference!r}')

    try:
        model = getattr(import_module(module_name), class_name)
    except (ImportError, AttributeError) as base:
        raise ClickException(f'Can not import {reference!r}: {base}') from base

    if not isinstance(model, type) or not issubclass(model, Record):
        raise ClickException(f'{reference!r} is not a test data record model')

    return model


@cli.command(
    name='schema',
    help='Print the JSON Schema of a test data record model (`module:Class`).',
)
@argument('model', default='pytest_stepwise.data:SearchRecord')
def print_schema(model: str) -> None:
    """Generate and print the JSON Schema of a list of records."""
    record_model = _load_model(model)

    schema = TypeAdapter(list[record_model]).json_schema()

    echo(dumps(schema, ensure_ascii=False, indent=2))


if __name__ == '__main__':
    cli()
