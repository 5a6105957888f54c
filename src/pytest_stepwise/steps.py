"""Named, nestable and reportable steps.

This module implements the step layer: a `Scenario` owns the report
tree of one test execution and runs step bodies inside spans emitted to
a reporting sink. Attachments go to the innermost active step, while
links, owner and issue references always go to the scenario.

The active scenario and the active step are tracked in context
variables, which isolates threads and asyncio tasks from each other.
A step is only considered active for the call chain (asyncio task or
thread) that opened it: work running in spawned tasks or threads is
attributed to the scenario root. A step opened outside any task also
covers event loops run by its body on the same thread.

Both styles are supported:

    with Scenario(MemorySink()) as scenario:
        scenario.step('Open page', page.open)

    step('Open page', page.open)  # resolves the current scenario
"""

from asyncio import current_task
from collections.abc import Awaitable, Callable, Mapping
from contextvars import ContextVar
from enum import StrEnum
from functools import wraps
from inspect import isawaitable, iscoroutinefunction, signature
from threading import get_ident
from typing import TYPE_CHECKING, Any, overload
from warnings import warn

import pytest

from pytest_stepwise.errors import ErrorContext, ReportingError, ReportingWarning, ScenarioError, StepwiseError
from pytest_stepwise.reporting import Link, Outcome

if TYPE_CHECKING:
    from contextvars import Token
    from types import TracebackType
    from typing import Self

if TYPE_CHECKING:
    from pytest_stepwise.reporting import ReportingSink
    from pytest_stepwise.reporting.sinks import Content

type LinkEntry = str | Mapping[str, Any] | Link

FAILURES: tuple[type[BaseException], ...] = (Exception, pytest.fail.Exception)

_current_scenario: ContextVar['Scenario | None'] = ContextVar('stepwise_scenario', default=None)
_active_step: ContextVar['Step | None'] = ContextVar('stepwise_step', default=None)


class StepState(StrEnum):
    """Lifecycle state of a step."""

    PENDING = 'pending'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    FAILED = 'failed'
    ABORTED = 'aborted'


def current_chain() -> object:
    """Return an identity of the current logical call chain.

    The running asyncio task when there is one, the thread otherwise.
    """
    try:
        task = current_task()
    except RuntimeError:
        task = None

    if task is not None:
        return task

    return get_ident()


def outcome_of(error: BaseException | None) -> Outcome:
    """Classify how a step body finished.

    Args:
        error: Exception raised by the body, if any.

    Returns:
        `COMPLETED` without error, `FAILED` for errors and test failures,
        `ABORTED` for cancellation, interrupts and other control flow.
    """
    if error is None:
        return Outcome.COMPLETED

    if isinstance(error, FAILURES):
        return Outcome.FAILED

    return Outcome.ABORTED


class Step:
    """A single span in the report tree.

    Steps are created by a `Scenario` at the moment they begin and are
    never re-entered once terminal.
    """

    def __init__(self, scenario: 'Scenario', name: str,
                 parent: 'Step | None' = None) -> None:
        """Initialize a pending step.

        Args:
            scenario: Scenario owning the report tree.
            name: Human-readable step name.
            parent: Enclosing step, if any.
        """
        self.scenario = scenario
        self.name = name
        self.parent = parent

        self.state = StepState.PENDING
        self.chain = current_chain()
        self.handle: Any = None
        self.token: Token[Step | None] | None = None

    def __repr__(self) -> str:
        return f'<Step {self.name!r} {self.state}>'

    @property
    def path(self) -> tuple[str, ...]:
        """Names of the enclosing steps and this step, outermost first."""
        names = []
        step: Step | None = self
        while step is not None:
            names.append(step.name)
            step = step.parent

        return tuple(reversed(names))

    def is_descendant_of(self, other: 'Step') -> bool:
        """Check whether `other` is a (transitive) parent of this step."""
        step = self.parent
        while step is not None:
            if step is other:
                return True
            step = step.parent

        return False


class Scenario:
    """Report tree and metadata of one test scenario execution.

    A scenario emits step spans, attachments and metadata to a reporting
    sink. Sink failures are collected in `reporting_errors` and emitted
    as `ReportingWarning`; they never interrupt the scenario.
    """

    def __init__(self, sink: 'ReportingSink', name: str = '<scenario>') -> None:
        """Initialize a scenario.

        Args:
            sink: Reporting sink receiving events.
            name: Scenario name, for diagnostics.
        """
        self.sink = sink
        self.name = name

        self.link_list: list[Link] = []
        self.owner_name: str | None = None
        self.issues: list[tuple[str, str]] = []

        self.reporting_errors: list[ReportingError] = []
        self.closed = False

        self._open: list[Step] = []
        self._token: Token[Scenario | None] | None = None

    def __repr__(self) -> str:
        return f'<Scenario {self.name!r}>'

    def __enter__(self) -> 'Self':
        self._token = _current_scenario.set(self)
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        try:
            self.close()
        finally:
            if self._token is not None:
                _current_scenario.reset(self._token)
                self._token = None

    @property
    def active_step(self) -> Step | None:
        """Innermost active step of the current call chain, if any."""
        step = _active_step.get()
        if step is None or step.scenario is not self:
            return None

        if step.state is not StepState.ACTIVE:
            return None

        # A step opened synchronously stays active for event loops run on its thread.
        if step.chain != current_chain() and step.chain != get_ident():
            return None

        return step

    @property
    def open_steps(self) -> tuple[Step, ...]:
        """Steps that began and did not finish yet, in opening order."""
        return tuple(self._open)

    @overload
    def step(self, name: str) -> 'StepSpan':
        ...  # pragma: no cover

    @overload
    def step[T](self, name: str, body: Callable[[], Awaitable[T]]) -> Awaitable[T]:
        ...  # pragma: no cover

    @overload
    def step[T](self, name: str, body: Callable[[], T]) -> T:
        ...  # pragma: no cover

    def step(self, name: str, body: Callable[[], Any] | None = None) -> Any:
        """Run `body` inside a named step span.

        Without a body, a `StepSpan` is returned which may be used as
        a context manager (sync or async) or as a decorator.

        Coroutine functions and bodies returning awaitables produce
        a coroutine; the span stays open until the awaitable finishes.

        Args:
            name: Non-empty human-readable step name.
            body: Zero-argument callable performing the step work.

        Returns:
            Whatever `body` returns (or a coroutine resolving to it).

        Raises:
            ScenarioError: If the name is empty or the scenario is closed.
            Any exception raised by `body`, unchanged.
        """
        self._check_name(name, self.active_step)

        if body is None:
            return StepSpan(name, scenario=self)

        if iscoroutinefunction(body):
            return self._run_async(name, body)

        step = self.begin(name)
        try:
            result = body()
        except BaseException as error:
            self.finish(step, error)
            raise

        if isawaitable(result):
            self._suspend(step)
            return self._resume(step, result)

        self.finish(step)
        return result

    async def _run_async[T](self, name: str, body: Callable[[], Awaitable[T]]) -> T:
        step = self.begin(name)
        try:
            result = await body()
        except BaseException as error:
            self.finish(step, error)
            raise

        self.finish(step)
        return result

    async def _resume[T](self, step: Step, awaitable: Awaitable[T]) -> T:
        step.chain = current_chain()
        step.token = _active_step.set(step)
        try:
            result = await awaitable
        except BaseException as error:
            self.finish(step, error)
            raise

        self.finish(step)
        return result

    def _suspend(self, step: Step) -> None:
        """Deactivate a step for the caller without closing its span."""
        self._restore(step)

    def begin(self, name: str) -> Step:
        """Open a child span of the active step and activate it.

        Args:
            name: Non-empty human-readable step name.

        Returns:
            The active step.

        Raises:
            ScenarioError: If the name is empty or the scenario is closed.
        """
        parent = self.active_step

        self._check_name(name, parent)
        self._check_open()

        step = Step(self, name, parent)

        step.handle = self._emit('begin_step', name, parent.handle if parent else None)
        step.state = StepState.ACTIVE
        step.token = _active_step.set(step)

        self._open.append(step)

        return step

    def finish(self, step: Step, error: BaseException | None = None) -> None:
        """Close a step span with the outcome derived from `error`.

        Descendants left open (for example by a never-awaited body) are
        aborted first, so a child always completes before its parent.

        Args:
            step: Step returned by `begin`.
            error: Exception raised by the step body, if any.
        """
        if step.state is StepState.ACTIVE:
            for child in reversed(self._open.copy()):
                if child.is_descendant_of(step):
                    self._abort(child)

            if isinstance(error, StepwiseError):
                self._locate(error, step)

            outcome = outcome_of(error)
            self._open.remove(step)
            step.state = StepState(outcome.value)

            if step.handle is not None:
                self._emit('end_step', step.handle, outcome, error)

        self._restore(step)

    def close(self) -> None:
        """Abort every step left open and close the scenario.

        Idempotent. Steps are aborted innermost first, then the sink
        receives `end_scenario`.
        """
        if self.closed:
            return

        for step in reversed(self._open.copy()):
            self._abort(step)

        self._emit('end_scenario')
        self.closed = True

    def attachment(self, name: str, content: 'Content',
                   mime_type: str = 'text/plain') -> None:
        """Attach an artifact to the innermost active step.

        Falls back to the scenario root outside of any step.

        Args:
            name: Attachment name.
            content: Text or binary payload.
            mime_type: MIME type of the payload.
        """
        self._check_open()

        step = self.active_step
        self._emit('attach', step.handle if step else None, name, content, mime_type)

    def links(self, *entries: LinkEntry) -> None:
        """Add links to the scenario. Links accumulate across calls.

        Args:
            *entries: URLs, mappings with `url`, `name`, `type` keys,
                or `Link` models.
        """
        self._check_open()

        for entry in entries:
            link = self._make_link(entry)
            self.link_list.append(link)
            self._emit('add_link', link)

    def owner(self, name: str) -> None:
        """Set the scenario owner, replacing any previous value."""
        self._check_open()

        self.owner_name = name
        self._emit('set_owner', name)

    def issue(self, issue_id: str, url: str) -> None:
        """Add an issue reference to the scenario."""
        self._check_open()

        self.issues.append((issue_id, url))
        self._emit('add_issue_ref', issue_id, url)

    def _abort(self, step: Step) -> None:
        self._open.remove(step)
        step.state = StepState.ABORTED

        if step.handle is not None:
            self._emit('end_step', step.handle, Outcome.ABORTED, None)

    def _restore(self, step: Step) -> None:
        """Make the parent of `step` active again in this context."""
        if step.token is None:
            return

        try:
            _active_step.reset(step.token)
        except ValueError:
            # Token was created in another context.
            _active_step.set(step.parent)

        step.token = None

    def _emit(self, event: str, *args: Any) -> Any:  # noqa: ANN401
        """Call a sink method, capturing any sink failure.

        Args:
            event: Name of the sink method.
            *args: Positional arguments of the call.

        Returns:
            Result of the sink call, or `None` if it failed.
        """
        try:
            return getattr(self.sink, event)(*args)

        except Exception as base:
            error = ReportingError(
                f'Reporting sink failed on {event!r}: {base!r}',
                event=event,
                error=base,
            )
            self.reporting_errors.append(error)
            warn(error.message, category=ReportingWarning, stacklevel=3)

        return None

    @staticmethod
    def _locate(error: StepwiseError, step: Step) -> None:
        """Record the innermost step an error was raised in."""
        context = error.context or ErrorContext()
        if not context.get('step_path'):
            error.context = ErrorContext({**context, 'step_path': step.path})

    def _check_open(self) -> None:
        if self.closed:
            raise ScenarioError(f'Scenario {self.name!r} is closed')

    @staticmethod
    def _check_name(name: str, parent: Step | None = None) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ScenarioError(
                f'Step name must be a non-empty string, got {name!r}',
                context=ErrorContext(step_path=parent.path) if parent else None,
            )

    @staticmethod
    def _make_link(entry: LinkEntry) -> Link:
        if isinstance(entry, Link):
            return entry

        if isinstance(entry, str):
            return Link.model_validate({'url': entry})

        return Link.model_validate(entry)


class StepSpan:
    """Step usable as a context manager or a decorator.

    As a decorator, the name may contain `str.format` placeholders that
    are filled from the bound arguments of each call:

        @step('Perform search for "{query}"')
        def search(self, query: str) -> None: ...

    When no scenario is given, the current scenario is resolved each
    time the span is entered.
    """

    def __init__(self, name: str, *, scenario: Scenario | None = None) -> None:
        """Initialize a step span.

        Args:
            name: Step name or name template.
            scenario: Scenario to report to, the current one if omitted.
        """
        self.name = name
        self.scenario = scenario

        self._steps: list[Step] = []

    def __enter__(self) -> Step:
        step = self._get_scenario().begin(self.name)
        self._steps.append(step)
        return step

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        step = self._steps.pop()
        step.scenario.finish(step, exc_value)

    async def __aenter__(self) -> Step:
        return self.__enter__()

    async def __aexit__(self, exc_type: type[BaseException] | None,
                        exc_value: BaseException | None,
                        traceback: 'TracebackType | None') -> None:
        self.__exit__(exc_type, exc_value, traceback)

    def __call__[**P, T](self, func: Callable[P, T]) -> Callable[P, T]:
        """Decorate a function so that each call runs inside a step."""
        func_signature = signature(func)

        def format_name(*args: Any, **kwargs: Any) -> str:
            bound = func_signature.bind(*args, **kwargs)
            bound.apply_defaults()
            try:
                return self.name.format(*bound.args, **bound.arguments)
            except (AttributeError, IndexError, KeyError, ValueError):
                return self.name

        if iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                async with StepSpan(format_name(*args, **kwargs), scenario=self.scenario):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with StepSpan(format_name(*args, **kwargs), scenario=self.scenario):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    def _get_scenario(self) -> Scenario:
        if self.scenario is not None:
            return self.scenario

        return current_scenario()


def current_scenario() -> Scenario:
    """Return the scenario active in the current context.

    Raises:
        ScenarioError: If no scenario is active.
    """
    scenario = _current_scenario.get()
    if scenario is None:
        raise ScenarioError('No active scenario; use the `scenario` fixture or `with Scenario(...)`')

    return scenario


@overload
def step(name: str) -> StepSpan:
    ...  # pragma: no cover


@overload
def step[T](name: str, body: Callable[[], Awaitable[T]]) -> Awaitable[T]:
    ...  # pragma: no cover


@overload
def step[T](name: str, body: Callable[[], T]) -> T:
    ...  # pragma: no cover


def step(name: str, body: Callable[[], Any] | None = None) -> Any:
    """Run `body` as a step of the current scenario.

    Without a body, returns a `StepSpan` that resolves the scenario
    lazily, so it can decorate functions at import time.
    """
    if body is None:
        Scenario._check_name(name)  # noqa: SLF001
        return StepSpan(name)

    return current_scenario().step(name, body)


def attachment(name: str, content: 'Content', mime_type: str = 'text/plain') -> None:
    """Attach an artifact to the innermost active step of the current scenario."""
    current_scenario().attachment(name, content, mime_type)


def links(*entries: LinkEntry) -> None:
    """Add links to the current scenario."""
    current_scenario().links(*entries)


def owner(name: str) -> None:
    """Set the owner of the current scenario."""
    current_scenario().owner(name)


def issue(issue_id: str, url: str) -> None:
    """Add an issue reference to the current scenario."""
    current_scenario().issue(issue_id, url)
