"""
Live preview session: parse, build, evaluate and reconcile results.

A :class:`PreviewSession` belongs to one open preview panel. It owns the
parameter store, three independent debouncers and a monotonically increasing
``sequence`` counter. Every evaluation carries the sequence number current
when it was issued; a response is applied only if no newer cycle has started
since, so the state always reflects the most recently issued request.

Everything runs on a single asyncio event loop. State is mutated only by the
session's own handlers, which never interleave.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from .client import Evaluator, PreviewResult
from .config import PreviewConfig
from .debounce import Debouncer
from .document import DocumentKind, DocumentParser
from .errors import ParseError, PreviewError, TransportError, UnknownParameterError
from .observability import emit_evaluation_metric, get_logger, log_discarded_response
from .parameters import (
    EMPTY_SCHEMA,
    ParameterField,
    ParameterSchema,
    ParameterStore,
    extract_schema,
    reconcile_values,
)
from .request import PreviewRequest, build_request

logger = get_logger("mica_preview.session")


class SessionPhase(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    BUILDING_REQUEST = "building_request"
    EVALUATING = "evaluating"
    SETTLED = "settled"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a session, handed to observers."""

    phase: SessionPhase = SessionPhase.IDLE
    last_good_result: Optional[PreviewResult] = None
    active_error: Optional[PreviewError] = None
    is_evaluating: bool = False
    show_progress: bool = False
    sequence: int = 0


StateListener = Callable[[SessionState], None]


class PreviewSession:
    """Orchestrates repeated evaluation of an in-progress document."""

    def __init__(
        self,
        evaluator: Evaluator,
        *,
        kind: DocumentKind = DocumentKind.VIEW,
        text_quiet_period: float = 0.5,
        parameter_quiet_period: float = 0.5,
        progress_quiet_period: float = 0.25,
        row_limit: Optional[int] = None,
    ) -> None:
        self.kind = DocumentKind(kind)
        self.row_limit = row_limit
        self.parameters = ParameterStore()
        self._evaluator = evaluator
        self._parser = DocumentParser(self.kind)
        self._text = ""
        self._committed_values: Dict[str, Optional[str]] = {}
        self._schema: ParameterSchema = EMPTY_SCHEMA
        self._state = SessionState()
        self._listeners: List[StateListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._text_debouncer: Debouncer[str] = Debouncer(
            text_quiet_period, self._on_text, name="text"
        )
        self._parameter_debouncer: Debouncer[Dict[str, Optional[str]]] = Debouncer(
            parameter_quiet_period, self._on_parameters, name="parameters"
        )
        self._progress_debouncer: Debouncer[bool] = Debouncer(
            progress_quiet_period, self._on_progress, name="progress"
        )

    @classmethod
    def from_config(
        cls,
        evaluator: Evaluator,
        config: PreviewConfig,
        *,
        kind: DocumentKind = DocumentKind.VIEW,
    ) -> "PreviewSession":
        return cls(
            evaluator,
            kind=kind,
            text_quiet_period=config.text_quiet_period,
            parameter_quiet_period=config.parameter_quiet_period,
            progress_quiet_period=config.progress_quiet_period,
            row_limit=config.row_limit,
        )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def schema(self) -> ParameterSchema:
        return self._schema

    @property
    def closed(self) -> bool:
        return self._closed

    def parameter_fields(self) -> List[ParameterField]:
        return self.parameters.describe_fields(self._schema)

    def unknown_parameters(self) -> List[UnknownParameterError]:
        return self.parameters.unknown_parameters(self._schema)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register an observer; the returned callable removes it again."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_text(self, raw_text: str) -> None:
        self._ensure_open()
        self._text_debouncer.observe(raw_text)

    def set_parameter(self, name: str, raw_input: Optional[str]) -> None:
        self._ensure_open()
        self.parameters.set_value(name, raw_input)
        self._parameter_debouncer.observe(self.parameters.snapshot())

    def refresh(self, raw_text: Optional[str] = None) -> None:
        """Run a cycle right away, bypassing the quiet periods."""

        self._ensure_open()
        if raw_text is not None:
            self._text_debouncer.cancel()
            self._text = raw_text
        self._parameter_debouncer.cancel()
        self._committed_values = self.parameters.snapshot()
        self._run_cycle()

    def close(self) -> None:
        """Tear the session down; late responses become no-ops."""

        if self._closed:
            return
        self._closed = True
        self._text_debouncer.cancel()
        self._parameter_debouncer.cancel()
        self._progress_debouncer.cancel()
        self._listeners.clear()

    async def drain(self) -> None:
        """Wait until every evaluation issued so far has completed."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Preview session is closed")

    def _on_text(self, raw_text: str) -> None:
        self._text = raw_text
        self._run_cycle()

    def _on_parameters(self, values: Dict[str, Optional[str]]) -> None:
        self._committed_values = values
        self._run_cycle()

    def _on_progress(self, visible: bool) -> None:
        if self._closed or visible == self._state.show_progress:
            return
        self._update(show_progress=visible)

    def _run_cycle(self) -> None:
        if self._closed:
            return
        sequence = self._state.sequence + 1
        self._update(phase=SessionPhase.PARSING, sequence=sequence)

        try:
            document = self._parser.parse(self._text)
            schema = extract_schema(document) if document is not None else self._schema
        except ParseError as exc:
            logger.debug("Preview source rejected: %s", exc.format())
            self._update(phase=SessionPhase.SETTLED, active_error=exc, is_evaluating=False)
            return

        if document is None:
            # only the source problem goes away; an evaluation error stays visible
            error = self._state.active_error
            if isinstance(error, ParseError):
                error = None
            self._update(phase=SessionPhase.IDLE, active_error=error, is_evaluating=False)
            return

        self._schema = schema
        self._update(phase=SessionPhase.BUILDING_REQUEST)
        request = build_request(
            document,
            reconcile_values(self._committed_values, schema),
            limit=self.row_limit,
        )
        self._update(phase=SessionPhase.EVALUATING, is_evaluating=True)
        task = asyncio.ensure_future(self._evaluate(sequence, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _evaluate(self, sequence: int, request: PreviewRequest) -> None:
        started = time.perf_counter()
        try:
            result = await self._evaluator.evaluate(request)
        except PreviewError as exc:
            self._complete(sequence, started, error=exc)
        except Exception as exc:
            logger.exception("Unexpected failure while evaluating preview #%s", sequence)
            self._complete(sequence, started, error=TransportError(f"Evaluation failed: {exc}"))
        else:
            self._complete(sequence, started, result=result)

    def _complete(
        self,
        sequence: int,
        started: float,
        *,
        result: Optional[PreviewResult] = None,
        error: Optional[PreviewError] = None,
    ) -> None:
        outcome = "error" if error is not None else "success"
        duration = time.perf_counter() - started

        if self._closed or sequence != self._state.sequence:
            log_discarded_response(
                kind=self.kind.value,
                sequence=sequence,
                current=self._state.sequence,
                outcome=outcome,
                logger=logger,
            )
            emit_evaluation_metric(self.kind.value, "discarded", duration)
            return

        emit_evaluation_metric(self.kind.value, outcome, duration)
        if error is not None:
            logger.info("Preview #%s failed: %s", sequence, error.message)
            self._update(phase=SessionPhase.SETTLED, active_error=error, is_evaluating=False)
        else:
            self._update(
                phase=SessionPhase.SETTLED,
                last_good_result=result,
                active_error=None,
                is_evaluating=False,
            )

    def _update(self, **changes) -> None:
        previous = self._state
        self._state = replace(previous, **changes)
        if self._state.is_evaluating != previous.is_evaluating:
            self._progress_debouncer.observe(self._state.is_evaluating)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Preview state listener failed")


__all__ = ["PreviewSession", "SessionPhase", "SessionState", "StateListener"]
