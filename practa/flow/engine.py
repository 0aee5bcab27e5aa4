"""
Flow Engine.

Sequences the steps of one flow within a user session and forwards each
completed step's output to the next step as context.

Key features:
- Single active flow per engine instance (starting a flow replaces the old one)
- running -> completed | aborted, both terminal
- Invalid calls are logged no-ops, never exceptions
- Completion handler runs on a separate task, after the transition commits
"""

import asyncio
import threading
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from practa.core.logging import get_logger
from practa.flow.models import (
    FlowCompleteHandler,
    FlowDefinition,
    FlowExecutionState,
    FlowStatus,
    PractaContext,
    PractaDefinition,
    PractaOutput,
    PreviousPractaContext,
)

logger = get_logger(__name__)

Scheduler = Callable[[Callable[[], None]], None]


def default_scheduler(callback: Callable[[], None]) -> None:
    """
    Run ``callback`` outside the current call stack.

    Uses the running asyncio loop when there is one, otherwise a zero-delay
    timer thread.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(0, callback)
        timer.daemon = True
        timer.start()
        return
    loop.call_soon(callback)


def generate_flow_id() -> str:
    """Return a fresh run id such as ``flow_1718000000000_3f9a1c2b7``."""
    return f"flow_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class FlowEngine:
    """
    Explicit session object owning one flow's execution state.

    The orchestrating caller creates and holds the engine; there is no
    module-level instance.
    """

    def __init__(self, scheduler: Scheduler | None = None):
        """
        Initialize FlowEngine.

        Args:
            scheduler: Callable that runs a zero-argument callback later, off
                the current call stack. Defaults to :func:`default_scheduler`.
        """
        self._scheduler = scheduler or default_scheduler
        self._current: FlowExecutionState | None = None
        self._on_flow_complete: FlowCompleteHandler | None = None
        self._lock = threading.Lock()

    @property
    def current_flow(self) -> FlowExecutionState | None:
        """The active (or last finished) flow state, if any."""
        return self._current

    def set_on_flow_complete(self, handler: FlowCompleteHandler | None) -> None:
        """Register (or clear, with None) the flow completion handler."""
        self._on_flow_complete = handler

    def start_flow(self, flow_definition: FlowDefinition) -> FlowExecutionState:
        """
        Start a new flow, replacing any prior one.

        Args:
            flow_definition: The flow to run

        Returns:
            The new execution state
        """
        state = FlowExecutionState(
            flow_id=generate_flow_id(),
            flow_definition=flow_definition,
            started_at=_utcnow(),
        )

        with self._lock:
            if self._current is not None and not self._current.is_terminal:
                logger.debug(
                    "Replacing in-flight flow %s with %s",
                    self._current.flow_id,
                    state.flow_id,
                )
            self._current = state
            # An empty flow has nothing to run
            completed = len(flow_definition) == 0
            if completed:
                state.status = FlowStatus.COMPLETED
                state.completed_at = _utcnow()

        logger.info(
            "Started flow %s (%s) with %d step(s)",
            state.flow_id,
            flow_definition.name,
            len(flow_definition),
        )
        if completed:
            self._notify_complete(state)
        return state

    def complete_current_practa(self, output: PractaOutput) -> None:
        """
        Record the running step's output and advance.

        No-op when no flow exists or the flow is not running.

        Args:
            output: The step's output
        """
        with self._lock:
            state = self._current
            if state is None or state.status is not FlowStatus.RUNNING:
                logger.debug("complete_current_practa ignored: no running flow")
                return

            state.practa_outputs.append(output)
            state.current_index += 1
            completed = state.current_index >= len(state.flow_definition)
            if completed:
                state.status = FlowStatus.COMPLETED
                state.completed_at = _utcnow()

        if completed:
            logger.info("Flow %s completed", state.flow_id)
            self._notify_complete(state)

    def skip_current_practa(self) -> None:
        """Complete the running step with an empty, skipped output."""
        self.complete_current_practa(PractaOutput(metadata={"skipped": True}))

    def abort_flow(self) -> None:
        """
        Abort the active flow.

        No-op when no flow exists or the flow is already terminal.
        """
        with self._lock:
            state = self._current
            if state is None or state.is_terminal:
                logger.debug("abort_flow ignored: no running flow")
                return
            state.status = FlowStatus.ABORTED
            state.completed_at = _utcnow()

        logger.info("Flow %s aborted at step %d", state.flow_id, state.current_index)

    def current_practa(self) -> PractaDefinition | None:
        """The step that is currently running, or None."""
        state = self._current
        if state is None or state.status is not FlowStatus.RUNNING:
            return None
        return state.flow_definition.practas[state.current_index]

    def get_current_practa_context(self) -> PractaContext | None:
        """
        Build the context for the running step.

        Returns:
            PractaContext, or None unless a flow is running
        """
        state = self._current
        if state is None or state.status is not FlowStatus.RUNNING:
            return None

        index = state.current_index
        previous = None
        if index > 0 and state.practa_outputs:
            previous_output = state.practa_outputs[index - 1]
            previous_practa = state.flow_definition.practas[index - 1]
            previous = PreviousPractaContext(
                practa_id=previous_practa.id,
                practa_type=previous_practa.type,
                content=previous_output.content,
                metadata=dict(previous_output.metadata),
            )

        return PractaContext(flow_id=state.flow_id, practa_index=index, previous=previous)

    def _notify_complete(self, state: FlowExecutionState) -> None:
        """Schedule the completion handler for ``state``, if one is registered."""
        handler = self._on_flow_complete
        if handler is None:
            return

        def deliver() -> None:
            try:
                handler(state)
            except Exception:
                logger.exception("Flow completion handler failed for %s", state.flow_id)

        self._scheduler(deliver)
