"""
Tests for the Flow Engine.

This test suite covers:
1. Starting flows (including empty flows and replacement)
2. Completing, skipping and aborting steps
3. Context handed to the running step
4. Completion notification scheduling
"""

import asyncio
import copy
import re
import threading

import pytest

from practa.flow.engine import FlowEngine, default_scheduler, generate_flow_id
from practa.flow.models import FlowStatus, PractaContent, PractaOutput
from practa.flow.registry import PractaRegistry, PractaType


class ManualScheduler:
    """Collects scheduled callbacks so tests decide when they run."""

    def __init__(self):
        self.pending = []

    def __call__(self, callback):
        self.pending.append(callback)

    def run_all(self):
        pending, self.pending = self.pending, []
        for callback in pending:
            callback()


def text_output(value: str) -> PractaOutput:
    return PractaOutput(content=PractaContent(type="text", value=value))


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def engine(scheduler):
    return FlowEngine(scheduler=scheduler)


@pytest.fixture
def registry():
    return PractaRegistry()


class TestStartFlow:
    """Test flow start semantics."""

    def test_start_flow_initial_state(self, engine, registry):
        """A started flow runs from step 0 with no outputs."""
        flow = registry.create_flow("Test", [PractaType.JOURNAL, PractaType.TEND])
        state = engine.start_flow(flow)

        assert state is engine.current_flow
        assert state.status is FlowStatus.RUNNING
        assert state.current_index == 0
        assert state.practa_outputs == []
        assert state.started_at
        assert state.completed_at is None
        assert engine.current_practa().id == "journal_0"

    def test_flow_id_format(self):
        """Run ids carry a millisecond timestamp and a random suffix."""
        assert re.match(r"^flow_\d+_[0-9a-f]{9}$", generate_flow_id())
        assert generate_flow_id() != generate_flow_id()

    def test_start_flow_replaces_previous(self, engine, registry):
        """Starting a flow discards the in-flight one."""
        first = engine.start_flow(registry.create_flow("A", ["journal", "tend"]))
        engine.complete_current_practa(text_output("hi"))

        second = engine.start_flow(registry.create_flow("B", ["tend"]))

        assert engine.current_flow is second
        assert second.flow_id != first.flow_id
        assert second.current_index == 0
        assert second.practa_outputs == []

    def test_empty_flow_completes_immediately(self, engine, registry, scheduler):
        """A flow without steps completes on start and notifies."""
        finished = []
        engine.set_on_flow_complete(finished.append)

        state = engine.start_flow(registry.create_flow("Empty", []))

        assert state.status is FlowStatus.COMPLETED
        assert state.completed_at is not None
        assert engine.get_current_practa_context() is None
        scheduler.run_all()
        assert finished == [state]


class TestCompleteAndSkip:
    """Test step completion."""

    @pytest.mark.parametrize("steps", [1, 2, 5])
    def test_n_completes_finish_flow(self, engine, registry, steps):
        """N steps and N completions end in completed with N outputs."""
        flow = registry.create_flow("N", [PractaType.JOURNAL] * steps)
        engine.start_flow(flow)

        for i in range(steps):
            assert engine.current_flow.status is FlowStatus.RUNNING
            engine.complete_current_practa(text_output(str(i)))

        state = engine.current_flow
        assert state.status is FlowStatus.COMPLETED
        assert len(state.practa_outputs) == steps
        assert state.current_index == steps
        assert state.completed_at is not None

    def test_step_ids_unique_with_repeated_type(self, registry):
        """Repeated step kinds still get unique ids."""
        flow = registry.create_flow("Repeat", ["journal", "journal"])
        assert [p.id for p in flow.practas] == ["journal_0", "journal_1"]

    def test_complete_on_terminal_flow_is_noop(self, engine, registry):
        """Completing after the flow finished leaves the state untouched."""
        engine.start_flow(registry.create_flow("One", ["journal"]))
        engine.complete_current_practa(text_output("done"))

        before = copy.deepcopy(engine.current_flow)
        engine.complete_current_practa(text_output("late"))

        assert engine.current_flow == before

    def test_complete_on_aborted_flow_is_noop(self, engine, registry):
        """Completing an aborted flow does nothing."""
        engine.start_flow(registry.create_flow("Two", ["journal", "tend"]))
        engine.abort_flow()

        before = copy.deepcopy(engine.current_flow)
        engine.complete_current_practa(text_output("late"))

        assert engine.current_flow == before

    def test_complete_without_flow_is_noop(self, engine):
        """Completing with no flow does nothing."""
        engine.complete_current_practa(text_output("orphan"))
        assert engine.current_flow is None

    def test_skip_records_skipped_output(self, engine, registry):
        """Skipping records an empty output tagged as skipped."""
        engine.start_flow(registry.create_flow("Skip", ["journal", "tend"]))
        engine.skip_current_practa()

        state = engine.current_flow
        assert state.current_index == 1
        assert state.practa_outputs[0].content is None
        assert state.practa_outputs[0].metadata == {"skipped": True}


class TestAbort:
    """Test flow abort."""

    def test_abort_running_flow(self, engine, registry):
        """Abort moves a running flow to aborted."""
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.abort_flow()

        state = engine.current_flow
        assert state.status is FlowStatus.ABORTED
        assert state.completed_at is not None

    def test_abort_is_idempotent(self, engine, registry):
        """A second abort changes nothing."""
        engine.start_flow(registry.create_flow("A", ["journal", "tend"]))
        engine.abort_flow()
        before = copy.deepcopy(engine.current_flow)

        engine.abort_flow()

        assert engine.current_flow == before

    def test_abort_completed_flow_is_noop(self, engine, registry):
        """A completed flow stays completed."""
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.complete_current_practa(text_output("x"))
        engine.abort_flow()

        assert engine.current_flow.status is FlowStatus.COMPLETED

    def test_abort_without_flow_is_noop(self, engine):
        """Abort with no flow does nothing."""
        engine.abort_flow()
        assert engine.current_flow is None

    def test_abort_does_not_notify(self, engine, registry, scheduler):
        """Only completion triggers the handler."""
        finished = []
        engine.set_on_flow_complete(finished.append)
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.abort_flow()

        scheduler.run_all()
        assert finished == []


class TestPractaContext:
    """Test the context handed to the running step."""

    def test_no_context_without_flow(self, engine):
        assert engine.get_current_practa_context() is None

    def test_first_step_has_no_previous(self, engine, registry):
        state = engine.start_flow(registry.create_flow("A", ["journal", "tend"]))
        context = engine.get_current_practa_context()

        assert context.flow_id == state.flow_id
        assert context.practa_index == 0
        assert context.previous is None

    def test_no_context_after_completion_or_abort(self, engine, registry):
        """Context is None whenever the flow is not running."""
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.complete_current_practa(text_output("x"))
        assert engine.get_current_practa_context() is None

        engine.start_flow(registry.create_flow("B", ["journal"]))
        engine.abort_flow()
        assert engine.get_current_practa_context() is None

    def test_journal_then_meditation_scenario(self, engine, registry, scheduler):
        """Step 0 output reaches step 1; finishing step 1 completes the flow."""
        finished = []
        engine.set_on_flow_complete(finished.append)
        flow = registry.create_flow(
            "Scenario", [PractaType.JOURNAL, PractaType.SILENT_MEDITATION]
        )
        engine.start_flow(flow)

        engine.complete_current_practa(
            PractaOutput(
                content=PractaContent(type="text", value="hi"),
                metadata={"mood": "calm"},
            )
        )

        context = engine.get_current_practa_context()
        assert context.practa_index == 1
        assert context.previous.practa_id == "journal_0"
        assert context.previous.practa_type == "journal"
        assert context.previous.content == PractaContent(type="text", value="hi")
        assert context.previous.metadata == {"mood": "calm"}

        engine.complete_current_practa(PractaOutput(metadata={"duration": 300}))

        state = engine.current_flow
        assert state.status is FlowStatus.COMPLETED
        assert len(state.practa_outputs) == 2

        scheduler.run_all()
        assert finished == [state]

    def test_only_immediate_previous_exposed(self, engine, registry):
        """Step 2 sees step 1's output, not step 0's."""
        engine.start_flow(registry.create_flow("Three", ["journal", "tend", "journal"]))
        engine.complete_current_practa(text_output("first"))
        engine.complete_current_practa(text_output("second"))

        context = engine.get_current_practa_context()
        assert context.previous.practa_id == "tend_1"
        assert context.previous.content.value == "second"

    def test_previous_metadata_is_a_copy(self, engine, registry):
        """Mutating the context metadata does not touch recorded outputs."""
        engine.start_flow(registry.create_flow("Two", ["journal", "tend"]))
        engine.complete_current_practa(PractaOutput(metadata={"k": "v"}))

        context = engine.get_current_practa_context()
        context.previous.metadata["k"] = "changed"

        assert engine.current_flow.practa_outputs[0].metadata == {"k": "v"}


class TestCompletionNotification:
    """Test completion handler delivery."""

    def test_handler_not_called_inline(self, engine, registry, scheduler):
        """The handler runs only when the scheduler fires."""
        finished = []
        engine.set_on_flow_complete(finished.append)
        engine.start_flow(registry.create_flow("A", ["journal"]))

        engine.complete_current_practa(text_output("x"))

        assert finished == []
        assert len(scheduler.pending) == 1
        scheduler.run_all()
        assert len(finished) == 1
        assert finished[0].status is FlowStatus.COMPLETED

    def test_handler_may_start_new_flow(self, engine, registry, scheduler):
        """Starting a flow from the handler sees the committed transition."""
        flow = registry.create_flow("Loop", ["journal"])
        started = []

        def restart(state):
            assert state.status is FlowStatus.COMPLETED
            started.append(engine.start_flow(flow))

        engine.set_on_flow_complete(restart)
        first = engine.start_flow(flow)
        engine.complete_current_practa(text_output("x"))
        scheduler.run_all()

        assert len(started) == 1
        assert engine.current_flow is started[0]
        assert engine.current_flow.flow_id != first.flow_id
        assert engine.current_flow.status is FlowStatus.RUNNING

    def test_handler_exception_is_contained(self, engine, registry, scheduler):
        """A failing handler does not break the engine."""

        def boom(state):
            raise RuntimeError("handler failed")

        engine.set_on_flow_complete(boom)
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.complete_current_practa(text_output("x"))

        scheduler.run_all()
        assert engine.current_flow.status is FlowStatus.COMPLETED

    def test_no_handler_schedules_nothing(self, engine, registry, scheduler):
        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.complete_current_practa(text_output("x"))
        assert scheduler.pending == []

    @pytest.mark.asyncio
    async def test_default_scheduler_uses_running_loop(self):
        """Inside a loop the handler runs on a later loop iteration."""
        engine = FlowEngine()
        registry = PractaRegistry()
        finished = []
        engine.set_on_flow_complete(finished.append)

        engine.start_flow(registry.create_flow("A", ["journal"]))
        engine.complete_current_practa(text_output("x"))
        assert finished == []

        await asyncio.sleep(0)
        assert len(finished) == 1

    def test_default_scheduler_without_loop(self):
        """Outside a loop the callback runs on a timer thread."""
        done = threading.Event()
        default_scheduler(done.set)
        assert done.wait(timeout=5)
