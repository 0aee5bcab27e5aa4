"""
Step Contract.

Binds a step implementation to a FlowEngine. The step receives its context
plus one-shot callbacks: the first of ``on_complete``/``on_skip`` wins and
every later call is dropped.
"""

from practa.core.logging import get_logger
from practa.flow.engine import FlowEngine
from practa.flow.models import PractaComponent, PractaOutput

logger = get_logger(__name__)


class StepCallbacks:
    """One-shot completion callbacks for a single step run."""

    def __init__(self, engine: FlowEngine, practa_id: str):
        self._engine = engine
        self._practa_id = practa_id
        self._settled = False

    @property
    def settled(self) -> bool:
        """Whether the step already reported completion or skip."""
        return self._settled

    def _settle(self, action: str) -> bool:
        if self._settled:
            logger.warning(
                "Step %s called %s after it already finished; ignoring",
                self._practa_id,
                action,
            )
            return False
        self._settled = True
        return True

    def on_complete(self, output: PractaOutput) -> None:
        if self._settle("on_complete"):
            self._engine.complete_current_practa(output)

    def on_skip(self) -> None:
        if self._settle("on_skip"):
            self._engine.skip_current_practa()


def run_step(engine: FlowEngine, component: PractaComponent) -> StepCallbacks | None:
    """
    Hand the engine's running step to ``component``.

    Args:
        engine: Engine with a running flow
        component: Step implementation

    Returns:
        The callbacks given to the component, or None when no flow is running
    """
    context = engine.get_current_practa_context()
    practa = engine.current_practa()
    if context is None or practa is None:
        return None

    callbacks = StepCallbacks(engine, practa.id)
    component(context, callbacks.on_complete, callbacks.on_skip)
    logger.debug("Step %s rendered", practa.id)
    return callbacks
