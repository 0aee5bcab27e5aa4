"""
Flow Data Model.

Plain dataclasses shared by the registry, the engine and step handlers.

Key features:
- Flow and step definitions
- Ephemeral execution state (never persisted here)
- Step output and the context handed to the next step
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class FlowStatus(Enum):
    """Flow execution status. ``COMPLETED`` and ``ABORTED`` are terminal."""

    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class PractaDefinition:
    """
    One step of a flow.

    Attributes:
        id: Step identifier, unique within its flow
        type: Step kind tag (a ``PractaType`` value)
        name: Display name
        description: Short description
    """

    id: str
    type: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class FlowDefinition:
    """
    An ordered sequence of steps executed as one session.

    Attributes:
        id: Flow identifier
        name: Display name
        practas: Steps in execution order
        description: Optional description
    """

    id: str
    name: str
    practas: tuple[PractaDefinition, ...]
    description: str | None = None

    def __len__(self) -> int:
        return len(self.practas)


@dataclass(frozen=True)
class PractaContent:
    """Primary content produced by a step (``type`` is "text" or "image")."""

    type: str
    value: str


@dataclass
class PractaOutput:
    """
    Structured result a step hands back on completion.

    Attributes:
        content: Optional primary content
        metadata: Free-form key/value data (themes, duration, skipped, ...)
    """

    content: PractaContent | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PreviousPractaContext:
    """What a step learns about the step immediately before it."""

    practa_id: str
    practa_type: str
    content: PractaContent | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PractaContext:
    """
    Context passed to the running step.

    Only the immediately preceding step is exposed, never the full history.
    """

    flow_id: str
    practa_index: int
    previous: PreviousPractaContext | None = None


@dataclass
class FlowExecutionState:
    """
    Execution state of the single active flow of a FlowEngine.

    Attributes:
        flow_id: Unique id of this run
        flow_definition: The flow being executed
        current_index: Index of the running step (0..N)
        practa_outputs: Outputs of completed steps, in order
        status: Current status
        started_at: ISO-8601 UTC start timestamp
        completed_at: ISO-8601 UTC timestamp of the terminal transition
    """

    flow_id: str
    flow_definition: FlowDefinition
    current_index: int = 0
    practa_outputs: list[PractaOutput] = field(default_factory=list)
    status: FlowStatus = FlowStatus.RUNNING
    started_at: str = ""
    completed_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not FlowStatus.RUNNING


CompleteHandler = Callable[[PractaOutput], None]
SkipHandler = Callable[[], None]
FlowCompleteHandler = Callable[[FlowExecutionState], None]


class PractaComponent(Protocol):
    """
    Contract every step implementation satisfies.

    The component renders, then calls exactly one of ``on_complete(output)``
    or ``on_skip()``, at most once.
    """

    def __call__(
        self,
        context: PractaContext,
        on_complete: CompleteHandler,
        on_skip: SkipHandler | None = None,
    ) -> Any: ...
