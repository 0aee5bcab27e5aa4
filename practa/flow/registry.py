"""
Practa Registry.

Maps the closed set of step kinds to their display definitions and builds
flow definitions from them.

Key features:
- Closed PractaType enumeration (no string-keyed dynamic lookup)
- Deterministic default ids for steps and flows
- Named preset flows
"""

from dataclasses import dataclass
from enum import Enum

from practa.flow.models import FlowDefinition, PractaDefinition


class RegistryError(Exception):
    """Raised when an unknown step kind or preset is requested."""

    pass


class PractaType(Enum):
    """Every step kind the host knows how to run."""

    JOURNAL = "journal"
    SILENT_MEDITATION = "silent-meditation"
    PERSONALIZED_MEDITATION = "personalized-meditation"
    INTEGRATION_BREATH = "integration-breath"
    TEND = "tend"
    MY_PRACTA = "my-practa"


@dataclass(frozen=True)
class PractaInfo:
    """Static description of a step kind."""

    type: PractaType
    name: str
    description: str


PRACTA_DEFINITIONS: dict[PractaType, PractaInfo] = {
    PractaType.JOURNAL: PractaInfo(
        PractaType.JOURNAL,
        "Journal",
        "Capture a few words about how you feel right now",
    ),
    PractaType.SILENT_MEDITATION: PractaInfo(
        PractaType.SILENT_MEDITATION,
        "Silent Meditation",
        "A timed, unguided sit with an optional closing bell",
    ),
    PractaType.PERSONALIZED_MEDITATION: PractaInfo(
        PractaType.PERSONALIZED_MEDITATION,
        "Personalized Meditation",
        "A guided meditation shaped by your previous reflection",
    ),
    PractaType.INTEGRATION_BREATH: PractaInfo(
        PractaType.INTEGRATION_BREATH,
        "Integration Breath",
        "A few slow breaths to settle what came up",
    ),
    PractaType.TEND: PractaInfo(
        PractaType.TEND,
        "Tend",
        "Pick one small act of care to carry into your day",
    ),
    PractaType.MY_PRACTA: PractaInfo(
        PractaType.MY_PRACTA,
        "My Practa",
        "Your custom Practa - edit my-practa/index.py",
    ),
}

PRESET_FLOWS: dict[str, tuple[PractaType, ...]] = {
    "morning-reflection": (
        PractaType.SILENT_MEDITATION,
        PractaType.JOURNAL,
    ),
    "deep-session": (
        PractaType.JOURNAL,
        PractaType.PERSONALIZED_MEDITATION,
        PractaType.INTEGRATION_BREATH,
    ),
    "evening-tend": (
        PractaType.JOURNAL,
        PractaType.TEND,
    ),
}


def resolve_type(practa_type: PractaType | str) -> PractaType:
    """
    Resolve a tag or enum member to a PractaType.

    Raises:
        RegistryError: If the tag is not a known step kind
    """
    if isinstance(practa_type, PractaType):
        return practa_type
    try:
        return PractaType(practa_type)
    except ValueError as e:
        known = ", ".join(t.value for t in PractaType)
        raise RegistryError(
            f"Unknown practa type: {practa_type!r}. Known types: {known}"
        ) from e


class PractaRegistry:
    """
    Builds step and flow definitions.

    Default ids come from per-instance counters, so two registries never
    share state and ids are reproducible for a given call sequence.
    """

    def __init__(self):
        self._practa_counter = 0
        self._flow_counter = 0

    def describe(self, practa_type: PractaType | str) -> PractaInfo:
        """Return the static definition for a step kind."""
        return PRACTA_DEFINITIONS[resolve_type(practa_type)]

    def create_practa(
        self, practa_type: PractaType | str, id: str | None = None
    ) -> PractaDefinition:
        """
        Build one step definition.

        Args:
            practa_type: Step kind
            id: Explicit step id; defaults to ``<type>_<counter>``

        Returns:
            PractaDefinition

        Raises:
            RegistryError: If the step kind is unknown
        """
        info = self.describe(practa_type)
        if id is None:
            id = f"{info.type.value}_{self._practa_counter}"
            self._practa_counter += 1
        return PractaDefinition(
            id=id,
            type=info.type.value,
            name=info.name,
            description=info.description,
        )

    def create_flow(
        self,
        name: str,
        practa_types: list[PractaType | str] | tuple[PractaType | str, ...],
        id: str | None = None,
        description: str | None = None,
    ) -> FlowDefinition:
        """
        Assemble a flow definition.

        Step ids are ``<type>_<position>``; the position suffix keeps them
        unique even when a kind repeats within the flow.

        Args:
            name: Flow display name
            practa_types: Step kinds in execution order
            id: Explicit flow id; defaults to ``flow_<counter>``
            description: Optional description

        Returns:
            FlowDefinition

        Raises:
            RegistryError: If any step kind is unknown
        """
        practas = tuple(
            self.create_practa(practa_type, f"{resolve_type(practa_type).value}_{index}")
            for index, practa_type in enumerate(practa_types)
        )
        if id is None:
            id = f"flow_{self._flow_counter}"
            self._flow_counter += 1
        return FlowDefinition(id=id, name=name, practas=practas, description=description)

    def create_preset_flow(self, preset: str, id: str | None = None) -> FlowDefinition:
        """
        Build one of the named preset flows.

        Raises:
            RegistryError: If the preset is unknown
        """
        if preset not in PRESET_FLOWS:
            raise RegistryError(f"Unknown preset flow: {preset!r}")
        name = preset.replace("-", " ").title()
        return self.create_flow(name, PRESET_FLOWS[preset], id=id or f"preset-{preset}")

    def create_single_flow(self, practa_type: PractaType | str) -> FlowDefinition:
        """Build a one-step flow for trying out a single step kind."""
        info = self.describe(practa_type)
        return self.create_flow(
            info.name,
            [info.type],
            id=f"test-{info.type.value}",
            description=info.description,
        )
