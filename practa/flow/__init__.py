"""
Practa Flow - Step sequencing within one user session.

This module handles:
- Flow and step data model
- The closed registry of step kinds and preset flows
- The flow engine state machine
- The step callback contract
"""

from practa.flow.contract import StepCallbacks, run_step
from practa.flow.engine import FlowEngine
from practa.flow.models import (
    FlowDefinition,
    FlowExecutionState,
    FlowStatus,
    PractaContent,
    PractaContext,
    PractaDefinition,
    PractaOutput,
    PreviousPractaContext,
)
from practa.flow.registry import (
    PRACTA_DEFINITIONS,
    PRESET_FLOWS,
    PractaRegistry,
    PractaType,
    RegistryError,
)

__all__ = [
    "FlowDefinition",
    "FlowEngine",
    "FlowExecutionState",
    "FlowStatus",
    "PRACTA_DEFINITIONS",
    "PRESET_FLOWS",
    "PractaContent",
    "PractaContext",
    "PractaDefinition",
    "PractaOutput",
    "PractaRegistry",
    "PractaType",
    "PreviousPractaContext",
    "RegistryError",
    "StepCallbacks",
    "run_step",
]
