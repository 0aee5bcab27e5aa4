"""
Practa Kit - Flow execution and plugin distribution for Practa steps.

This is the main package that exports the public API.
"""

__version__ = "0.1.0"

# Import core components
from practa.flow import FlowEngine, PractaRegistry, run_step
from practa.plugin import assets, metadata, packaging, validation
from practa.template import sync as sync_module

# Create namespace objects for clean API using types.SimpleNamespace
from types import SimpleNamespace

# Plugin distribution API namespace
plugin = SimpleNamespace(
    load_metadata=metadata.load_metadata,
    bump=metadata.bump_metadata_patch,
    validate=validation.validate_practa,
    audit=assets.audit_assets,
    Pipeline=packaging.PackagingPipeline,
)

# Template sync API namespace
template = SimpleNamespace(
    Tracker=sync_module.TemplateSyncTracker,
)

__all__ = [
    "__version__",
    "FlowEngine",
    "PractaRegistry",
    "run_step",
    "plugin",
    "template",
]
