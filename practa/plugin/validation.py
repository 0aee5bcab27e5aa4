"""
Practa Validation.

Structural checks of a plugin's component and metadata. Pure functions: no
I/O, deterministic, never raise for bad input. Every check produces a
severity-tagged result and the report is valid when no error is present.
"""

import inspect
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from practa.plugin.metadata import PractaMetadata

ID_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
ID_MIN_LENGTH = 3
ID_MAX_LENGTH = 50
POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)

REQUIRED_FIELDS = (
    ("id", "Identifier"),
    ("name", "Display name"),
    ("description", "Description"),
    ("author", "Author name"),
    ("version", "Version"),
)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"


@dataclass(frozen=True)
class ValidationResult:
    """A single check outcome."""

    passed: bool
    message: str
    severity: Severity

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls(False, message, Severity.ERROR)

    @classmethod
    def warning(cls, message: str) -> "ValidationResult":
        return cls(True, message, Severity.WARNING)

    @classmethod
    def success(cls, message: str) -> "ValidationResult":
        return cls(True, message, Severity.SUCCESS)


@dataclass
class ValidationReport:
    """Itemized outcome of a validation run."""

    is_valid: bool
    results: list[ValidationResult] = field(default_factory=list)
    errors: list[ValidationResult] = field(default_factory=list)
    warnings: list[ValidationResult] = field(default_factory=list)
    successes: list[ValidationResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[ValidationResult]) -> "ValidationReport":
        errors = [r for r in results if r.severity is Severity.ERROR and not r.passed]
        warnings = [r for r in results if r.severity is Severity.WARNING]
        successes = [r for r in results if r.severity is Severity.SUCCESS and r.passed]
        return cls(
            is_valid=not errors,
            results=list(results),
            errors=errors,
            warnings=warnings,
            successes=successes,
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_metadata(metadata: Any) -> list[ValidationResult]:
    """
    Check plugin metadata.

    Args:
        metadata: PractaMetadata or the raw metadata.json mapping

    Returns:
        Check results in a stable order
    """
    if isinstance(metadata, PractaMetadata):
        metadata = metadata.to_dict()

    if not isinstance(metadata, dict):
        return [ValidationResult.error("Metadata is missing or not an object")]

    results: list[ValidationResult] = []

    for key, label in REQUIRED_FIELDS:
        value = metadata.get(key)
        if value is None or value == "":
            results.append(
                ValidationResult.error(f"Missing required field: {label} ({key})")
            )
        elif not isinstance(value, str):
            results.append(ValidationResult.error(f"{label} must be a string"))
        elif not value.strip():
            results.append(ValidationResult.error(f"{label} cannot be empty"))
        else:
            results.append(ValidationResult.success(f"{label} is valid"))

    practa_id = metadata.get("id")
    if isinstance(practa_id, str) and practa_id.strip():
        if not ID_MIN_LENGTH <= len(practa_id) <= ID_MAX_LENGTH:
            results.append(
                ValidationResult.error(
                    f"Identifier must be {ID_MIN_LENGTH}-{ID_MAX_LENGTH} characters "
                    f"(got {len(practa_id)})"
                )
            )
        if not ID_PATTERN.match(practa_id):
            results.append(
                ValidationResult.error(
                    f"Identifier {practa_id!r} must be lowercase with hyphens "
                    f"(e.g., 'my-practa')"
                )
            )

    version = metadata.get("version")
    if isinstance(version, str) and version.strip() and not VERSION_PATTERN.match(version):
        results.append(
            ValidationResult.error(
                f"Version {version!r} must follow format X.Y.Z (e.g., '1.0.0')"
            )
        )

    if "estimatedDuration" not in metadata or metadata["estimatedDuration"] is None:
        results.append(
            ValidationResult.warning("Consider adding estimatedDuration (in seconds)")
        )
    elif not _is_number(metadata["estimatedDuration"]):
        results.append(ValidationResult.error("estimatedDuration must be a number"))
    elif metadata["estimatedDuration"] < 0:
        results.append(ValidationResult.error("estimatedDuration cannot be negative"))
    else:
        results.append(ValidationResult.success("Estimated duration provided"))

    if metadata.get("category") is not None and not isinstance(metadata["category"], str):
        results.append(ValidationResult.error("category must be a string"))

    tags = metadata.get("tags")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)
    ):
        results.append(ValidationResult.error("tags must be a list of strings"))

    return results


def validate_component(component: Any) -> list[ValidationResult]:
    """
    Check that the plugin exposes a usable step component.

    Args:
        component: The object exported as the plugin's component

    Returns:
        Check results
    """
    if component is None:
        return [ValidationResult.error("Component export is missing")]

    if not callable(component):
        return [ValidationResult.error("Component must be callable")]

    results = [ValidationResult.success("Component is callable")]

    try:
        parameters = inspect.signature(component).parameters.values()
    except (TypeError, ValueError):
        results.append(
            ValidationResult.warning("Component signature could not be inspected")
        )
        return results

    takes_varargs = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in parameters)
    positional = sum(1 for p in parameters if p.kind in POSITIONAL_KINDS)

    if takes_varargs or positional >= 1:
        results.append(ValidationResult.success("Component accepts a context"))
    else:
        results.append(
            ValidationResult.warning("Component doesn't take a context (may be intentional)")
        )

    if takes_varargs or positional >= 3:
        results.append(ValidationResult.success("Component supports on_skip"))
    else:
        results.append(
            ValidationResult.warning(
                f"Component accepts {positional} positional parameter(s). Consider "
                "supporting (context, on_complete, on_skip) so users can skip"
            )
        )
    return results


def validate_practa(component: Any, metadata: Any) -> ValidationReport:
    """
    Run every structural check for a plugin.

    Args:
        component: The plugin's step component
        metadata: PractaMetadata or raw metadata mapping

    Returns:
        ValidationReport
    """
    return ValidationReport.from_results(
        validate_component(component) + validate_metadata(metadata)
    )


def is_practa_valid(component: Any, metadata: Any) -> bool:
    """Quick check that a plugin has no validation errors."""
    return validate_practa(component, metadata).is_valid
