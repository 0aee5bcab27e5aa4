"""
Settings Schema.

Each entry of the [practa] settings table is declared as a SettingField.

Key features:
- Fields carry their type, default, description and constraints
- Raw values (TOML scalars, CLI strings) are converted before checking
- Partial tables resolve to a complete mapping using the defaults
"""

from dataclasses import dataclass
from typing import Any

BOUNDED_TYPES = (int, float, str)

TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


class SchemaError(Exception):
    """Raised when a settings field is declared inconsistently."""

    pass


class ValidationError(SchemaError):
    """Raised when a settings value is rejected."""

    pass


@dataclass
class SettingField:
    """
    One typed entry of the settings table.

    Numeric fields bound the value itself; string fields bound its length.

    Attributes:
        type_: Python type of the value
        default: Value used when the table omits the field
        description: Written as a comment above the field
        min: Lower bound (value or length)
        max: Upper bound (value or length)
        choices: Closed set of accepted values
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: list[Any] | None = None

    def __post_init__(self):
        type_name = self.type_.__name__
        if not isinstance(self.default, self.type_):
            raise SchemaError(f"Default {self.default!r} must be of type {type_name}")

        if (self.min is not None or self.max is not None) and self.type_ not in BOUNDED_TYPES:
            raise SchemaError(f"{type_name} fields cannot declare min/max bounds")

        if self.choices is not None:
            wrong = [choice for choice in self.choices if not isinstance(choice, self.type_)]
            if wrong:
                raise SchemaError(f"Choices {wrong!r} are not {type_name} values")
            if self.default not in self.choices:
                raise SchemaError(f"Default {self.default!r} is not one of {self.choices}")

    def convert(self, raw: Any) -> Any:
        """
        Convert a raw value to the field type.

        Strings are parsed ("30" -> 30, "off" -> False); ints widen to float.

        Raises:
            ValidationError: If the value cannot be converted
        """
        if isinstance(raw, self.type_):
            return raw
        if self.type_ is float and isinstance(raw, int) and not isinstance(raw, bool):
            return float(raw)
        if not isinstance(raw, str):
            raise ValidationError(
                f"Expected {self.type_.__name__}, got {type(raw).__name__}"
            )

        if self.type_ is bool:
            token = raw.strip().lower()
            if token in TRUE_STRINGS:
                return True
            if token in FALSE_STRINGS:
                return False
            raise ValidationError(f"Cannot read {raw!r} as a boolean")
        try:
            return self.type_(raw)
        except ValueError as e:
            raise ValidationError(f"Cannot read {raw!r} as {self.type_.__name__}") from e

    def check(self, value: Any) -> None:
        """
        Check an already converted value against the constraints.

        Raises:
            ValidationError: If the value is rejected
        """
        if not isinstance(value, self.type_):
            raise ValidationError(
                f"Expected {self.type_.__name__}, got {type(value).__name__}"
            )
        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"{value!r} is not one of {self.choices}")

        if self.type_ not in BOUNDED_TYPES:
            return
        measured, what = (len(value), "Length") if self.type_ is str else (value, "Value")
        if self.min is not None and measured < self.min:
            raise ValidationError(f"{what} {measured} is below the minimum of {self.min}")
        if self.max is not None and measured > self.max:
            raise ValidationError(f"{what} {measured} is above the maximum of {self.max}")

    def parse(self, raw: Any) -> Any:
        """Convert then check ``raw``; returns the accepted value."""
        value = self.convert(raw)
        self.check(value)
        return value


def resolve_settings(table: dict[str, Any], schema: dict[str, SettingField]) -> dict[str, Any]:
    """
    Resolve a (possibly partial) settings table against the schema.

    Args:
        table: Raw key/value pairs, e.g. the parsed [practa] table
        schema: Field name -> SettingField

    Returns:
        Every schema field, taken from ``table`` or its default

    Raises:
        ValidationError: On unknown keys or rejected values
    """
    unknown = sorted(set(table) - set(schema))
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(unknown)}")

    resolved = {}
    for name, setting in schema.items():
        if name not in table:
            resolved[name] = setting.default
            continue
        try:
            resolved[name] = setting.parse(table[name])
        except ValidationError as e:
            raise ValidationError(f"Setting '{name}': {e}") from e
    return resolved


def default_settings(schema: dict[str, SettingField]) -> dict[str, Any]:
    """Map every field of ``schema`` to its default."""
    return {name: setting.default for name, setting in schema.items()}
