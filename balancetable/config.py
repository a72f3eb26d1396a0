"""Balance table configuration loader.

Loads and provides access to formatting, labelling and output defaults from
config.yaml. The loaded values are read-only; per-call overrides are passed
explicitly (``fmt=...``, ``defaults=OutputDefaults(...)``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from balancetable.errors import InvalidArgumentError

__all__ = ["OutputDefaults", "TableConfig", "config"]


class TableConfig:
    """Table configuration singleton."""

    _instance: TableConfig | None = None
    _config: dict[str, Any] | None = None

    def __new__(cls) -> TableConfig:
        """Singleton pattern to ensure config is loaded once."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Load configuration from YAML file."""
        if self._config is None:
            config_path = Path(__file__).parent / "config.yaml"
            with open(config_path, encoding="utf-8") as f:
                self._config = yaml.safe_load(f)

    def get(self, *keys: str, default: Any = None) -> Any:
        """Get configuration value by nested keys.

        Args:
            *keys: Nested keys to traverse (e.g., "limits", "max_levels")
            default: Default value if key path not found

        Returns:
            Configuration value or default

        Examples:
            >>> config = TableConfig()
            >>> config.get("limits", "max_levels")
            50
            >>> config.get("labels", "missing", default="?")
            '?'

        """
        value = self._config
        for key in keys:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    @property
    def fmt(self) -> str:
        """Default numeric format directive."""
        return cast(str, self.get("formatting", "fmt", default="%.3f"))

    @property
    def percent_decimals(self) -> int:
        """Number of decimal places for percentages."""
        return cast(int, self.get("formatting", "percent_decimals", default=1))

    @property
    def max_levels(self) -> int:
        """Ceiling on distinct levels of grouping/categorical columns."""
        return cast(int, self.get("limits", "max_levels", default=50))

    def label(self, key: str, default: str) -> str:
        """Display label for a single statistic kind."""
        return cast(str, self.get("labels", key, default=default))

    @property
    def reserved_clusters(self) -> str:
        """Column name recognized as cluster identifiers."""
        return cast(str, self.get("reserved", "clusters", default="clusters"))

    @property
    def reserved_blocks(self) -> str:
        """Column name recognized as block identifiers."""
        return cast(str, self.get("reserved", "blocks", default="blocks"))

    @property
    def provenance_marker(self) -> str:
        """Group label given to manually inserted rows."""
        return cast(str, self.get("augment", "provenance_marker", default="manual"))

    @property
    def default_output(self) -> str:
        """Output keyword used when none is requested."""
        return cast(str, self.get("output", "default", default="markdown"))

    @property
    def format_backends(self) -> dict[str, str]:
        """Backend used for each output format."""
        return cast(dict[str, str], self.get("output", "backends", default={}))


# Global singleton instance
config = TableConfig()


class OutputDefaults(BaseModel):
    """Default output keyword and backend per output format.

    Passed explicitly to the dispatcher; the module-level configuration is
    only used to build the default instance.
    """

    default_output: str = Field(default="markdown", description="Keyword used for 'default'")
    format_backends: dict[str, str] = Field(
        default_factory=dict, description="Output format to backend name"
    )

    model_config = {"frozen": True}

    @field_validator("default_output")
    @classmethod
    def validate_default_output(cls, v: str) -> str:
        """Reject an empty or self-referencing default keyword."""
        if not v or not v.strip():
            raise ValueError("default_output cannot be empty")
        if v.strip() == "default":
            raise ValueError("default_output cannot be 'default'")
        return v.strip()

    @classmethod
    def from_config(cls, **overrides: Any) -> OutputDefaults:
        """Build defaults from config.yaml, applying keyword overrides.

        Args:
            **overrides: Field values replacing the configured ones; a
                ``format_backends`` override is merged into the configured map

        Returns:
            OutputDefaults instance

        Raises:
            InvalidArgumentError: If the resulting values are invalid

        """
        backends = dict(config.format_backends)
        backends.update(overrides.pop("format_backends", {}) or {})
        values: dict[str, Any] = {
            "default_output": config.default_output,
            "format_backends": backends,
        }
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid output defaults: {e}") from e

    def backend_for(self, output_format: str) -> str | None:
        """Backend name configured for an output format."""
        return self.format_backends.get(output_format)
