"""Configuration classes for layout tokenizing and building.

This module provides configuration objects for the tokenizer, the tree
builder and process-wide settings, plus a frozen LayoutConfig that ties
them together with serialization helpers and presets.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from .graphics import Rect

VALID_LOGGING_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
_COMPONENTS = ["tokenizer", "build", "global_"]


class ScalarPolicy(Enum):
    """How malformed scalar values in a document are handled."""

    COERCE = auto()   # Salvage a value (C atoi/strtoul prefix rules), warn
    REJECT = auto()   # Replace with the field default, report an error


@dataclass
class TokenizerConfig:
    """Configuration for the JSON tokenizer."""

    max_tokens: Optional[int] = None
    allow_primitive_keys: bool = False

    def __post_init__(self) -> None:
        """Validate tokenizer configuration."""
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0 or None")


@dataclass
class BuildConfig:
    """Configuration for tree building."""

    display_width: int = 144
    display_height: int = 168
    max_depth: int = 64
    default_type: str = "default"
    scalar_policy: ScalarPolicy = ScalarPolicy.COERCE
    record_diagnostics: bool = True

    def __post_init__(self) -> None:
        """Validate build configuration."""
        if self.display_width <= 0:
            raise ValueError("display_width must be > 0")
        if self.display_height <= 0:
            raise ValueError("display_height must be > 0")
        if self.max_depth <= 0:
            raise ValueError("max_depth must be > 0")
        if not self.default_type:
            raise ValueError("default_type cannot be empty")

    @property
    def display_bounds(self) -> Rect:
        """Full display rectangle substituted for a root without a frame."""
        return Rect(0, 0, self.display_width, self.display_height)


@dataclass
class GlobalConfig:
    """Global configuration settings that apply across all components."""

    logging_level: str = "WARNING"
    enable_correlation_tracking: bool = True

    def __post_init__(self) -> None:
        """Validate global configuration."""
        if self.logging_level not in VALID_LOGGING_LEVELS:
            raise ValueError(f"logging_level must be one of {VALID_LOGGING_LEVELS}")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class LayoutConfig:
    """Complete, immutable configuration for building layouts."""

    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.tokenizer.__post_init__()
            self.build.__post_init__()
            self.global_.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

    def override(self, **kwargs: Any) -> "LayoutConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = LayoutConfig().override(
            ...     build__display_width=200,
            ...     tokenizer__max_tokens=512,
            ... )
        """
        nested: Dict[str, Dict[str, Any]] = {}
        top_level: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component = next(
                    (name for name in _COMPONENTS if key.startswith(name + "__")),
                    key.split("__", 1)[0],
                )
                field_name = key[len(component) + 2:]
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                        suggestions=[f"Use one of {_COMPONENTS}"],
                    )
                nested.setdefault(component, {})[field_name] = value
            else:
                top_level[key] = value

        new_fields: Dict[str, Any] = dict(top_level)
        for component, values in nested.items():
            try:
                new_fields[component] = replace(getattr(self, component), **values)
            except (TypeError, ValueError) as e:
                raise ConfigValidationError(str(e), field_name=component) from e
        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            return obj

        return _dataclass_to_dict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        def _section(section_cls: type, values: Dict[str, Any]) -> Any:
            kwargs: Dict[str, Any] = {}
            for name in section_cls.__dataclass_fields__:
                if name in values:
                    kwargs[name] = values[name]
            if isinstance(kwargs.get("scalar_policy"), str):
                try:
                    kwargs["scalar_policy"] = ScalarPolicy[kwargs["scalar_policy"]]
                except KeyError as e:
                    raise ConfigValidationError(
                        f"Unknown scalar policy: {kwargs['scalar_policy']}",
                        field_name="scalar_policy",
                        suggestions=[p.name for p in ScalarPolicy],
                    ) from e
            try:
                return section_cls(**kwargs)
            except ValueError as e:
                raise ConfigValidationError(str(e)) from e

        return cls(
            tokenizer=_section(TokenizerConfig, data.get("tokenizer", {})),
            build=_section(BuildConfig, data.get("build", {})),
            global_=_section(GlobalConfig, data.get("global_", {})),
            name=data.get("name"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "LayoutConfig":
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def permissive(cls) -> "LayoutConfig":
        """Salvage whatever the document offers; the default behavior."""
        return cls(name="permissive")

    @classmethod
    def strict(cls) -> "LayoutConfig":
        """Reject malformed scalars and non-string object keys."""
        return cls(
            tokenizer=TokenizerConfig(allow_primitive_keys=False),
            build=BuildConfig(scalar_policy=ScalarPolicy.REJECT),
            name="strict",
        )
