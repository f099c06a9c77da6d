"""Diagnostic and metrics types shared by the tokenizer, stream and builder.

Every recoverable condition met while reading a layout document is
recorded as a DiagnosticEntry instead of being raised.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Debug-level information
    INFO = auto()       # Informational messages
    WARNING = auto()    # Input was coerced into something usable
    ERROR = auto()      # Input was dropped or replaced by a default
    CRITICAL = auto()   # The document could not be used at all


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    position: Optional[Dict[str, int]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
        }
        if self.position is not None:
            result["position"] = dict(self.position)
        if self.details:
            result["details"] = dict(self.details)
        return result


@dataclass
class BuildMetrics:
    """Counters collected while a layout document is built."""

    processing_time_ms: float = 0.0
    tokens_total: int = 0
    nodes_created: int = 0
    ids_registered: int = 0
    max_depth: int = 0
    fallback_types: int = 0

    @property
    def nodes_per_second(self) -> float:
        """Calculate nodes created per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.nodes_created * 1000.0) / self.processing_time_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processing_time_ms": self.processing_time_ms,
            "tokens_total": self.tokens_total,
            "nodes_created": self.nodes_created,
            "ids_registered": self.ids_registered,
            "max_depth": self.max_depth,
            "fallback_types": self.fallback_types,
        }
