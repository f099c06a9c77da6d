"""Layout: the owner of one built node tree and everything it references.

A Layout holds the type registry, the id index, the font and resource
registries and the ownership stack. ``parse`` builds one document into a
node tree; ``destroy`` tears every node down in reverse creation order.
"""

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from json_layout.shared import (
    SYSTEM_FONTS,
    BuildMetrics,
    DiagnosticEntry,
    DiagnosticSeverity,
    Font,
    KeyValueStore,
    LayoutConfig,
    get_logger,
)
from json_layout.tokenization import TokenizationResult, TokenStream, TokenType

from .builder import LayoutTreeBuilder
from .nodes import Layer
from .ownership import OwnedNode, OwnershipStack
from .registry import NodeFactory, TypeRegistry
from .standard_types import DefaultLayerFactory, add_standard_types

Source = Union[str, bytes]


class LayoutError(Exception):
    """Base exception for layout misuse."""


class LayoutStateError(LayoutError):
    """Raised when a layout is used in a state that does not allow it."""


@dataclass
class BuildResult:
    """Outcome of building one document.

    Building never raises for bad input; everything that went wrong is in
    ``diagnostics`` and ``success`` is False only when no root was built.
    """

    root: Optional[Layer] = None
    success: bool = False
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    metrics: BuildMetrics = field(default_factory=BuildMetrics)
    tokenization: Optional[TokenizationResult] = None
    correlation_id: Optional[str] = None

    def get_diagnostics_by_severity(
        self,
        severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def has_errors(self) -> bool:
        """Check if result contains any error diagnostics."""
        return any(
            diag.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for diag in self.diagnostics
        )

    def summary(self) -> Dict[str, Any]:
        counts = {severity.name: 0 for severity in DiagnosticSeverity}
        for diag in self.diagnostics:
            counts[diag.severity.name] += 1
        return {
            "success": self.success,
            "has_errors": self.has_errors(),
            "root_frame": self.root.frame.to_list() if self.root is not None else None,
            "diagnostics": counts,
            "metrics": self.metrics.to_dict(),
            "correlation_id": self.correlation_id,
        }


class Layout:
    """Builds a document into nodes and owns them until ``destroy``.

    Examples:
        >>> with Layout() as layout:
        ...     result = layout.parse('{"id": "root", "background": "#FF0000"}')
        ...     layout.find_by_id("root") is result.root
        True
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        correlation_id: Optional[str] = None,
        standard_types: bool = False,
    ) -> None:
        """Initialize layout.

        Args:
            config: Configuration; defaults to ``LayoutConfig()``
            correlation_id: Optional correlation ID for log records
            standard_types: Register TextLayer and BitmapLayer right away
        """
        self.config = config or LayoutConfig()
        if correlation_id is None and self.config.global_.enable_correlation_tracking:
            correlation_id = uuid.uuid4().hex[:12]
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "layout")

        self.types = TypeRegistry(self.config.build.default_type)
        self.ownership: OwnershipStack[OwnedNode] = OwnershipStack()
        self.ids: KeyValueStore[OwnedNode] = KeyValueStore()
        self.fonts: KeyValueStore[Font] = KeyValueStore()
        self.resources: KeyValueStore[int] = KeyValueStore()
        self.diagnostics: List[DiagnosticEntry] = []
        self.metrics = BuildMetrics()

        self._root_entry: Optional[OwnedNode] = None
        self._parsed = False
        self._destroyed = False
        self._builder = LayoutTreeBuilder(self)

        self.types.register(self.config.build.default_type, DefaultLayerFactory())
        if standard_types:
            self.add_standard_types()

    # Registration

    def add_type(self, name: str, factory: NodeFactory) -> None:
        """Register ``factory`` for ``name``; a later registration replaces it."""
        self._check_alive()
        self.types.register(name, factory)

    def add_standard_types(self) -> None:
        self._check_alive()
        add_standard_types(self)

    def add_font(self, name: str, font: Font) -> None:
        self._check_alive()
        self.fonts.put(name, font)

    def get_font(self, name: str) -> Optional[Font]:
        return self.fonts.get(name)

    def add_system_fonts(self) -> None:
        """Make every system font available under its key name."""
        for name, font in SYSTEM_FONTS.items():
            self.add_font(name, font)

    def add_resource(self, name: str, resource_id: int) -> None:
        self._check_alive()
        if not isinstance(resource_id, int) or isinstance(resource_id, bool):
            raise TypeError("Resource id must be an integer")
        self.resources.put(name, resource_id)

    def get_resource_id(self, name: str) -> Optional[int]:
        return self.resources.get(name)

    # Building

    def parse(self, source: Source) -> BuildResult:
        """Build ``source`` (JSON text or UTF-8 bytes) into this layout.

        Raises:
            LayoutStateError: The layout was destroyed or already parsed
        """
        self._check_alive()
        if self._parsed:
            raise LayoutStateError("Layout already holds a parsed document")
        self._parsed = True

        start_time = time.time()
        text = self._decode(source)
        build = self.config.build
        stream = TokenStream.from_text(
            text,
            self.config.tokenizer,
            scalar_policy=build.scalar_policy,
            correlation_id=self.correlation_id,
            record_diagnostics=build.record_diagnostics,
            diagnostics=self.diagnostics,
        )
        self.metrics.tokens_total = len(stream)
        self.logger.info(
            "Starting layout build",
            extra={"token_count": len(stream), "text_length": len(text)},
        )

        if stream.has_next():
            if stream.peek().type is TokenType.OBJECT:
                self._build_root(stream)
            else:
                self.report(
                    DiagnosticSeverity.CRITICAL,
                    f"Document root must be an object, found {stream.peek().type.name.lower()}",
                    "layout",
                )
        elif stream.tokenization is not None and stream.tokenization.success:
            self.report(DiagnosticSeverity.ERROR, "Document is empty", "layout")

        self.metrics.processing_time_ms = (time.time() - start_time) * 1000
        result = BuildResult(
            root=self.root,
            success=self.root is not None,
            diagnostics=list(self.diagnostics),
            metrics=self.metrics,
            tokenization=stream.tokenization,
            correlation_id=self.correlation_id,
        )
        self.logger.info(
            "Layout build completed",
            extra={
                "success": result.success,
                "nodes_created": self.metrics.nodes_created,
                "processing_time_ms": self.metrics.processing_time_ms,
            },
        )
        return result

    def parse_file(self, path: Union[str, Path]) -> BuildResult:
        """Read ``path`` as bytes and parse it; OSError propagates."""
        return self.parse(Path(path).read_bytes())

    def _build_root(self, stream: TokenStream) -> None:
        entry = self._builder.build_entry(stream)
        if entry is None:
            return
        self._root_entry = entry
        if not entry.handle.frame.is_zero:
            return
        bounds = self.config.build.display_bounds
        try:
            entry.factory.set_frame(entry.node, bounds)
        except Exception as e:
            self.logger.exception("Setting root frame failed")
            self.report(
                DiagnosticSeverity.ERROR,
                f"Could not set root frame {bounds.to_list()}: {e}",
                "layout",
                details={"exception_type": type(e).__name__},
            )

    def build_node(self, stream: TokenStream) -> Optional[Layer]:
        """Build the object at the cursor; for factories reading ``layers``."""
        return self._builder.build_node(stream)

    def _decode(self, source: Source) -> str:
        if isinstance(source, bytes):
            try:
                text = source.decode("utf-8")
            except UnicodeDecodeError as e:
                self.report(
                    DiagnosticSeverity.WARNING,
                    f"Invalid UTF-8 replaced: {e.reason}",
                    "layout",
                    details={"offset": e.start},
                )
                text = source.decode("utf-8", errors="replace")
        elif isinstance(source, str):
            text = source
        else:
            raise TypeError("Layout source must be str or bytes")
        return text[1:] if text.startswith("\ufeff") else text

    # Lookup

    @property
    def root(self) -> Optional[Layer]:
        if self._root_entry is None:
            return None
        return self._root_entry.handle

    def get_root_handle(self) -> Optional[Layer]:
        return self.root

    def find_by_id(self, identifier: str) -> Optional[Layer]:
        """Return the layer of the first node built with ``identifier``."""
        entry = self.ids.get(identifier)
        if entry is None:
            return None
        return entry.handle

    def find_node_by_id(self, identifier: str) -> Optional[Any]:
        """Return the factory's own node object rather than its layer."""
        entry = self.ids.get(identifier)
        if entry is None:
            return None
        return entry.node

    def iter_nodes(self) -> Iterator[OwnedNode]:
        """Iterate over owned nodes in creation order."""
        return iter(self.ownership)

    @property
    def node_count(self) -> int:
        return len(self.ownership)

    def add_to_layer(self, parent: Layer) -> None:
        """Attach the root layer under an external ``parent`` layer."""
        root = self.root
        if root is None:
            raise LayoutStateError("Layout has no root to attach")
        parent.add_child(root)

    # Diagnostics

    def report(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a diagnostic on behalf of the layout or a factory."""
        self.logger.debug(message, extra={"reporter": component})
        if not self.config.build.record_diagnostics:
            return
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            details=details,
            correlation_id=self.correlation_id,
        ))

    # Teardown

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Destroy every node in reverse creation order; safe to repeat."""
        if self._destroyed:
            return
        destroyed = 0
        while True:
            entry = self.ownership.pop()
            if entry is None:
                break
            try:
                entry.destroy()
                destroyed += 1
            except Exception:
                self.logger.exception(
                    "Node destroy failed",
                    extra={"type_name": entry.type_name},
                )
        self.ids.clear()
        self.types.clear()
        self.fonts.clear()
        self.resources.clear()
        self._root_entry = None
        self._destroyed = True
        self.logger.debug("Layout destroyed", extra={"nodes_destroyed": destroyed})

    def _check_alive(self) -> None:
        if self._destroyed:
            raise LayoutStateError("Layout has been destroyed")

    def __enter__(self) -> "Layout":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.destroy()

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else f"nodes={self.node_count}"
        return f"Layout({state}, types={self.types.names()})"
