"""Recursive tree construction over a token stream.

Each JSON object is read three times from the same savepoint: once to
discover its ``type``, once by the resolved factory to construct the node,
and once more to apply the core ``id`` and ``frame`` fields. Only the last
pass's cursor advance is kept, so a node always consumes exactly one
subtree no matter how much of the object its factory understood.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

from json_layout.shared import DiagnosticEntry, DiagnosticSeverity, get_logger
from json_layout.tokenization import Token, TokenStream, TokenType

from .nodes import Layer
from .ownership import OwnedNode

if TYPE_CHECKING:
    from .layout import Layout

TYPE_KEY = "type"
ID_KEY = "id"
FRAME_KEY = "frame"


class LayoutTreeBuilder:
    """Builds nodes for one Layout, calling back into its registries.

    Factories reach the builder through ``Layout.build_node`` when they meet
    a nested ``layers`` array, making the builder and the factories
    mutually recursive.
    """

    def __init__(self, layout: "Layout") -> None:
        """Initialize tree builder.

        Args:
            layout: Layout whose registry, ownership stack and id index are used
        """
        self.layout = layout
        self.correlation_id = layout.correlation_id
        self.logger = get_logger(__name__, self.correlation_id, "layout_tree_builder")
        self._depth = 0

    @property
    def depth(self) -> int:
        """Number of objects currently under construction."""
        return self._depth

    def build_node(self, stream: TokenStream) -> Optional[Layer]:
        """Build the object at the cursor and return its layer handle."""
        entry = self.build_entry(stream)
        if entry is None:
            return None
        return entry.handle

    def build_entry(self, stream: TokenStream) -> Optional[OwnedNode]:
        """Build the object at the cursor and return its ownership entry.

        The cursor always ends one subtree past where it started. Returns
        None when the token is not an object, nesting is too deep, or the
        factory raised from ``create`` or ``get_handle``. Nodes already built
        stay on the ownership stack for teardown, but the ids registered
        while building a dropped node are withdrawn.
        """
        start = stream.tell()
        token = stream.next()
        if token.type is not TokenType.OBJECT:
            if token.type is not TokenType.UNDEFINED:
                stream.seek(start)
                stream.skip_subtree()
                self._report(
                    DiagnosticSeverity.WARNING,
                    f"Expected object for node, found {token.type.name.lower()}",
                    token,
                    start,
                )
            return None

        max_depth = self.layout.config.build.max_depth
        if self._depth >= max_depth:
            stream.seek(start)
            stream.skip_subtree()
            self._report(
                DiagnosticSeverity.ERROR,
                f"Node nested deeper than {max_depth} levels was skipped",
                token,
                start,
            )
            return None

        members = stream.tell()

        # Pass 1: type discovery
        type_name = self._discover_type(stream, token)
        stream.seek(members)

        factory = self.layout.types.get(type_name)
        if factory is None:
            factory = self.layout.types.resolve(type_name)
            if type_name is not None:
                self.layout.metrics.fallback_types += 1
                self._report(
                    DiagnosticSeverity.INFO,
                    f"Unknown node type '{type_name}', using default",
                    token,
                    start,
                )

        # Pass 2: construction
        ids_before = len(self.layout.ids)
        self._depth += 1
        self.layout.metrics.max_depth = max(self.layout.metrics.max_depth, self._depth)
        try:
            node = factory.create(self.layout, stream, token)
        except Exception as e:
            self.logger.exception(
                "Node factory failed",
                extra={"type_name": type_name, "token": int(start)},
            )
            self._report(
                DiagnosticSeverity.ERROR,
                f"Factory for '{type_name or self.layout.types.default_type}' failed: {e}",
                token,
                start,
                details={"exception_type": type(e).__name__},
            )
            self._discard_ids(ids_before)
            stream.seek(start)
            stream.skip_subtree()
            return None
        finally:
            self._depth -= 1

        entry = OwnedNode(factory, node, type_name)
        self.layout.ownership.push(entry)
        self.layout.metrics.nodes_created += 1

        # Pass 3: core fields; this advance is the one kept
        stream.seek(members)
        self._apply_core_fields(stream, token, entry, start)

        try:
            entry.layer = factory.get_handle(node)
        except Exception as e:
            self.logger.exception(
                "Node factory handle lookup failed",
                extra={"type_name": type_name, "token": int(start)},
            )
            self._report(
                DiagnosticSeverity.ERROR,
                f"Factory for '{type_name or self.layout.types.default_type}' "
                f"returned no layer: {e}",
                token,
                start,
                details={"exception_type": type(e).__name__},
            )
            self._discard_ids(ids_before)
            return None
        return entry

    def _discard_ids(self, length: int) -> None:
        # Nodes dropped from the tree must not be reachable by id.
        removed = self.layout.ids.truncate(length)
        self.layout.metrics.ids_registered -= removed

    def _discover_type(self, stream: TokenStream, token: Token) -> Optional[str]:
        for key in stream.iter_members(token):
            if key == TYPE_KEY:
                return stream.next_string()
        return None

    def _apply_core_fields(
        self,
        stream: TokenStream,
        token: Token,
        entry: OwnedNode,
        start: int,
    ) -> None:
        for key in stream.iter_members(token):
            if key == ID_KEY:
                identifier = stream.next_string()
                if identifier is not None:
                    self.layout.ids.put(identifier, entry)
                    self.layout.metrics.ids_registered += 1
            elif key == FRAME_KEY:
                frame = stream.next_rect()
                try:
                    entry.factory.set_frame(entry.node, frame)
                except Exception as e:
                    self.logger.exception("Setting node frame failed")
                    self._report(
                        DiagnosticSeverity.ERROR,
                        f"Could not set frame {frame.to_list()}: {e}",
                        token,
                        start,
                    )

    def _report(
        self,
        severity: DiagnosticSeverity,
        message: str,
        token: Token,
        index: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger.debug(message, extra={"token": int(index)})
        if not self.layout.config.build.record_diagnostics:
            return
        self.layout.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component="layout_tree_builder",
            position={"token": int(index), "offset": token.start},
            details=details,
            correlation_id=self.correlation_id,
        ))
