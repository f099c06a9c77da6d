"""Tests for the node type registry."""

from unittest.mock import MagicMock

import pytest

from json_layout.shared.graphics import Rect
from json_layout.tree import DEFAULT_TYPE, FactoryBundle, Layer, TypeRegistry
from json_layout.tree.standard_types import DefaultLayerFactory


def make_bundle():
    return FactoryBundle(
        create_func=MagicMock(return_value=Layer()),
        destroy_func=MagicMock(),
        get_handle_func=MagicMock(side_effect=lambda node: node),
        set_frame_func=MagicMock(),
    )


class TestTypeRegistry:
    """Test suite for TypeRegistry."""

    def test_resolve_registered(self):
        """Test resolving a registered type."""
        registry = TypeRegistry()
        default, custom = DefaultLayerFactory(), make_bundle()
        registry.register(DEFAULT_TYPE, default)
        registry.register("Custom", custom)

        assert registry.resolve("Custom") is custom
        assert registry.get("Custom") is custom

    def test_resolve_falls_back_to_default(self):
        """Test that unknown types resolve to the default."""
        registry = TypeRegistry()
        default = DefaultLayerFactory()
        registry.register(DEFAULT_TYPE, default)

        assert registry.resolve("Nonexistent") is default
        assert registry.resolve(None) is default
        assert registry.get("Nonexistent") is None

    def test_resolve_without_default(self):
        """Test resolving with no default registered."""
        registry = TypeRegistry()
        with pytest.raises(LookupError):
            registry.resolve("anything")

    def test_last_registration_wins(self):
        """Test that a later registration replaces an earlier one."""
        registry = TypeRegistry()
        first, second = make_bundle(), make_bundle()
        registry.register("Custom", first)
        registry.register("Custom", second)

        assert registry.resolve("Custom") is second
        assert registry.names() == ["Custom"]
        assert len(registry) == 1

    def test_custom_default_name(self):
        """Test a custom default type name."""
        registry = TypeRegistry(default_type="container")
        default = DefaultLayerFactory()
        registry.register("container", default)
        assert registry.resolve("x") is default

    def test_register_validation(self):
        """Test registration argument validation."""
        registry = TypeRegistry()
        with pytest.raises(ValueError):
            registry.register("", make_bundle())
        with pytest.raises(TypeError):
            registry.register("Custom", object())

    def test_clear(self):
        """Test clearing the registry."""
        registry = TypeRegistry()
        registry.register("Custom", make_bundle())
        registry.clear()
        assert not registry.contains("Custom")


class TestFactoryBundle:
    def test_delegates_to_callables(self):
        """Test that FactoryBundle delegates to its callables."""
        bundle = make_bundle()
        layout, stream, token = object(), object(), object()

        node = bundle.create(layout, stream, token)
        bundle.create_func.assert_called_once_with(layout, stream, token)

        assert bundle.get_handle(node) is node
        bundle.set_frame(node, Rect(1, 2, 3, 4))
        bundle.set_frame_func.assert_called_once_with(node, Rect(1, 2, 3, 4))
        bundle.destroy(node)
        bundle.destroy_func.assert_called_once_with(node)
