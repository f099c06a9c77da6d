"""Tests for three-pass node construction."""

import json
import random

from json_layout.shared.config import LayoutConfig
from json_layout.shared.graphics import Color, Rect
from json_layout.shared.result import DiagnosticSeverity
from json_layout.tokenization import TokenStream, TokenType
from json_layout.tree import Layer, Layout, NodeFactory, build_children


class LazyFactory(NodeFactory):
    """Reads nothing at all."""

    def create(self, layout, stream, token):
        return Layer(kind="Lazy")

    def destroy(self, node):
        node.destroy()

    def get_handle(self, node):
        return node

    def set_frame(self, node, frame):
        node.set_frame(frame)


class RunawayFactory(LazyFactory):
    """Reads far past its own object."""

    def create(self, layout, stream, token):
        for _ in range(1000):
            stream.next()
        return Layer(kind="Runaway")


class GreedyFactory(LazyFactory):
    """Reads every member, including the core fields, as scalars."""

    def create(self, layout, stream, token):
        layer = Layer(kind="Greedy")
        for key in stream.iter_members(token):
            if key == "layers":
                build_children(layout, stream, layer)
            elif key == "frame":
                stream.next_rect()
            else:
                stream.next_string()
        return layer


class AbandoningFactory(LazyFactory):
    """Builds its children and then raises."""

    def create(self, layout, stream, token):
        layer = Layer(kind="Abandoning")
        for key in stream.iter_members(token):
            if key == "layers":
                build_children(layout, stream, layer)
        raise RuntimeError("gave up after children")


class HandlelessFactory(LazyFactory):
    """Creates nodes that have no layer to hand out."""

    def __init__(self):
        self.destroyed = []

    def create(self, layout, stream, token):
        return {"kind": "handleless"}

    def destroy(self, node):
        self.destroyed.append(node)

    def get_handle(self, node):
        raise LookupError("no layer")


class FramelessFactory(LazyFactory):
    """Refuses every frame."""

    def set_frame(self, node, frame):
        raise ValueError("frame refused")


JUNK_VALUES = [1, "x", True, None, [1, [2, {"q": 3}]], {"nested": {"deep": [4]}}]


def random_node(rng, depth):
    node = {}
    keys = ["type", "id", "frame", "background", "clips", "layers", "junk", "text"]
    rng.shuffle(keys)
    for key in keys[:rng.randint(0, len(keys))]:
        if key == "type":
            node[key] = rng.choice(["Lazy", "Runaway", "Greedy", "TextLayer", "Missing", 7, ["Lazy"]])
        elif key == "id":
            node[key] = rng.choice(["a", "b", 3, {"x": 1}])
        elif key == "frame":
            node[key] = rng.choice([[1, 2, 3, 4], [1, 2], [0, 0, 0, 0, 5], "12", {"x": 1}])
        elif key == "background":
            node[key] = rng.choice(["#FF0000", "zz", [1]])
        elif key == "clips":
            node[key] = rng.choice([True, False, "yes"])
        elif key == "layers" and depth > 0:
            node[key] = [
                random_node(rng, depth - 1) if rng.random() < 0.7 else rng.choice(JUNK_VALUES)
                for _ in range(rng.randint(0, 3))
            ]
        else:
            node[key] = rng.choice(JUNK_VALUES)
    return node


def make_layout(**overrides):
    config = LayoutConfig().override(**overrides) if overrides else LayoutConfig()
    layout = Layout(config, standard_types=True)
    layout.add_type("Lazy", LazyFactory())
    layout.add_type("Runaway", RunawayFactory())
    layout.add_type("Greedy", GreedyFactory())
    return layout


def skip_position(text, index):
    stream = TokenStream.from_text(text)
    stream.seek(index)
    stream.skip_subtree()
    return stream.tell()


class TestThreePassIdempotence:
    """A full build_node advances exactly as far as one subtree skip."""

    def test_build_node_advance_matches_skip_for_random_documents(self):
        """Test that building a node advances like one skip."""
        rng = random.Random(2024)
        for _ in range(150):
            text = json.dumps(random_node(rng, 3))
            layout = make_layout()
            stream = TokenStream.from_text(text)
            for index, token in enumerate(stream.tokens):
                if token.type is not TokenType.OBJECT:
                    continue
                stream.seek(index)
                layout.build_node(stream)
                assert stream.tell() == skip_position(text, index), text
            layout.destroy()

    def test_non_object_is_skipped_whole(self):
        """Test that a non-object token is skipped whole."""
        layout = make_layout()
        stream = TokenStream.from_text('[[1, {"a": 2}], 3]')
        stream.next()
        assert layout.build_node(stream) is None
        assert stream.token_text(stream.next()) == "3"
        layout.destroy()

    def test_build_node_with_no_tokens_left(self):
        """Test building when no tokens are left."""
        layout = make_layout()
        stream = TokenStream.from_text("{}")
        stream.next()
        assert layout.build_node(stream) is None
        assert stream.tell() == 1
        layout.destroy()


class TestFrameSubstitution:
    """Test display bounds substitution at the root."""

    def test_root_without_frame_gets_display_bounds(self):
        """Test that a root without a frame gets the display bounds."""
        with Layout() as layout:
            result = layout.parse("{}")
            assert result.root.frame == Rect(0, 0, 144, 168)

    def test_root_with_explicit_frame(self):
        """Test that an explicit root frame is kept."""
        with Layout() as layout:
            result = layout.parse('{"frame": [10, 20, 30, 40]}')
            assert result.root.frame == Rect(10, 20, 30, 40)

    def test_root_with_explicit_zero_frame_gets_display_bounds(self):
        """Test that an explicit zero root frame gets the display bounds."""
        with Layout() as layout:
            result = layout.parse('{"frame": [0, 0, 0, 0]}')
            assert result.root.frame == Rect(0, 0, 144, 168)

    def test_custom_display(self):
        """Test a custom display size."""
        config = LayoutConfig().override(build__display_width=200, build__display_height=228)
        with Layout(config) as layout:
            assert layout.parse("{}").root.frame == Rect(0, 0, 200, 228)

    def test_children_keep_zero_frame(self):
        """Test that children without a frame stay zero."""
        with Layout() as layout:
            layout.parse('{"layers": [{}]}')
            assert layout.root.children[0].frame == Rect.ZERO


class TestIdLookup:
    def test_duplicate_ids_first_wins(self):
        """Ids a, b, a in creation order; the first a is returned."""
        document = {
            "layers": [
                {"id": "a", "background": "#FF0000"},
                {"id": "b"},
                {"id": "a", "background": "#00FF00"},
            ]
        }
        with Layout() as layout:
            layout.parse(json.dumps(document))

            assert layout.find_by_id("a").background_color == Color(255, 0, 0)
            assert layout.find_by_id("b") is layout.root.children[1]
            assert layout.find_by_id("c") is None
            assert layout.ids.keys() == ["a", "b", "a"]
            assert layout.metrics.ids_registered == 3

    def test_find_node_by_id_returns_factory_node(self):
        """Test looking up the factory's own node by id."""
        with Layout(standard_types=True) as layout:
            layout.parse('{"layers": [{"type": "TextLayer", "id": "title", "text": "Hi"}]}')
            text_layer = layout.find_node_by_id("title")
            assert text_layer.text == "Hi"
            assert layout.find_by_id("title") is text_layer.layer

    def test_non_string_id_is_ignored(self):
        """Test that a non-string id is not registered."""
        with Layout() as layout:
            layout.parse('{"id": {"x": 1}, "layers": [{"id": 5}]}')
            assert layout.ids.keys() == ["5"]


class TestTypeFallback:
    def test_unregistered_type_uses_default_factory(self):
        """Nonexistent types honor background, clips and layers."""
        document = {
            "type": "Nonexistent",
            "background": "#00FF00",
            "clips": False,
            "layers": [{"frame": [1, 1, 2, 2]}],
        }
        with Layout() as layout:
            result = layout.parse(json.dumps(document))

            root = result.root
            assert root.kind == "Layer"
            assert root.background_color == Color(0, 255, 0)
            assert root.clips is False
            assert [child.frame for child in root.children] == [Rect(1, 1, 2, 2)]
            assert result.metrics.fallback_types == 1
            infos = result.get_diagnostics_by_severity(DiagnosticSeverity.INFO)
            assert any("Nonexistent" in diag.message for diag in infos)

    def test_type_key_position_does_not_matter(self, recorder):
        """Test that the type key may appear anywhere in the object."""
        with Layout() as layout:
            layout.add_type("Recording", recorder)
            layout.parse('{"name": "root", "frame": [1, 2, 3, 4], "type": "Recording"}')
            assert recorder.created == ["root"]
            assert recorder.frames == [("root", Rect(1, 2, 3, 4))]

    def test_non_string_type_falls_back(self):
        """Test that a non-string type falls back to the default."""
        with Layout() as layout:
            result = layout.parse('{"type": ["TextLayer"], "background": "#0000FF"}')
            assert result.root.background_color == Color(0, 0, 255)


class TestTeardown:
    def test_reverse_creation_order(self, recorder):
        """Depth 3, five nodes; each destroyed once in reverse push order."""
        document = {
            "type": "Recording", "name": "root",
            "layers": [
                {"type": "Recording", "name": "A", "layers": [
                    {"type": "Recording", "name": "C"},
                    {"type": "Recording", "name": "D"},
                ]},
                {"type": "Recording", "name": "B"},
            ],
        }
        layout = Layout()
        layout.add_type("Recording", recorder)
        layout.parse(json.dumps(document))

        assert recorder.created == ["C", "D", "A", "B", "root"]
        assert [entry.node.owner for entry in layout.iter_nodes()] == recorder.created

        layout.destroy()
        assert recorder.destroyed == ["root", "B", "A", "D", "C"]

        layout.destroy()
        assert len(recorder.destroyed) == 5

    def test_destroy_continues_after_failure(self, recorder, caplog):
        """Test that teardown continues after a destroy failure."""
        class FailingDestroy(type(recorder)):
            def destroy(self, node):
                super().destroy(node)
                raise RuntimeError("cannot free")

        failing = FailingDestroy()
        layout = Layout()
        layout.add_type("Failing", failing)
        layout.parse('{"type": "Failing", "name": "root", "layers": [{"type": "Failing", "name": "x"}]}')

        layout.destroy()
        assert failing.destroyed == ["root", "x"]
        assert layout.destroyed
        assert "Node destroy failed" in caplog.text

    def test_destroy_after_partial_build(self, recorder, exploding):
        """Test destroying a partially built tree."""
        layout = Layout()
        layout.add_type("Recording", recorder)
        layout.add_type("Exploding", exploding)
        layout.parse(json.dumps({
            "type": "Recording", "name": "root",
            "layers": [{"type": "Recording", "name": "ok"}, {"type": "Exploding", "a": 1}],
        }))
        layout.destroy()
        assert recorder.destroyed == ["root", "ok"]
        assert exploding.destroy_calls == 0


class TestFailures:
    def test_factory_exception_skips_object(self, recorder, exploding):
        """Test that a raising factory yields no child and keeps siblings aligned."""
        document = {
            "type": "Recording", "name": "root",
            "layers": [
                {"type": "Exploding", "layers": [{"type": "Recording", "name": "hidden"}]},
                {"type": "Recording", "name": "after"},
            ],
        }
        with Layout() as layout:
            layout.add_type("Recording", recorder)
            layout.add_type("Exploding", exploding)
            result = layout.parse(json.dumps(document))

            assert [child.owner for child in result.root.children] == ["after"]
            assert recorder.created == ["after", "root"]
            errors = result.get_diagnostics_by_severity(DiagnosticSeverity.ERROR)
            assert any("boom" in diag.message for diag in errors)
            assert result.success

    def test_failed_parent_withdraws_child_ids(self):
        """Test that ids of children built under a failed node are withdrawn."""
        document = {
            "id": "root",
            "layers": [
                {"id": "first"},
                {"type": "Abandoning", "id": "parent", "layers": [{"id": "kid"}, {"id": "kid2"}]},
                {"id": "sib"},
            ],
        }
        layout = Layout()
        layout.add_type("Abandoning", AbandoningFactory())
        result = layout.parse(json.dumps(document))

        assert result.success
        assert layout.find_by_id("kid") is None
        assert layout.find_by_id("kid2") is None
        assert layout.find_by_id("parent") is None
        assert result.root.children == [
            layout.find_by_id("first"),
            layout.find_by_id("sib"),
        ]
        assert layout.find_by_id("root") is result.root
        assert layout.ids.keys() == ["first", "sib", "root"]
        assert result.metrics.ids_registered == 3
        # kid and kid2 stay owned so teardown still reaches them
        assert layout.node_count == 5
        layout.destroy()
        assert layout.node_count == 0

    def test_handle_failure_drops_only_that_child(self):
        """Test that a factory failing to hand out a layer loses only its slot."""
        handleless = HandlelessFactory()
        with Layout() as layout:
            layout.add_type("Handleless", handleless)
            result = layout.parse(
                '{"id": "r", "layers": [{"type": "Handleless", "id": "bad"}, {"id": "sib"}]}'
            )

            assert result.success
            assert layout.find_by_id("r") is result.root
            assert result.root.children == [layout.find_by_id("sib")]
            assert layout.find_by_id("bad") is None
            errors = result.get_diagnostics_by_severity(DiagnosticSeverity.ERROR)
            assert any("no layer" in diag.message for diag in errors)
        assert handleless.destroyed == [{"kind": "handleless"}]

    def test_root_handle_failure_gives_no_root(self):
        """Test that a root without a layer fails the build without raising."""
        handleless = HandlelessFactory()
        with Layout() as layout:
            layout.add_type("Handleless", handleless)
            result = layout.parse('{"type": "Handleless"}')

            assert not result.success
            assert layout.root is None
            assert result.has_errors()
        assert len(handleless.destroyed) == 1

    def test_root_frame_failure_keeps_root(self):
        """Test that a root refusing the display bounds is still built."""
        with Layout() as layout:
            layout.add_type("Frameless", FramelessFactory())
            result = layout.parse('{"type": "Frameless", "id": "root"}')

            assert result.success
            assert layout.find_by_id("root") is result.root
            assert result.root.frame == Rect.ZERO
            errors = result.get_diagnostics_by_severity(DiagnosticSeverity.ERROR)
            assert any("Could not set root frame" in diag.message for diag in errors)

    def test_non_object_children_are_omitted(self):
        """Test that non-object children are omitted."""
        with Layout() as layout:
            result = layout.parse('{"layers": [1, "x", [{}], {"id": "kept"}, null]}')
            assert len(result.root.children) == 1
            assert layout.find_by_id("kept") is result.root.children[0]
            warnings = result.get_diagnostics_by_severity(DiagnosticSeverity.WARNING)
            assert len(warnings) == 4

    def test_layers_not_an_array(self):
        """Test a layers value that is not an array."""
        with Layout() as layout:
            result = layout.parse('{"layers": {"id": "x"}, "id": "root"}')
            assert result.root.children == []
            assert layout.find_by_id("x") is None
            assert layout.find_by_id("root") is result.root

    def test_max_depth(self):
        """Test that nodes nested too deeply are skipped."""
        layout = Layout(LayoutConfig().override(build__max_depth=2))
        result = layout.parse('{"layers": [{"layers": [{"id": "too_deep"}]}]}')

        assert len(result.root.children) == 1
        assert result.root.children[0].children == []
        assert layout.find_by_id("too_deep") is None
        assert result.metrics.max_depth == 2
        assert result.has_errors()
        layout.destroy()
