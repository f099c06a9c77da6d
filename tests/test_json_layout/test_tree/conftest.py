"""Shared factories for tree tests."""

from typing import List

import pytest

from json_layout.tree import Layer, NodeFactory, build_children


class RecordingFactory(NodeFactory):
    """Container factory that records creation and destruction order.

    Nodes are named by their ``name`` key. A name is recorded when
    ``create`` returns, which is the order nodes reach the ownership stack.
    """

    def __init__(self) -> None:
        self.created: List[str] = []
        self.destroyed: List[str] = []
        self.frames: List[tuple] = []

    def create(self, layout, stream, token):
        layer = Layer(kind="Recording")
        name = None
        for key in stream.iter_members(token):
            if key == "name":
                name = stream.next_string()
            elif key == "layers":
                build_children(layout, stream, layer)
        layer.owner = name
        self.created.append(name)
        return layer

    def destroy(self, node):
        self.destroyed.append(node.owner)
        node.destroy()

    def get_handle(self, node):
        return node

    def set_frame(self, node, frame):
        self.frames.append((node.owner, frame))
        node.set_frame(frame)


class ExplodingFactory(NodeFactory):
    """Factory whose create reads part of the object and then raises."""

    def __init__(self) -> None:
        self.destroy_calls = 0

    def create(self, layout, stream, token):
        stream.next()
        stream.next()
        raise RuntimeError("boom")

    def destroy(self, node):
        self.destroy_calls += 1

    def get_handle(self, node):
        return node

    def set_frame(self, node, frame):
        node.set_frame(frame)


@pytest.fixture
def recorder():
    return RecordingFactory()


@pytest.fixture
def exploding():
    return ExplodingFactory()
