"""
Shared test fixtures for gforce tests.

Provides small graphs with known geometry and layouts configured to run
synchronously and deterministically.
"""

import pytest
from typing import List

from gforce.graph.abstraction import Edge, Graph, Node
from gforce.layout.config import GForceConfig


@pytest.fixture
def sync_config() -> GForceConfig:
    """Synchronous, seeded layout configuration."""
    return GForceConfig(animate=False, seed=42)


@pytest.fixture
def two_nodes() -> List[Node]:
    """Two nodes on the x axis, 10 units apart."""
    return [
        Node(id="a", x=0.0, y=0.0),
        Node(id="b", x=10.0, y=0.0),
    ]


@pytest.fixture
def linked_pair(two_nodes) -> Graph:
    """Two nodes joined by a single edge."""
    return Graph(nodes=two_nodes, edges=[Edge(source="a", target="b")])


@pytest.fixture
def cycle_graph() -> Graph:
    """A 5-node cycle with unset positions."""
    graph = Graph()
    ids = ["n0", "n1", "n2", "n3", "n4"]
    for node_id in ids:
        graph.add_node(node_id)
    for i, node_id in enumerate(ids):
        graph.add_edge(node_id, ids[(i + 1) % len(ids)])
    return graph


@pytest.fixture
def square_with_center() -> List[Node]:
    """Four corner nodes symmetric around the origin plus one at the origin."""
    return [
        Node(id="mid", x=0.0, y=0.0),
        Node(id="ne", x=10.0, y=10.0),
        Node(id="nw", x=-10.0, y=10.0),
        Node(id="se", x=10.0, y=-10.0),
        Node(id="sw", x=-10.0, y=-10.0),
    ]
