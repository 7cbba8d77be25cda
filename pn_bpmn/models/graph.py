"""
Directed graph storage shared by all process-model notations.

Nodes live in an arena and are addressed by integer handles. Edges are indexed
by their incident nodes, and subprocess ownership is kept in a separate
containment index instead of pointer fields on the nodes.

:return : Graph model components.
:return: Classes for NodeKind, EdgeKind, Node, Edge and Graph.
"""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

NodeId = int
EdgeKey = Tuple[NodeId, NodeId, "EdgeKind"]


class NodeKind(Enum):
    """Variant tag of a graph node."""

    PLACE = "place"
    TRANSITION = "transition"
    ACTIVITY = "activity"
    GATEWAY = "gateway"
    EVENT = "event"
    SUBPROCESS = "subprocess"
    CAUSAL = "causal"


class EdgeKind(Enum):
    """Kind of a directed edge."""

    ARC = "arc"
    RESET = "reset"
    INHIBITOR = "inhibitor"
    FLOW = "flow"
    MESSAGE = "message"
    DEPENDENCY = "dependency"


@dataclass(eq=False)
class Node:
    """
    Base class of all node variants.

    :param node_id: Handle of the node inside its graph.
    :param label: Display label, empty for silent nodes.
    :return : Node instance.
    :return: A graph node.
    """

    node_id: NodeId
    label: str = ""
    kind: ClassVar[NodeKind]

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize node to dictionary.

        :return : Dictionary representation.
        :return: Dict with id, kind and label.
        """
        return {"id": self.node_id, "kind": self.kind.value, "label": self.label}


@dataclass(eq=False)
class Edge:
    """
    Directed edge between two nodes of the same graph.

    :param source: Source node handle.
    :param target: Target node handle.
    :param kind: Edge kind.
    :param label: Optional text label, doubles as a guard expression.
    :return : Edge instance.
    :return: A directed edge.
    """

    source: NodeId
    target: NodeId
    kind: EdgeKind = EdgeKind.FLOW
    label: Optional[str] = None

    @property
    def key(self) -> EdgeKey:
        return (self.source, self.target, self.kind)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
        }
        if self.label:
            data["label"] = self.label
        return data


class Graph:
    """
    Arena of nodes with edges indexed by incident node.

    At most one edge of a given kind exists between an ordered pair of nodes;
    adding it again returns the existing edge.

    :param name: Name of the model.
    :return : Graph instance.
    :return: An empty directed graph.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._nodes: Dict[NodeId, Node] = {}
        self._edges: Dict[EdgeKey, Edge] = {}
        self._out: Dict[NodeId, Dict[EdgeKey, Edge]] = {}
        self._in: Dict[NodeId, Dict[EdgeKey, Edge]] = {}
        self._parent: Dict[NodeId, NodeId] = {}
        self._edge_parent: Dict[EdgeKey, NodeId] = {}
        self._last_handle = 0

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def _create(self, node_type: type, **attributes: Any) -> NodeId:
        """
        Allocate a handle and store a new node of the given variant.

        :param node_type: Node dataclass to instantiate.
        :param attributes: Constructor arguments besides the handle.
        :return : Node handle.
        :return: Handle of the created node.
        """
        self._last_handle += 1
        node = node_type(node_id=self._last_handle, **attributes)
        self._nodes[node.node_id] = node
        self._out[node.node_id] = {}
        self._in[node.node_id] = {}
        return node.node_id

    def node(self, node_id: NodeId) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node handle {node_id} in graph '{self.name}'") from None

    def nodes(self, kind: Optional[NodeKind] = None) -> List[Node]:
        if kind is None:
            return list(self._nodes.values())
        return [n for n in self._nodes.values() if n.kind == kind]

    def node_ids(self, kind: Optional[NodeKind] = None) -> List[NodeId]:
        return [n.node_id for n in self.nodes(kind)]

    def remove_node(self, node_id: NodeId) -> None:
        """
        Remove a node together with its incident edges.

        Children of a removed container move up to the container's parent.

        :param node_id: Node handle.
        :return : None.
        :return: Graph mutation side-effect.
        """
        for edge in self.in_edges(node_id) + self.out_edges(node_id):
            self.remove_edge(edge)
        parent = self._parent.pop(node_id, None)
        for child, owner in list(self._parent.items()):
            if owner == node_id:
                self.set_parent(child, parent)
        for key, owner in list(self._edge_parent.items()):
            if owner == node_id:
                if parent is None:
                    del self._edge_parent[key]
                else:
                    self._edge_parent[key] = parent
        del self._nodes[node_id]
        del self._out[node_id]
        del self._in[node_id]

    def add_edge(
        self,
        source: NodeId,
        target: NodeId,
        kind: EdgeKind = EdgeKind.FLOW,
        label: Optional[str] = None,
    ) -> Edge:
        """
        Add a directed edge, or return the existing one for the same pair and kind.

        :param source: Source node handle.
        :param target: Target node handle.
        :param kind: Edge kind.
        :param label: Optional label.
        :return : Edge.
        :return: New or already present edge.
        """
        if source not in self._nodes or target not in self._nodes:
            raise KeyError(f"Cannot connect {source} -> {target}: unknown node")
        key = (source, target, kind)
        existing = self._edges.get(key)
        if existing is not None:
            if label and not existing.label:
                existing.label = label
            return existing
        edge = Edge(source=source, target=target, kind=kind, label=label)
        self._edges[key] = edge
        self._out[source][key] = edge
        self._in[target][key] = edge
        return edge

    def edge(
        self, source: NodeId, target: NodeId, kind: EdgeKind = EdgeKind.FLOW
    ) -> Optional[Edge]:
        return self._edges.get((source, target, kind))

    def has_edge(
        self, source: NodeId, target: NodeId, kind: EdgeKind = EdgeKind.FLOW
    ) -> bool:
        return (source, target, kind) in self._edges

    def remove_edge(self, edge: Edge) -> None:
        key = edge.key
        if key not in self._edges:
            return
        del self._edges[key]
        del self._out[edge.source][key]
        del self._in[edge.target][key]
        self._edge_parent.pop(key, None)

    def edges(self, kind: Optional[EdgeKind] = None) -> List[Edge]:
        if kind is None:
            return list(self._edges.values())
        return [e for e in self._edges.values() if e.kind == kind]

    def out_edges(self, node_id: NodeId, kind: Optional[EdgeKind] = None) -> List[Edge]:
        return [e for e in self._out[node_id].values() if kind is None or e.kind == kind]

    def in_edges(self, node_id: NodeId, kind: Optional[EdgeKind] = None) -> List[Edge]:
        return [e for e in self._in[node_id].values() if kind is None or e.kind == kind]

    def successors(self, node_id: NodeId, kind: Optional[EdgeKind] = None) -> List[NodeId]:
        result: List[NodeId] = []
        for edge in self.out_edges(node_id, kind):
            if edge.target not in result:
                result.append(edge.target)
        return result

    def predecessors(self, node_id: NodeId, kind: Optional[EdgeKind] = None) -> List[NodeId]:
        result: List[NodeId] = []
        for edge in self.in_edges(node_id, kind):
            if edge.source not in result:
                result.append(edge.source)
        return result

    # Containment index

    def set_parent(self, node_id: NodeId, parent: Optional[NodeId]) -> None:
        """
        Move a node into a container, or to the top level when parent is None.

        :param node_id: Node handle.
        :param parent: Container handle or None.
        :return : None.
        :return: Containment index update.
        """
        if parent is None:
            self._parent.pop(node_id, None)
            return
        if parent == node_id or node_id in self.ancestors(parent):
            raise ValueError(f"Containment cycle: {node_id} cannot be placed in {parent}")
        self._parent[node_id] = parent

    def parent(self, node_id: NodeId) -> Optional[NodeId]:
        return self._parent.get(node_id)

    def ancestors(self, node_id: NodeId) -> List[NodeId]:
        result = []
        current = self._parent.get(node_id)
        while current is not None:
            result.append(current)
            current = self._parent.get(current)
        return result

    def children(self, parent: Optional[NodeId] = None) -> List[NodeId]:
        """
        Nodes directly owned by a container (top-level nodes for None).

        :param parent: Container handle or None.
        :return : List of node handles.
        :return: Direct children in insertion order.
        """
        return [n for n in self._nodes if self._parent.get(n) == parent]

    def set_edge_parent(self, edge: Edge, parent: Optional[NodeId]) -> None:
        if parent is None:
            self._edge_parent.pop(edge.key, None)
        else:
            self._edge_parent[edge.key] = parent

    def edge_parent(self, edge: Edge) -> Optional[NodeId]:
        return self._edge_parent.get(edge.key)

    def copy(self) -> "Graph":
        """
        Clone the graph keeping all node handles.

        :return : Graph copy.
        :return: Independent graph with identical handles.
        """
        return copy.deepcopy(self)

    def to_networkx(self, kind: Optional[EdgeKind] = None) -> nx.DiGraph:
        """
        Export the graph structure to networkx.

        :param kind: Only export edges of this kind when given.
        :return : networkx DiGraph.
        :return: Graph with node attributes kind and label.
        """
        graph = nx.DiGraph(name=self.name)
        for node in self._nodes.values():
            graph.add_node(node.node_id, kind=node.kind.value, label=node.label)
        for edge in self.edges(kind):
            graph.add_edge(edge.source, edge.target, kind=edge.kind.value, label=edge.label)
        return graph

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize graph to dictionary.

        :return : Dictionary representation.
        :return: Dict with nodes, edges and containment.
        """
        nodes = []
        for node in self._nodes.values():
            data = node.to_dict()
            if node.node_id in self._parent:
                data["parent"] = self._parent[node.node_id]
            nodes.append(data)
        return {
            "name": self.name,
            "nodes": nodes,
            "edges": [e.to_dict() for e in self._edges.values()],
        }
