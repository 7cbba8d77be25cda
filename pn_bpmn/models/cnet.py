"""
Causal net (C-net) model.

Each node declares alternative input and output bindings. Members of one
binding fire jointly (AND), different bindings of the same node exclude each
other (XOR). Dependency arcs of the graph are kept in line with the bindings.

:return : C-net model components.
:return: Classes for CausalNode and CausalNet.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, List, Optional

from pn_bpmn.models.graph import EdgeKind, Graph, Node, NodeId, NodeKind

Binding = FrozenSet[NodeId]


@dataclass(eq=False)
class CausalNode(Node):
    silent: bool = False
    kind: ClassVar[NodeKind] = NodeKind.CAUSAL


class CausalNet(Graph):
    """
    C-net with input and output bindings per node.

    ``start_nodes`` and ``end_nodes`` hold declared start and end nodes; when
    empty they are detected from the bindings.

    :param name: Net name.
    :return : CausalNet instance.
    :return: An empty C-net.
    """

    def __init__(self, name: str = "cnet") -> None:
        super().__init__(name)
        self._inputs: Dict[NodeId, List[Binding]] = {}
        self._outputs: Dict[NodeId, List[Binding]] = {}
        self.start_nodes: List[NodeId] = []
        self.end_nodes: List[NodeId] = []

    def add_activity(self, label: str, silent: bool = False) -> NodeId:
        node = self._create(CausalNode, label=label, silent=silent)
        self._inputs[node] = []
        self._outputs[node] = []
        return node

    def input_bindings(self, node_id: NodeId) -> List[Binding]:
        return list(self._inputs[node_id])

    def output_bindings(self, node_id: NodeId) -> List[Binding]:
        return list(self._outputs[node_id])

    def add_input_binding(self, node_id: NodeId, members: Iterable[NodeId]) -> Binding:
        binding = self._validated(node_id, members)
        if binding not in self._inputs[node_id]:
            self._inputs[node_id].append(binding)
        for member in binding:
            self.add_edge(member, node_id, EdgeKind.DEPENDENCY)
        return binding

    def add_output_binding(self, node_id: NodeId, members: Iterable[NodeId]) -> Binding:
        binding = self._validated(node_id, members)
        if binding not in self._outputs[node_id]:
            self._outputs[node_id].append(binding)
        for member in binding:
            self.add_edge(node_id, member, EdgeKind.DEPENDENCY)
        return binding

    def set_input_bindings(self, node_id: NodeId, bindings: Iterable[Iterable[NodeId]]) -> None:
        self._inputs[node_id] = []
        for members in bindings:
            self.add_input_binding(node_id, members)
        self._prune_arcs(node_id)

    def set_output_bindings(self, node_id: NodeId, bindings: Iterable[Iterable[NodeId]]) -> None:
        self._outputs[node_id] = []
        for members in bindings:
            self.add_output_binding(node_id, members)
        self._prune_arcs(node_id)

    def _validated(self, node_id: NodeId, members: Iterable[NodeId]) -> Binding:
        binding = frozenset(members)
        if node_id not in self._inputs:
            raise KeyError(f"Unknown C-net node {node_id}")
        for member in binding:
            if member not in self._inputs:
                raise KeyError(f"Binding of {node_id} references unknown node {member}")
        return binding

    def _supported(self, source: NodeId, target: NodeId) -> bool:
        return any(target in b for b in self._outputs[source]) or any(
            source in b for b in self._inputs[target]
        )

    def _prune_arcs(self, node_id: NodeId) -> None:
        for edge in self.in_edges(node_id) + self.out_edges(node_id):
            if not self._supported(edge.source, edge.target):
                self.remove_edge(edge)

    def remove_empty_bindings(self) -> None:
        for node_id in self._inputs:
            self._inputs[node_id] = [b for b in self._inputs[node_id] if b]
            self._outputs[node_id] = [b for b in self._outputs[node_id] if b]

    def remove_node(self, node_id: NodeId) -> None:
        """
        Remove a node and drop it from every binding that references it.

        Bindings that become empty disappear.

        :param node_id: Node handle.
        :return : None.
        :return: Graph mutation side-effect.
        """
        super().remove_node(node_id)
        del self._inputs[node_id]
        del self._outputs[node_id]
        for other in self._inputs:
            self._inputs[other] = [b - {node_id} for b in self._inputs[other] if b - {node_id}]
            self._outputs[other] = [b - {node_id} for b in self._outputs[other] if b - {node_id}]
        self.start_nodes = [n for n in self.start_nodes if n != node_id]
        self.end_nodes = [n for n in self.end_nodes if n != node_id]

    def activities(self) -> List[NodeId]:
        return self.node_ids(NodeKind.CAUSAL)

    def find_by_label(self, label: str) -> Optional[NodeId]:
        for node in self.nodes():
            if node.label == label:
                return node.node_id
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["bindings"] = {
            node_id: {
                "inputs": [sorted(b) for b in self._inputs[node_id]],
                "outputs": [sorted(b) for b in self._outputs[node_id]],
            }
            for node_id in self._inputs
        }
        data["start_nodes"] = list(self.start_nodes)
        data["end_nodes"] = list(self.end_nodes)
        return data
