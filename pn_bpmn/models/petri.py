"""
Place/transition net model.

Nets are arena graphs restricted to places and transitions, with ordinary,
reset and inhibitor arcs and integer markings keyed by place handle.

:return : Petri net model components.
:return: Classes for Place, Transition and PetriNet.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from pn_bpmn.models.graph import Edge, EdgeKind, Graph, Node, NodeId, NodeKind

INVISIBLE_PREFIX = "tau"


@dataclass(eq=False)
class Place(Node):
    kind: ClassVar[NodeKind] = NodeKind.PLACE


@dataclass(eq=False)
class Transition(Node):
    """
    Net transition.

    :param invisible: True for routing-only transitions.
    :return : Transition instance.
    :return: A net transition.
    """

    invisible: bool = False
    kind: ClassVar[NodeKind] = NodeKind.TRANSITION

    @property
    def silent(self) -> bool:
        """
        Whether the transition has no observable label.

        Unlabelled transitions and labels starting with ``tau`` count as
        invisible as well.

        :return : Boolean.
        :return: True if the transition is silent.
        """
        return self.invisible or not self.label or self.label.startswith(INVISIBLE_PREFIX)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["invisible"] = self.invisible
        return data


class PetriNet(Graph):
    """
    Place/transition net with reset and inhibitor arcs.

    :param name: Net name.
    :return : PetriNet instance.
    :return: An empty net without markings.
    """

    def __init__(self, name: str = "net") -> None:
        super().__init__(name)
        self.initial_marking: Dict[NodeId, int] = {}
        self.final_marking: Dict[NodeId, int] = {}

    def add_place(self, label: str = "", tokens: int = 0, final: int = 0) -> NodeId:
        place = self._create(Place, label=label)
        if tokens:
            self.initial_marking[place] = tokens
        if final:
            self.final_marking[place] = final
        return place

    def add_transition(self, label: str = "", invisible: bool = False) -> NodeId:
        return self._create(Transition, label=label, invisible=invisible)

    def add_arc(
        self, source: NodeId, target: NodeId, kind: EdgeKind = EdgeKind.ARC
    ) -> Edge:
        """
        Add an arc between a place and a transition.

        Reset and inhibitor arcs always run from a place to a transition.

        :param source: Source handle.
        :param target: Target handle.
        :param kind: ARC, RESET or INHIBITOR.
        :return : Edge.
        :return: The arc.
        """
        if kind not in (EdgeKind.ARC, EdgeKind.RESET, EdgeKind.INHIBITOR):
            raise ValueError(f"Unsupported arc kind for nets: {kind}")
        source_kind = self.node(source).kind
        target_kind = self.node(target).kind
        if source_kind == target_kind:
            raise ValueError(
                f"Arc {source} -> {target} must connect a place and a transition"
            )
        if kind != EdgeKind.ARC and source_kind != NodeKind.PLACE:
            raise ValueError(f"{kind.value} arc must start at a place")
        return self.add_edge(source, target, kind)

    def remove_node(self, node_id: NodeId) -> None:
        super().remove_node(node_id)
        self.initial_marking.pop(node_id, None)
        self.final_marking.pop(node_id, None)

    def places(self) -> List[NodeId]:
        return self.node_ids(NodeKind.PLACE)

    def transitions(self) -> List[NodeId]:
        return self.node_ids(NodeKind.TRANSITION)

    def transition(self, node_id: NodeId) -> Transition:
        node = self.node(node_id)
        if not isinstance(node, Transition):
            raise ValueError(f"Node {node_id} is not a transition")
        return node

    def is_silent(self, node_id: NodeId) -> bool:
        return self.transition(node_id).silent

    def input_places(self, transition: NodeId) -> List[NodeId]:
        return self.predecessors(transition, EdgeKind.ARC)

    def output_places(self, transition: NodeId) -> List[NodeId]:
        return self.successors(transition, EdgeKind.ARC)

    def input_transitions(self, place: NodeId) -> List[NodeId]:
        return self.predecessors(place, EdgeKind.ARC)

    def output_transitions(self, place: NodeId) -> List[NodeId]:
        return self.successors(place, EdgeKind.ARC)

    def reset_arcs(self) -> List[Edge]:
        return self.edges(EdgeKind.RESET)

    def source_places(self) -> List[NodeId]:
        return [p for p in self.places() if not self.input_transitions(p)]

    def sink_places(self) -> List[NodeId]:
        return [p for p in self.places() if not self.output_transitions(p)]

    def marked_places(self) -> List[NodeId]:
        return [p for p, tokens in self.initial_marking.items() if tokens > 0]

    def find_by_label(self, label: str) -> Optional[NodeId]:
        for node in self.nodes():
            if node.label == label:
                return node.node_id
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["initial_marking"] = dict(self.initial_marking)
        data["final_marking"] = dict(self.final_marking)
        return data
