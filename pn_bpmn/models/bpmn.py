"""
Block-and-gateway process diagram model.

A diagram holds activities, gateways, events and subprocess containers
connected by sequence flows. Subprocess ownership uses the containment index
of the underlying graph.

:return : Diagram model components.
:return: Classes for Activity, Gateway, Event, SubProcess and Diagram.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from pn_bpmn.models.graph import Edge, EdgeKind, Graph, Node, NodeId, NodeKind

SILENT_LABEL = ""


class GatewayType(Enum):
    XOR = "exclusive"
    AND = "parallel"
    OR = "inclusive"
    EVENTBASED = "eventbased"
    COMPLEX = "complex"


class EventType(Enum):
    START = "start"
    END = "end"
    INTERMEDIATE = "intermediate"


class EventTrigger(Enum):
    NONE = "none"
    MESSAGE = "message"
    TIMER = "timer"
    SIGNAL = "signal"
    ERROR = "error"
    CANCEL = "cancel"
    COMPENSATION = "compensation"


@dataclass(eq=False)
class Activity(Node):
    """
    Task of a diagram.

    :param looped: Standard loop marker.
    :param compensation: Activity is a compensation handler.
    :return : Activity instance.
    :return: A diagram activity.
    """

    looped: bool = False
    compensation: bool = False
    kind: ClassVar[NodeKind] = NodeKind.ACTIVITY

    @property
    def silent(self) -> bool:
        return self.label == SILENT_LABEL

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.looped:
            data["looped"] = True
        if self.compensation:
            data["compensation"] = True
        return data


@dataclass(eq=False)
class SubProcess(Activity):
    kind: ClassVar[NodeKind] = NodeKind.SUBPROCESS

    @property
    def silent(self) -> bool:
        return False


@dataclass(eq=False)
class Gateway(Node):
    gateway_type: GatewayType = GatewayType.XOR
    kind: ClassVar[NodeKind] = NodeKind.GATEWAY

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["gateway_type"] = self.gateway_type.value
        return data


@dataclass(eq=False)
class Event(Node):
    """
    Start, end or intermediate event.

    :param event_type: Position of the event in the flow.
    :param trigger: Event trigger.
    :param attached_to: Activity handle for boundary events.
    :return : Event instance.
    :return: A diagram event.
    """

    event_type: EventType = EventType.START
    trigger: EventTrigger = EventTrigger.NONE
    attached_to: Optional[NodeId] = None
    kind: ClassVar[NodeKind] = NodeKind.EVENT

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["event_type"] = self.event_type.value
        data["trigger"] = self.trigger.value
        if self.attached_to is not None:
            data["attached_to"] = self.attached_to
        return data


class Diagram(Graph):
    """
    Process diagram with nested subprocesses.

    :param name: Diagram name.
    :return : Diagram instance.
    :return: An empty diagram.
    """

    def add_activity(
        self,
        label: str = SILENT_LABEL,
        looped: bool = False,
        compensation: bool = False,
        parent: Optional[NodeId] = None,
    ) -> NodeId:
        node = self._create(Activity, label=label, looped=looped, compensation=compensation)
        self.set_parent(node, parent)
        return node

    def add_subprocess(
        self, label: str = "", looped: bool = False, parent: Optional[NodeId] = None
    ) -> NodeId:
        node = self._create(SubProcess, label=label, looped=looped)
        self.set_parent(node, parent)
        return node

    def add_gateway(
        self,
        gateway_type: GatewayType,
        label: str = "",
        parent: Optional[NodeId] = None,
    ) -> NodeId:
        node = self._create(Gateway, label=label, gateway_type=gateway_type)
        self.set_parent(node, parent)
        return node

    def add_event(
        self,
        event_type: EventType,
        label: str = "",
        trigger: EventTrigger = EventTrigger.NONE,
        attached_to: Optional[NodeId] = None,
        parent: Optional[NodeId] = None,
    ) -> NodeId:
        if attached_to is not None and not self.is_activity(attached_to):
            raise ValueError(f"Boundary event must be attached to an activity, got {attached_to}")
        node = self._create(
            Event,
            label=label,
            event_type=event_type,
            trigger=trigger,
            attached_to=attached_to,
        )
        if attached_to is not None and parent is None:
            parent = self.parent(attached_to)
        self.set_parent(node, parent)
        return node

    def add_flow(
        self,
        source: NodeId,
        target: NodeId,
        label: Optional[str] = None,
        parent: Optional[NodeId] = None,
    ) -> Edge:
        """
        Add a sequence flow.

        Without an explicit container the flow belongs to the container that
        owns its source node.

        :param source: Source node handle.
        :param target: Target node handle.
        :param label: Optional label or guard.
        :param parent: Owning container.
        :return : Edge.
        :return: New or existing flow.
        """
        edge = self.add_edge(source, target, EdgeKind.FLOW, label)
        owner = parent if parent is not None else self.parent(source)
        self.set_edge_parent(edge, owner)
        return edge

    def flows(self) -> List[Edge]:
        return self.edges(EdgeKind.FLOW)

    def in_flows(self, node_id: NodeId) -> List[Edge]:
        return self.in_edges(node_id, EdgeKind.FLOW)

    def out_flows(self, node_id: NodeId) -> List[Edge]:
        return self.out_edges(node_id, EdgeKind.FLOW)

    def activities(self) -> List[NodeId]:
        return [n.node_id for n in self.nodes() if n.kind in (NodeKind.ACTIVITY, NodeKind.SUBPROCESS)]

    def subprocesses(self) -> List[NodeId]:
        return self.node_ids(NodeKind.SUBPROCESS)

    def gateways(self, gateway_type: Optional[GatewayType] = None) -> List[NodeId]:
        return [
            n.node_id
            for n in self.nodes(NodeKind.GATEWAY)
            if gateway_type is None or n.gateway_type == gateway_type
        ]

    def events(
        self, event_type: Optional[EventType] = None, parent: Optional[NodeId] = None, any_level: bool = True
    ) -> List[NodeId]:
        result = []
        for node in self.nodes(NodeKind.EVENT):
            if event_type is not None and node.event_type != event_type:
                continue
            if not any_level and self.parent(node.node_id) != parent:
                continue
            result.append(node.node_id)
        return result

    def start_events(self, parent: Optional[NodeId] = None) -> List[NodeId]:
        return self.events(EventType.START, parent, any_level=False)

    def end_events(self, parent: Optional[NodeId] = None) -> List[NodeId]:
        return self.events(EventType.END, parent, any_level=False)

    def boundary_events(self, activity: NodeId) -> List[NodeId]:
        return [n.node_id for n in self.nodes(NodeKind.EVENT) if n.attached_to == activity]

    def is_activity(self, node_id: NodeId) -> bool:
        return self.node(node_id).kind in (NodeKind.ACTIVITY, NodeKind.SUBPROCESS)

    def is_gateway(self, node_id: NodeId, gateway_type: Optional[GatewayType] = None) -> bool:
        node = self.node(node_id)
        if node.kind != NodeKind.GATEWAY:
            return False
        return gateway_type is None or node.gateway_type == gateway_type

    def is_event(self, node_id: NodeId, event_type: Optional[EventType] = None) -> bool:
        node = self.node(node_id)
        if node.kind != NodeKind.EVENT:
            return False
        return event_type is None or node.event_type == event_type

    def is_silent(self, node_id: NodeId) -> bool:
        node = self.node(node_id)
        return node.kind == NodeKind.ACTIVITY and node.silent

    def labels(self) -> List[str]:
        return [self.node(a).label for a in self.activities() if not self.is_silent(a)]
