"""
Diagram to Petri net translation.

Every sequence flow becomes a place. Activities and events become
transitions, XOR gateways a shared place with one merge/split transition per
flow, AND gateways a single transition. Inclusive gateways are encoded by
enumerating all non-empty subsets of the flows on their many-side, which
approximates but does not preserve inclusive-join synchronization.

:return : Diagram to net conversion.
:return: BpmnToPetriNetTranslator and convert_bpmn_to_petri_net.
"""

import logging
from typing import Callable, Dict, List, Optional

from pn_bpmn.config import EndEventJoin, LabelMode, NetTranslationConfig
from pn_bpmn.exceptions import ConversionError
from pn_bpmn.models.bpmn import Diagram, EventTrigger, EventType, GatewayType
from pn_bpmn.models.graph import Edge, EdgeKey, NodeId, NodeKind
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.result import ConversionContext, ConversionResult

logger = logging.getLogger(__name__)

INCLUSIVE_GATEWAYS = (GatewayType.OR, GatewayType.COMPLEX)


class BpmnToPetriNetTranslator:
    """
    Translate a diagram, including subprocess contents, into a net.

    After ``translate`` the context's conversion map holds diagram node ->
    list of net nodes and ``flow_places`` holds flow key -> place.

    :param diagram: Source diagram.
    :param context: Conversion context.
    :param config: Translation options.
    :return : BpmnToPetriNetTranslator instance.
    :return: Translator ready to run.
    """

    def __init__(
        self,
        diagram: Diagram,
        context: ConversionContext,
        config: Optional[NetTranslationConfig] = None,
    ) -> None:
        self.diagram = diagram
        self.context = context
        self.config = config or NetTranslationConfig()
        self.net = PetriNet(name=f"Petri net from {diagram.name}".strip())
        self.flow_places: Dict[EdgeKey, NodeId] = {}
        self.node_map: Dict[NodeId, List[NodeId]] = {}
        self.final_places: List[NodeId] = []
        self._handlers: Dict[NodeKind, Callable[[NodeId], None]] = {
            NodeKind.EVENT: self._translate_event,
            NodeKind.ACTIVITY: self._translate_activity,
            NodeKind.SUBPROCESS: self._translate_subprocess,
            NodeKind.GATEWAY: self._translate_gateway,
        }

    def _label(self, original: str, bpmn_prefix: str, pn_prefix: str, is_activity: bool) -> str:
        mode = self.config.label_nodes_with
        if mode == LabelMode.ORIGINAL:
            return original
        if mode == LabelMode.PREFIX_NONTASK:
            return original if is_activity else f"{bpmn_prefix}_{original}"
        if mode == LabelMode.PREFIX_ALL:
            return f"{bpmn_prefix}_{original}"
        return f"{pn_prefix}_{bpmn_prefix}_{original}"

    def _routing_transition(self, label: str) -> NodeId:
        return self.net.add_transition(label, invisible=not self.config.make_routing_transitions_visible)

    def check(self) -> None:
        """
        Reject diagrams with node kinds that have no translation.

        :return : None.
        :return: Raises ConversionError before anything is built.
        """
        for node in self.diagram.nodes():
            if node.kind not in self._handlers:
                raise ConversionError(
                    f"Diagram node {node.node_id} of kind {node.kind.value} cannot be translated"
                )

    def translate(self) -> PetriNet:
        """
        Run the translation.

        :return : PetriNet.
        :return: Net with initial and final marking set.
        """
        self.check()
        self._translate_flows()
        for kind in (NodeKind.EVENT, NodeKind.ACTIVITY, NodeKind.SUBPROCESS, NodeKind.GATEWAY):
            for node in self.diagram.node_ids(kind):
                self._handlers[kind](node)

        if not self.config.link_subprocess_to_activity:
            self._add_unique_source_and_sink()

        self.net.final_marking = {p: 1 for p in self.final_places}
        for node, targets in self.node_map.items():
            self.context.conversion_map[node] = tuple(targets)
        logger.info(
            f"Translated diagram '{self.diagram.name}' into {len(self.net.places())} places "
            f"and {len(self.net.transitions())} transitions"
        )
        return self.net

    def _translate_flows(self) -> None:
        for node in self.diagram.nodes():
            flows = self.diagram.in_flows(node.node_id)
            if not flows:
                continue
            if node.kind == NodeKind.GATEWAY:
                merge = False
            elif self.diagram.is_event(node.node_id, EventType.END):
                merge = self.config.end_event_join == EndEventJoin.XOR
            else:
                merge = True
            self._places_for_flows(flows, merge)

    def _places_for_flows(self, flows: List[Edge], merge: bool) -> None:
        if merge:
            target = self.diagram.node(flows[0].target).label
            label = ""
            if self.config.label_flow_places and target:
                label = self._label(target, "flow_merge", "p", False)
            place = self.net.add_place(label)
            for flow in flows:
                self.flow_places[flow.key] = place
            return
        for flow in flows:
            if flow.label:
                label = self._label(flow.label, "flow", "p", False)
            elif self.config.label_flow_places:
                source = self.diagram.node(flow.source).label
                target = self.diagram.node(flow.target).label
                label = self._label(f"{source}_{target}", "flow", "p", False)
            else:
                label = ""
            self.flow_places[flow.key] = self.net.add_place(label)

    def _in_places(self, node: NodeId) -> List[NodeId]:
        places: List[NodeId] = []
        for flow in self.diagram.in_flows(node):
            if self.flow_places[flow.key] not in places:
                places.append(self.flow_places[flow.key])
        return places

    def _out_places(self, node: NodeId) -> List[NodeId]:
        places: List[NodeId] = []
        for flow in self.diagram.out_flows(node):
            place = self.flow_places[flow.key]
            if place not in places:
                places.append(place)
        return places

    def _connect_inputs(self, node: NodeId, transition: NodeId) -> None:
        for place in self._in_places(node):
            self.net.add_arc(place, transition)

    def _connect_outputs(self, node: NodeId, transition: NodeId) -> None:
        for place in self._out_places(node):
            self.net.add_arc(transition, place)

    # Events

    def _translate_event(self, node: NodeId) -> None:
        event = self.diagram.node(node)
        handler = {
            EventType.START: self._translate_start_event,
            EventType.END: self._translate_end_event,
            EventType.INTERMEDIATE: self._translate_intermediate_event,
        }.get(event.event_type)
        if handler is None:
            self.context.warn(f"Unknown event type {event.event_type} for {node} ({event.label})")
            return
        handler(node)

    def _translate_start_event(self, node: NodeId) -> None:
        label = self.diagram.node(node).label
        transition = self.net.add_transition(
            self._label(label, "start_event", "t", False),
            invisible=not self.config.make_start_end_events_visible,
        )
        place = self.net.add_place(self._label(f"{label}_initial", "start_event", "p", False), tokens=1)
        self.net.add_arc(place, transition)
        self._connect_outputs(node, transition)
        self.node_map[node] = [place, transition]

    def _translate_end_event(self, node: NodeId) -> None:
        label = self.diagram.node(node).label
        transition = self.net.add_transition(
            self._label(label, "end_event", "t", False),
            invisible=not self.config.make_start_end_events_visible,
        )
        self._connect_inputs(node, transition)
        place = self.net.add_place(self._label(f"{label}_ended", "end_event", "p", False))
        self.net.add_arc(transition, place)
        self.node_map[node] = [place, transition]
        self.final_places.append(place)

    def _translate_intermediate_event(self, node: NodeId) -> None:
        event = self.diagram.node(node)
        if event.trigger == EventTrigger.COMPENSATION:
            self.context.warn(
                "This translation does not support compensation events and does not preserve "
                "compensation semantics. The resulting net should not be used for soundness checking."
            )
        attached = ""
        if event.attached_to is not None:
            attached = f"_{self.diagram.node(event.attached_to).label}"
        label = f"{event.trigger.name}_{event.label}{attached}"
        transition = self.net.add_transition(
            self._label(label, "event", "t", False),
            invisible=not self.config.make_intermediate_events_visible,
        )
        self._connect_inputs(node, transition)
        self._connect_outputs(node, transition)
        self.node_map[node] = [transition]

    # Activities

    def _is_atomic(self, node: NodeId, link_to_subprocess: bool) -> bool:
        activity = self.diagram.node(node)
        return not (activity.looped or link_to_subprocess or self.diagram.boundary_events(node))

    def _translate_subprocess(self, node: NodeId) -> None:
        has_contents = bool(self.diagram.children(node))
        link = has_contents and self.config.link_subprocess_to_activity
        if not link:
            self.context.warn(
                f"Subprocess '{self.diagram.node(node).label}' ({node}) is translated as an atomic activity"
            )
        self._translate_activity(node, link)

    def _translate_activity(self, node: NodeId, link_to_subprocess: bool = False) -> None:
        """
        Translate an activity, using the lifecycle structure where needed.

        Looped activities, activities with boundary events and linked
        subprocesses get start and complete transitions around ``ready`` and
        ``finished`` places; others become a single transition.

        :param node: Activity handle.
        :param link_to_subprocess: Wire subprocess contents to the lifecycle.
        :return : None.
        :return: Net construction side-effect.
        """
        activity = self.diagram.node(node)
        label = activity.label
        nodes: List[NodeId] = []
        self.node_map[node] = nodes
        act = self.net.add_transition(
            self._label(label, "task", "t", True), invisible=activity.silent
        )
        nodes.append(act)

        if self._is_atomic(node, link_to_subprocess):
            self._connect_inputs(node, act)
            self._connect_outputs(node, act)
            return

        start = self.net.add_transition(self._label(f"{label}_start", "task", "t", True))
        complete = self.net.add_transition(self._label(f"{label}_complete", "task", "t", True))
        ready = self.net.add_place(self._label(f"{label}_ready", "task", "p", True))
        finished = self.net.add_place(self._label(f"{label}_finished", "task", "p", True))
        if self.config.translate_with_lifecycle_visible:
            self.net.transition(act).invisible = True
        else:
            self.net.transition(start).invisible = True
            self.net.transition(complete).invisible = True
        self.net.add_arc(start, ready)
        self.net.add_arc(ready, act)
        self.net.add_arc(act, finished)
        self.net.add_arc(finished, complete)
        nodes.extend([start, complete, ready, finished])

        if activity.looped:
            repeat = self._routing_transition(self._label(f"{label}_repeat", "task", "t", True))
            self.net.add_arc(finished, repeat)
            self.net.add_arc(repeat, ready)
            nodes.append(repeat)

        compensation: Optional[NodeId] = None
        for event in self.diagram.boundary_events(node):
            if self.diagram.node(event).trigger == EventTrigger.COMPENSATION:
                compensation = event
                continue
            self.net.add_arc(ready, self.node_map[event][0])
        if compensation is not None:
            executed = self.net.add_place(self._label(f"{label}_was_executed", "task", "p", True))
            self.net.add_arc(act, executed)
            self.net.add_arc(executed, self.node_map[compensation][0])
            nodes.append(executed)

        if link_to_subprocess:
            self._link_subprocess(node, start, complete)

        self._connect_inputs(node, start)
        self._connect_outputs(node, complete)

    def _link_subprocess(self, node: NodeId, start: NodeId, complete: NodeId) -> None:
        label = self.diagram.node(node).label
        starts = self.diagram.start_events(node)
        ends = self.diagram.end_events(node)
        if len(starts) > 1:
            self.context.warn(
                f"Subprocess '{label}' has multiple start events. Start events are assumed to be exclusive."
            )
        if len(ends) > 1:
            self.context.warn(
                f"Subprocess '{label}' has multiple end events. End events are assumed to be exclusive."
            )
        for event in starts:
            place = self.node_map[event][0]
            self.net.initial_marking.pop(place, None)
            self.net.add_arc(start, place)
        for event in ends:
            place = self.node_map[event][0]
            if place in self.final_places:
                self.final_places.remove(place)
            self.net.add_arc(place, complete)

    # Gateways

    def _translate_gateway(self, node: NodeId) -> None:
        gateway = self.diagram.node(node)
        if gateway.gateway_type in (GatewayType.XOR, GatewayType.EVENTBASED):
            self._translate_xor_gateway(node)
        elif gateway.gateway_type == GatewayType.AND:
            self._translate_and_gateway(node)
        elif gateway.gateway_type in INCLUSIVE_GATEWAYS:
            self._translate_or_gateway(node)
        else:
            self.context.warn(
                f"Unknown gateway type {gateway.gateway_type} for {node} ({gateway.label})"
            )

    def _translate_xor_gateway(self, node: NodeId) -> None:
        label = self.diagram.node(node).label
        place = self.net.add_place(self._label(label, "xor", "p", False))
        nodes = [place]
        for flow in self.diagram.in_flows(node):
            source = self.diagram.node(flow.source).label
            merge = self._routing_transition(self._label(f"{source}_{label}", "xor_merge", "t", False))
            self.net.add_arc(self.flow_places[flow.key], merge)
            self.net.add_arc(merge, place)
            nodes.append(merge)
        for flow in self.diagram.out_flows(node):
            target = self.diagram.node(flow.target).label
            split = self._routing_transition(self._label(f"{label}_{target}", "xor_split", "t", False))
            self.net.add_arc(place, split)
            self.net.add_arc(split, self.flow_places[flow.key])
            nodes.append(split)
        self.node_map[node] = nodes

    def _translate_and_gateway(self, node: NodeId) -> None:
        label = self.diagram.node(node).label
        transition = self._routing_transition(self._label(label, "and", "t", False))
        self._connect_inputs(node, transition)
        self._connect_outputs(node, transition)
        self.node_map[node] = [transition]

    def _subset_transitions(
        self, places: List[NodeId], other: NodeId, label: str, prefix: str, joining: bool
    ) -> List[NodeId]:
        transitions = []
        for mask in range(1, 1 << len(places)):
            subset = [p for bit, p in enumerate(places) if (mask >> bit) & 1]
            transition = self._routing_transition(self._label(f"{label}_{mask}", prefix, "t", False))
            for place in subset:
                if joining:
                    self.net.add_arc(place, transition)
                else:
                    self.net.add_arc(transition, place)
            if joining:
                self.net.add_arc(transition, other)
            else:
                self.net.add_arc(other, transition)
            transitions.append(transition)
        return transitions

    def _translate_or_gateway(self, node: NodeId) -> None:
        """
        Encode an inclusive gateway by subset enumeration.

        A join (several incoming, one outgoing flow) gets one transition per
        non-empty subset of incoming places; anything else is treated as a
        split over the outgoing places. A gateway with several flows on both
        sides joins into an internal place and splits from there.

        :param node: Gateway handle.
        :return : None.
        :return: Net construction side-effect; always records a warning.
        """
        label = self.diagram.node(node).label
        in_places = [self.flow_places[f.key] for f in self.diagram.in_flows(node)]
        out_places = [self.flow_places[f.key] for f in self.diagram.out_flows(node)]
        nodes: List[NodeId] = []
        self.node_map[node] = nodes

        if len(in_places) > 1 and len(out_places) == 1:
            self.context.warn(
                f"Cannot translate Inclusive-OR-Join to standard Petri nets. Translation of gateway "
                f"{node} ({label}) does not preserve the semantics."
            )
            nodes.extend(self._subset_transitions(in_places, out_places[0], label, "ior_join", True))
            return
        if not in_places or not out_places:
            self.context.warn(
                f"Inclusive gateway {node} ({label}) has no incoming or no outgoing control-flow edge."
            )
            return
        if len(in_places) > 1:
            self.context.warn(
                f"Inclusive gateway {node} ({label}) both joins and splits; it is translated as a join "
                f"followed by a split and does not preserve the semantics."
            )
            inner = self.net.add_place(self._label(label, "ior", "p", False))
            nodes.append(inner)
            nodes.extend(self._subset_transitions(in_places, inner, label, "ior_join", True))
            source = inner
        else:
            self.context.warn(
                f"Inclusive-OR-Split of gateway {node} ({label}) is translated by enumerating "
                f"{(1 << len(out_places)) - 1} combinations of outgoing flows."
            )
            source = in_places[0]
        nodes.extend(self._subset_transitions(out_places, source, label, "ior_split", False))

    def _add_unique_source_and_sink(self) -> None:
        source = self.net.add_place("i")
        sink = self.net.add_place("o")
        for event in self.diagram.events(EventType.START):
            place = self.node_map[event][0]
            self.net.initial_marking.pop(place, None)
            transition = self.net.add_transition(f"t_start_{self.diagram.node(event).label}", invisible=True)
            self.net.add_arc(source, transition)
            self.net.add_arc(transition, place)
            self.node_map[event].append(transition)
        for event in self.diagram.events(EventType.END):
            place = self.node_map[event][0]
            if place in self.final_places:
                self.final_places.remove(place)
            transition = self.net.add_transition(f"t_end_{self.diagram.node(event).label}", invisible=True)
            self.net.add_arc(place, transition)
            self.net.add_arc(transition, sink)
            self.node_map[event].append(transition)
        self.net.initial_marking[source] = 1
        self.final_places.append(sink)


def convert_bpmn_to_petri_net(
    diagram: Diagram, config: Optional[NetTranslationConfig] = None
) -> ConversionResult:
    """
    Convert a diagram into a marked net.

    :param diagram: Source diagram, not modified.
    :param config: Translation options.
    :return : ConversionResult.
    :return: (net, diagram node -> tuple of net nodes, warnings, errors).
    """
    context = ConversionContext()
    translator = BpmnToPetriNetTranslator(diagram, context, config)
    try:
        net = translator.translate()
    except ConversionError as e:
        return context.failed(str(e))
    return context.result(net)
