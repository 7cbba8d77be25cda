"""
Petri net to diagram translation.

Transitions become activities. Places become routing: the initial place feeds
a start event, sink places a shared end event, and every other place an XOR
join on its input side (several input transitions), an AND join shared with
its equivalent places, and an XOR split towards its output transitions.

:return : Net to diagram conversion.
:return: PetriNetToBpmnTranslator and the conversion entry points.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx

from pn_bpmn.analysis.sese import SubprocessDiscovery, construct_subprocesses
from pn_bpmn.exceptions import ConversionError
from pn_bpmn.map.cancellation import build_cancellation_regions
from pn_bpmn.map.simplify import simplify as simplify_diagram
from pn_bpmn.models.bpmn import SILENT_LABEL, Diagram, EventType, GatewayType
from pn_bpmn.models.graph import Edge, EdgeKind, NodeId
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.result import ConversionContext, ConversionResult
from pn_bpmn.normalize.free_choice import is_free_choice, normalize

logger = logging.getLogger(__name__)


class PetriNetToBpmnTranslator:
    """
    Translate a free-choice net with a single initial place into a diagram.

    :param net: Prepared net (free-choice, one initial place).
    :param initial_place: Handle of the initial place.
    :param context: Conversion context; its map receives transition -> activity.
    :return : PetriNetToBpmnTranslator instance.
    :return: Translator ready to run.
    """

    def __init__(self, net: PetriNet, initial_place: NodeId, context: ConversionContext) -> None:
        self.net = net
        self.initial_place = initial_place
        self.context = context
        self.diagram = Diagram(name=net.name)
        self.activities: Dict[NodeId, NodeId] = {}
        self.place_flows: Dict[NodeId, Edge] = {}
        self._converted: Set[NodeId] = set()
        self._end_event: Optional[NodeId] = None

    def translate(self) -> Diagram:
        """
        Run the translation.

        :return : Diagram.
        :return: Unsimplified diagram.
        """
        for transition in self.net.transitions():
            node = self.net.transition(transition)
            label = SILENT_LABEL if node.silent else node.label
            self.activities[transition] = self.diagram.add_activity(label)
            self.context.conversion_map[transition] = self.activities[transition]

        for place in self.net.places():
            if place in self._converted:
                continue
            if place == self.initial_place:
                self._convert_initial_place(place)
            elif self._is_final_place(place):
                self._convert_final_place(place)
            else:
                self._convert_place(place)

        logger.info(
            f"Translated net '{self.net.name}' into {len(self.diagram)} diagram nodes "
            f"and {len(self.diagram.flows())} flows"
        )
        return self.diagram

    def _out_transitions(self, place: NodeId) -> Set[NodeId]:
        return set(self.net.output_transitions(place))

    def _equivalent_places(self, place: NodeId) -> List[NodeId]:
        outputs = self._out_transitions(place)
        return [
            other
            for other in self.net.places()
            if other != place and self._out_transitions(other) >= outputs
        ]

    def _is_final_place(self, place: NodeId) -> bool:
        return not self.net.output_transitions(place)

    def _convert_initial_place(self, place: NodeId) -> None:
        start = self.diagram.add_event(EventType.START)
        self._connect_to_out_transitions(start, place)
        self._converted.add(place)

    def _connect_to_out_transitions(self, source: NodeId, place: NodeId) -> None:
        outputs = self.net.output_transitions(place)
        if len(outputs) > 1:
            split = self.diagram.add_gateway(GatewayType.XOR)
            self.place_flows[place] = self.diagram.add_flow(source, split)
            for transition in outputs:
                self.diagram.add_flow(split, self.activities[transition])
        else:
            for transition in outputs:
                self.place_flows[place] = self.diagram.add_flow(source, self.activities[transition])

    def _shared_end_event(self) -> NodeId:
        if self._end_event is None:
            self._end_event = self.diagram.add_event(EventType.END)
        return self._end_event

    def _convert_final_place(self, place: NodeId) -> None:
        end = self._shared_end_event()
        for transition in self.net.input_transitions(place):
            self.place_flows[place] = self.diagram.add_flow(self.activities[transition], end)
        self._converted.add(place)

    def _convert_place(self, place: NodeId) -> None:
        source = self._convert_place_predecessors(place)
        self._connect_to_out_transitions(source, place)
        self._converted.add(place)

    def _convert_place_predecessors(self, place: NodeId) -> NodeId:
        """
        Build the join structure in front of a place.

        :param place: Place handle.
        :return : Node handle.
        :return: Node that stands for the marked place (join or activity).
        """
        equivalents = self._equivalent_places(place)
        and_join: Optional[NodeId] = None
        last: Optional[NodeId] = None

        for member in [place] + equivalents:
            if member == self.initial_place:
                continue
            if equivalents:
                if and_join is None:
                    and_join = self.diagram.add_gateway(GatewayType.AND)
                self._converted.add(member)
            inputs = self.net.input_transitions(member)
            if len(inputs) > 1:
                xor_join = self.diagram.add_gateway(GatewayType.XOR)
                for transition in inputs:
                    last = self._connect_to_in_transition(transition, xor_join)
            elif inputs:
                last = self._connect_to_in_transition(inputs[0], None)
            if and_join is not None:
                if last is None:
                    raise ConversionError(f"Place {member} has no input transitions")
                self.place_flows[member] = self.diagram.add_flow(last, and_join)

        result = and_join if and_join is not None else last
        if result is None:
            raise ConversionError(f"Place {place} has no input transitions")
        return result

    def _connect_to_in_transition(self, transition: NodeId, join: Optional[NodeId]) -> NodeId:
        activity = self.activities[transition]
        if len(self.net.output_places(transition)) > 1:
            split = self._and_split_after(activity)
            if split is None:
                split = self.diagram.add_gateway(GatewayType.AND)
                self.diagram.add_flow(activity, split)
            if join is None:
                return split
            self.diagram.add_flow(split, join)
            return join
        if join is None:
            return activity
        self.diagram.add_flow(activity, join)
        return join

    def _and_split_after(self, activity: NodeId) -> Optional[NodeId]:
        for successor in self.diagram.successors(activity):
            if self.diagram.is_gateway(successor, GatewayType.AND):
                return successor
        return None

    def add_final_marking(self) -> None:
        """
        Offer termination at non-sink places of the final marking.

        The flow standing for such a place is routed through a new XOR split
        that may also lead to an extra end event.

        :return : None.
        :return: Diagram mutation side-effect.
        """
        for place, tokens in self.net.final_marking.items():
            flow = self.place_flows.get(place)
            if tokens <= 0 or flow is None or self.diagram.is_event(flow.target, EventType.END):
                continue
            self.diagram.remove_edge(flow)
            split = self.diagram.add_gateway(GatewayType.XOR)
            self.diagram.add_flow(flow.source, split)
            self.diagram.add_flow(split, flow.target)
            end = self.diagram.add_event(EventType.END)
            self.diagram.add_flow(split, end)
            logger.debug(f"Added termination option for final place {place}")


def check_marked_net(net: PetriNet) -> None:
    """
    Fatal preconditions of the net to diagram conversion.

    :param net: Input net.
    :return : None.
    :return: Raises ConversionError on a missing start or end.
    """
    if not net.transitions():
        raise ConversionError(f"Net '{net.name}' has no transitions")
    if not net.marked_places() and not net.source_places():
        raise ConversionError(f"Net '{net.name}' has no initial marking and no source place")
    if not any(t > 0 for t in net.final_marking.values()) and not net.sink_places():
        raise ConversionError(f"Net '{net.name}' has no final marking and no sink place")


def _single_initial_place(net: PetriNet) -> Tuple[NodeId, Optional[NodeId]]:
    """
    Make sure the net has one initial place, adding one if necessary.

    The marked place is used as is when it is the only one, has no input
    transitions, shares its output transitions with no other place and no
    transition lacks input places. Otherwise a fresh marked place and a silent
    initial transition feeding the old marked places are added.

    :param net: Net to modify.
    :return : Tuple (initial_place, initial_transition).
    :return: Initial place and the added transition (None if not added).
    """
    marked = net.marked_places() or net.source_places()
    if len(marked) == 1:
        place = marked[0]
        outputs = set(net.output_transitions(place))
        shared = any(
            outputs & set(net.output_transitions(other)) for other in net.places() if other != place
        )
        orphans = any(not net.input_places(t) for t in net.transitions())
        if not net.input_transitions(place) and not shared and not orphans:
            net.initial_marking = {place: 1}
            return place, None

    initial = net.add_place("source")
    transition = net.add_transition(invisible=True)
    net.add_arc(initial, transition)
    for place in marked:
        net.add_arc(transition, place)
    net.initial_marking = {initial: 1}
    return initial, transition


def _connect_orphan_transitions(net: PetriNet, initial_transition: Optional[NodeId]) -> None:
    if initial_transition is None:
        return
    for transition in net.transitions():
        if transition == initial_transition or net.input_places(transition):
            continue
        place = net.add_place()
        net.add_arc(initial_transition, place)
        net.add_arc(place, transition)
        net.add_arc(transition, place)


def _remove_dead_places(net: PetriNet, initial_place: NodeId, context: ConversionContext) -> None:
    dead = [p for p in net.places() if p != initial_place and not net.input_transitions(p)]
    while dead:
        for place in dead:
            for transition in net.output_transitions(place):
                context.warn(
                    f"Transition '{net.node(transition).label}' ({transition}) can never fire and was removed"
                )
                net.remove_node(transition)
            net.remove_node(place)
        dead = [p for p in net.places() if p != initial_place and not net.input_transitions(p)]


def prepare_net(net: PetriNet, context: ConversionContext) -> Tuple[PetriNet, NodeId]:
    """
    Clone and normalize a net for translation.

    :param net: Caller's net, left untouched.
    :param context: Conversion context.
    :return : Tuple (net, initial_place).
    :return: Free-choice clone with one initial place and no dead places.
    """
    work = net.copy()
    if not is_free_choice(work):
        normalize(work)
    initial_place, initial_transition = _single_initial_place(work)
    _connect_orphan_transitions(work, initial_transition)
    _remove_dead_places(work, initial_place, context)
    return work, initial_place


def connect_hanging_activities(diagram: Diagram) -> int:
    """
    Connect activities without a path to an end event.

    Only the most upstream activities of each hanging part get a flow to the
    end event.

    :param diagram: Diagram to modify.
    :return : Number of added flows.
    :return: Count of repaired activities.
    """
    starts = diagram.start_events()
    ends = diagram.end_events()
    if not starts:
        return 0
    graph = diagram.to_networkx(EdgeKind.FLOW)
    reachable: Set[NodeId] = set()
    for start in starts:
        reachable |= nx.descendants(graph, start)
    hanging = [
        a
        for a in diagram.activities()
        if a in reachable and not any(e in nx.descendants(graph, a) for e in ends)
    ]
    below = {a: nx.descendants(graph, a) for a in hanging}
    upstream = [a for a in hanging if not any(a in below[b] for b in hanging if b != a)]
    if upstream and not ends:
        ends = [diagram.add_event(EventType.END)]
    for activity in upstream:
        diagram.add_flow(activity, ends[0])
    if upstream:
        logger.info(f"Connected {len(upstream)} activities without path to the end event")
    return len(upstream)


def _translate(
    net: PetriNet, context: ConversionContext, simplify: bool, cancellation: bool = False
) -> Tuple[Diagram, PetriNet]:
    check_marked_net(net)
    if net.reset_arcs() and not cancellation:
        context.warn(
            f"Net '{net.name}' has {len(net.reset_arcs())} reset arcs; they are not part of the control flow"
        )
    work, initial_place = prepare_net(net, context)
    translator = PetriNetToBpmnTranslator(work, initial_place, context)
    diagram = translator.translate()
    translator.add_final_marking()
    if simplify:
        simplify_diagram(diagram, context)
    connect_hanging_activities(diagram)

    for source in list(context.conversion_map):
        if source not in net:
            del context.conversion_map[source]
    return diagram, work


def convert_petri_net_to_bpmn(
    net: PetriNet, simplify: bool = True, cancellation: bool = False
) -> ConversionResult:
    """
    Convert a marked net into a diagram.

    :param net: Source net; it is cloned and not modified.
    :param simplify: Run the diagram simplifier on the result.
    :param cancellation: Turn reset arcs into cancellation subprocesses.
    :return : ConversionResult.
    :return: (diagram, transition -> activity, warnings, errors).
    """
    context = ConversionContext()
    try:
        diagram, _ = _translate(net, context, simplify, cancellation)
        if cancellation and net.reset_arcs():
            build_cancellation_regions(diagram, net, context)
    except ConversionError as e:
        return context.failed(str(e))
    return context.result(diagram)


def convert_petri_net_to_bpmn_with_subprocesses(net: PetriNet) -> ConversionResult:
    """
    Convert a marked net into a diagram with nested SESE subprocesses.

    :param net: Source net; it is cloned and not modified.
    :return : ConversionResult.
    :return: (diagram, transition -> activity, warnings, errors).
    """
    context = ConversionContext()
    try:
        diagram, _ = _translate(net, context, simplify=True)
    except ConversionError as e:
        return context.failed(str(e))

    starts = diagram.start_events()
    ends = diagram.end_events()
    if len(starts) != 1 or len(ends) != 1:
        context.warn(
            f"Subprocess discovery needs one start and one end event, found {len(starts)} and {len(ends)}"
        )
        return context.result(diagram)

    discovery = SubprocessDiscovery(diagram, starts[0], ends[0])
    containers = construct_subprocesses(diagram, discovery)
    logger.info(f"Constructed {len(containers)} subprocesses")
    return context.result(diagram)
