"""
Cancellation regions for nets with reset arcs.

A transition whose reset arcs empty the input places of several transitions
cancels those transitions. In the diagram the cancelled activities are
wrapped into a subprocess bounded by their immediate common dominator and
post-dominator, and the resetting activity hangs off an error boundary event
of that subprocess.

:return : Cancellation region construction.
:return: Functions cancelled_transitions and build_cancellation_regions.
"""

import logging
from typing import List, Optional, Set

from pn_bpmn.analysis.dominators import immediate_common_dominator
from pn_bpmn.analysis.sese import SubprocessDiscovery, collect_region
from pn_bpmn.models.bpmn import Diagram, EventTrigger, EventType, GatewayType
from pn_bpmn.models.graph import EdgeKind, NodeId
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.result import ConversionContext

logger = logging.getLogger(__name__)


def cancelled_transitions(net: PetriNet, transition: NodeId) -> List[NodeId]:
    """
    Transitions disabled when the given transition fires its reset arcs.

    :param net: Net with reset arcs.
    :param transition: Resetting transition.
    :return : List of transition handles.
    :return: Output transitions of all places reset by the transition.
    """
    result: List[NodeId] = []
    for edge in net.in_edges(transition, EdgeKind.RESET):
        for target in net.output_transitions(edge.source):
            if target not in result:
                result.append(target)
    return result


def _gateway_type(diagram: Diagram, node: NodeId) -> GatewayType:
    if diagram.is_gateway(node):
        return diagram.node(node).gateway_type
    return GatewayType.XOR


def _wrap_region(diagram: Diagram, entry: NodeId, exit_node: NodeId) -> NodeId:
    members, inner_edges = collect_region(diagram, entry, exit_node)
    container = diagram.add_subprocess(label="Cancellation region")
    for node in members:
        diagram.set_parent(node, container)
    for edge in inner_edges:
        diagram.set_edge_parent(edge, container)

    incoming = diagram.in_flows(entry)
    target = container
    if len(incoming) > 1:
        target = diagram.add_gateway(_gateway_type(diagram, entry))
        diagram.add_flow(target, container)
    for edge in incoming:
        diagram.remove_edge(edge)
        diagram.add_flow(edge.source, target, edge.label)

    outgoing = diagram.out_flows(exit_node)
    source = container
    if len(outgoing) > 1:
        source = diagram.add_gateway(_gateway_type(diagram, exit_node))
        diagram.add_flow(container, source)
    for edge in outgoing:
        diagram.remove_edge(edge)
        diagram.add_flow(source, edge.target, edge.label)

    start = diagram.add_event(EventType.START, label="Start event of the subprocess", parent=container)
    diagram.add_flow(start, entry, parent=container)
    end = diagram.add_event(EventType.END, label="End event of the subprocess", parent=container)
    diagram.add_flow(exit_node, end, parent=container)
    return container


def build_cancellation_regions(
    diagram: Diagram, net: PetriNet, context: ConversionContext
) -> List[NodeId]:
    """
    Add a cancellation subprocess for every transition cancelling several others.

    The context's conversion map must map the net's transitions to the
    diagram's activities.

    :param diagram: Diagram produced from the net, modified in place.
    :param net: Net with reset arcs.
    :param context: Conversion context of the net to diagram conversion.
    :return : List of container handles.
    :return: Created cancellation subprocesses.
    """
    starts = diagram.start_events()
    ends = diagram.end_events()
    if len(starts) != 1 or len(ends) != 1:
        context.warn(
            f"Cancellation regions need one start and one end event, found {len(starts)} and {len(ends)}"
        )
        return []

    activities = context.conversion_map
    containers: List[NodeId] = []
    for transition in net.transitions():
        cancelled = cancelled_transitions(net, transition)
        if len(cancelled) <= 1:
            continue
        catching: Optional[NodeId] = activities.get(transition)
        inner: Set[NodeId] = {activities[t] for t in cancelled if t in activities}
        if catching is None or len(inner) <= 1:
            context.warn(f"Reset arcs of transition {transition} have no counterpart in the diagram")
            continue
        incoming = diagram.in_flows(catching)
        if len(incoming) != 1 or any(diagram.parent(n) is not None for n in inner | {catching}):
            context.warn(f"Cancelling activity {catching} cannot be attached to a cancellation region")
            continue

        error_flow = incoming[0]
        inner.add(error_flow.source)
        diagram.remove_edge(error_flow)

        discovery = SubprocessDiscovery(diagram, starts[0], ends[0])
        entry = immediate_common_dominator(discovery.dominators, inner)
        exit_node = immediate_common_dominator(discovery.post_dominators, inner)
        if (
            entry is None
            or exit_node is None
            or catching in (entry, exit_node)
            or diagram.is_event(entry)
            or diagram.is_event(exit_node)
        ):
            diagram.add_flow(error_flow.source, catching, error_flow.label)
            context.warn(f"No region encloses the activities cancelled by {catching}")
            continue

        container = _wrap_region(diagram, entry, exit_node)
        boundary = diagram.add_event(
            EventType.INTERMEDIATE, trigger=EventTrigger.ERROR, attached_to=container
        )
        diagram.add_flow(boundary, catching)
        containers.append(container)
        logger.info(f"Built cancellation region {container} for activity {catching}")
    return containers
