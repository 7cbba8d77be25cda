"""
Structural reduction of diagrams.

Rules applied until nothing changes:

- a silent activity with one incoming and one outgoing flow is spliced out;
- two adjacent XOR (or AND) gateways merge when the first has one outgoing
  flow or the second has one incoming flow;
- a gateway with one incoming and one outgoing flow is spliced out;
- an AND split right after an activity (XOR join right before it) with a
  single flow on the activity side is absorbed into the activity.

:return : Diagram simplifier.
:return: Function simplify and its rule helpers.
"""

import logging
from typing import Optional

from pn_bpmn.models.bpmn import Diagram, GatewayType
from pn_bpmn.models.graph import NodeId
from pn_bpmn.models.result import ConversionContext

logger = logging.getLogger(__name__)

MERGEABLE_GATEWAYS = (GatewayType.XOR, GatewayType.AND)


def _splice(diagram: Diagram, node: NodeId) -> None:
    """
    Remove a node with one incoming and one outgoing flow, joining its neighbours.

    :param diagram: Diagram to modify.
    :param node: Node handle.
    :return : None.
    :return: Graph mutation side-effect.
    """
    incoming = diagram.in_flows(node)[0]
    outgoing = diagram.out_flows(node)[0]
    label = incoming.label or outgoing.label
    parent = diagram.edge_parent(incoming)
    diagram.remove_node(node)
    diagram.add_flow(incoming.source, outgoing.target, label, parent=parent)


def _is_unary(diagram: Diagram, node: NodeId) -> bool:
    incoming = diagram.in_flows(node)
    outgoing = diagram.out_flows(node)
    return len(incoming) == 1 and len(outgoing) == 1 and incoming[0].source != node


def remove_silent_activities(
    diagram: Diagram, context: Optional[ConversionContext] = None
) -> bool:
    """
    Splice out silent activities with unary fan.

    Silent activities with other fan stay and are reported as errors. Removed
    activities also leave the conversion map of the context.

    :param diagram: Diagram to modify.
    :param context: Conversion context receiving errors and map updates.
    :return : Boolean.
    :return: True if the diagram changed.
    """
    changed = False
    for node in diagram.activities():
        if not diagram.is_silent(node) or diagram.boundary_events(node):
            continue
        if not _is_unary(diagram, node):
            if context is not None:
                message = (
                    f"Silent activity {node} has {len(diagram.in_flows(node))} incoming and "
                    f"{len(diagram.out_flows(node))} outgoing flows and cannot be removed"
                )
                if message not in context.errors:
                    context.error(message)
            continue
        _splice(diagram, node)
        if context is not None:
            for source, target in list(context.conversion_map.items()):
                if target == node:
                    del context.conversion_map[source]
        changed = True
    return changed


def merge_gateways(diagram: Diagram) -> bool:
    """
    Merge adjacent gateways of the same XOR or AND type.

    :param diagram: Diagram to modify.
    :return : Boolean.
    :return: True if a merge happened.
    """
    for gateway in diagram.gateways():
        gateway_type = diagram.node(gateway).gateway_type
        if gateway_type not in MERGEABLE_GATEWAYS:
            continue
        for following in diagram.successors(gateway):
            if following == gateway or not diagram.is_gateway(following, gateway_type):
                continue
            link = diagram.edge(gateway, following)
            if len(diagram.in_flows(following)) == 1:
                for edge in diagram.out_flows(following):
                    diagram.add_flow(gateway, edge.target, edge.label or link.label)
                diagram.remove_node(following)
            elif len(diagram.out_flows(gateway)) == 1:
                for edge in diagram.in_flows(gateway):
                    diagram.add_flow(edge.source, following, edge.label or link.label)
                diagram.remove_node(gateway)
            else:
                continue
            logger.debug(f"Merged {gateway_type.value} gateways {gateway} and {following}")
            return True
    return False


def remove_unary_gateways(diagram: Diagram) -> bool:
    changed = False
    for gateway in diagram.gateways():
        if _is_unary(diagram, gateway):
            _splice(diagram, gateway)
            changed = True
    return changed


def absorb_gateways(diagram: Diagram) -> bool:
    """
    Fold singleton-fan AND splits and XOR joins into adjacent activities.

    An activity whose only outgoing flow enters an AND gateway with a single
    incoming flow takes over the gateway's outgoing flows; an activity whose
    only incoming flow leaves an XOR gateway with a single outgoing flow takes
    over the gateway's incoming flows.

    :param diagram: Diagram to modify.
    :return : Boolean.
    :return: True if a gateway was absorbed.
    """
    changed = False
    for activity in diagram.activities():
        outgoing = diagram.out_flows(activity)
        if len(outgoing) == 1:
            split = outgoing[0].target
            if (
                split != activity
                and diagram.is_gateway(split, GatewayType.AND)
                and len(diagram.in_flows(split)) == 1
            ):
                for edge in diagram.out_flows(split):
                    diagram.add_flow(activity, edge.target, edge.label)
                diagram.remove_node(split)
                changed = True

        incoming = diagram.in_flows(activity)
        if len(incoming) == 1:
            join = incoming[0].source
            if (
                join != activity
                and diagram.is_gateway(join, GatewayType.XOR)
                and len(diagram.out_flows(join)) == 1
            ):
                for edge in diagram.in_flows(join):
                    diagram.add_flow(edge.source, activity, edge.label)
                diagram.remove_node(join)
                changed = True
    return changed


def simplify(diagram: Diagram, context: Optional[ConversionContext] = None) -> Diagram:
    """
    Reduce a diagram in place until no rule applies.

    Running it again on its own output changes nothing.

    :param diagram: Diagram to simplify.
    :param context: Optional conversion context for errors and map updates.
    :return : Diagram.
    :return: The same diagram object.
    """
    before = (len(diagram), len(diagram.flows()))
    rounds = 0
    changed = True
    while changed:
        rounds += 1
        changed = remove_silent_activities(diagram, context)
        while merge_gateways(diagram):
            changed = True
        changed = remove_unary_gateways(diagram) or changed
        changed = absorb_gateways(diagram) or changed
    logger.debug(
        f"Simplified diagram in {rounds} rounds: {before[0]} -> {len(diagram)} nodes, "
        f"{before[1]} -> {len(diagram.flows())} flows"
    )
    return diagram
