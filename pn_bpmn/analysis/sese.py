"""
Single-entry single-exit region discovery.

Borders pair an entry node d with an exit node p when the set of nodes
dominated by d equals the set post-dominated by p. Regions are turned into
subprocess containers from the outside in.

:return : SESE utilities.
:return: SubprocessDiscovery, collect_region and construct_subprocesses.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from pn_bpmn.analysis.dominators import build_dominance_tree, compute_dominators
from pn_bpmn.models.bpmn import Diagram, EventType, GatewayType
from pn_bpmn.models.graph import Edge, EdgeKind, NodeId

logger = logging.getLogger(__name__)


class SubprocessDiscovery:
    """
    Dominator data and SESE borders of one containment level of a diagram.

    :param diagram: Diagram to analyze.
    :param start: Entry node of the level (usually the start event).
    :param end: Exit node of the level (usually the end event).
    :param parent: Container whose children are analyzed, None for top level.
    :return : SubprocessDiscovery instance.
    :return: Analysis with dominators, dominance trees and borders.
    """

    def __init__(
        self, diagram: Diagram, start: NodeId, end: NodeId, parent: Optional[NodeId] = None
    ) -> None:
        self.diagram = diagram
        self.start = start
        self.end = end
        scope = diagram.children(parent)
        self.dominators = compute_dominators(diagram, start, False, scope, EdgeKind.FLOW)
        self.post_dominators = compute_dominators(diagram, end, True, scope, EdgeKind.FLOW)
        self.dominance_tree = build_dominance_tree(self.dominators)
        self.post_dominance_tree = build_dominance_tree(self.post_dominators)
        self.borders = self._find_borders()

    def _find_borders(self) -> Dict[NodeId, NodeId]:
        exits = {
            frozenset(members | {node}): node
            for node, members in self.post_dominance_tree.items()
        }
        borders: Dict[NodeId, NodeId] = {}
        for node, members in self.dominance_tree.items():
            exit_node = exits.get(frozenset(members | {node}))
            if exit_node is not None:
                borders[node] = exit_node
        logger.debug(f"Found {len(borders)} SESE borders")
        return borders


def collect_region(
    diagram: Diagram, entry: NodeId, exit_node: NodeId
) -> Tuple[List[NodeId], List[Edge]]:
    """
    Bounded depth-first search from entry that stops at exit.

    :param diagram: Diagram to search.
    :param entry: Region entry.
    :param exit_node: Region exit, included but not expanded.
    :return : Tuple (nodes, edges).
    :return: Member nodes in visit order and the flows between them.
    """
    visited: List[NodeId] = []
    seen: Set[NodeId] = set()
    edges: List[Edge] = []
    stack = [entry]
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        visited.append(node)
        if node == exit_node:
            continue
        for edge in diagram.out_flows(node):
            edges.append(edge)
            if edge.target not in seen:
                stack.append(edge.target)
    return visited, edges


def _qualifies(diagram: Diagram, entry: NodeId, exit_node: NodeId) -> bool:
    entry_ok = (
        diagram.is_activity(entry)
        or diagram.is_gateway(entry, GatewayType.XOR)
        or len(diagram.in_flows(entry)) <= 1
    )
    exit_ok = (
        diagram.is_activity(exit_node)
        or diagram.is_gateway(exit_node, GatewayType.AND)
        or len(diagram.out_flows(exit_node)) <= 1
    )
    return entry_ok and exit_ok


def _build_container(
    diagram: Diagram,
    entry: NodeId,
    exit_node: NodeId,
    parent: Optional[NodeId],
    label: str,
) -> Tuple[NodeId, Set[NodeId]]:
    members, inner_edges = collect_region(diagram, entry, exit_node)
    member_set = set(members)
    container = diagram.add_subprocess(label=label, parent=parent)

    crossing = [
        e
        for m in members
        for e in diagram.in_flows(m) + diagram.out_flows(m)
        if (e.source in member_set) != (e.target in member_set)
    ]
    for node in members:
        diagram.set_parent(node, container)
    for edge in inner_edges:
        diagram.set_edge_parent(edge, container)

    for edge in crossing:
        diagram.remove_edge(edge)
        if edge.target in member_set:
            diagram.add_flow(edge.source, container, edge.label, parent=parent)
        else:
            diagram.add_flow(container, edge.target, edge.label, parent=parent)

    if diagram.is_event(entry):
        outer_start = diagram.add_event(EventType.START, parent=parent)
        diagram.add_flow(outer_start, container, parent=parent)
    else:
        inner_start = diagram.add_event(EventType.START, parent=container)
        diagram.add_flow(inner_start, entry, parent=container)

    if diagram.is_event(exit_node):
        outer_end = diagram.add_event(EventType.END, parent=parent)
        diagram.add_flow(container, outer_end, parent=parent)
    else:
        inner_end = diagram.add_event(EventType.END, parent=container)
        diagram.add_flow(exit_node, inner_end, parent=container)

    logger.info(f"Built subprocess '{label}' with {len(members)} nodes ({entry} -> {exit_node})")
    return container, member_set


def construct_subprocesses(
    diagram: Diagram, discovery: SubprocessDiscovery, parent: Optional[NodeId] = None
) -> Dict[NodeId, NodeId]:
    """
    Turn the borders of a discovery into nested subprocess containers.

    A border is claimed only when no other unclaimed border strictly
    dominates its entry; otherwise it waits for a later round. Each claimed
    region is placed into the innermost already built container holding its
    entry.

    :param diagram: Diagram to restructure in place.
    :param discovery: Analysis of the diagram level.
    :param parent: Container of the analyzed level.
    :return : Map entry -> container.
    :return: Containers keyed by their region entry.
    """
    pending: Dict[NodeId, NodeId] = dict(discovery.borders)
    containers: Dict[NodeId, NodeId] = {}
    members: Dict[NodeId, Set[NodeId]] = {}

    while pending:
        claimed: List[NodeId] = []
        for entry, exit_node in pending.items():
            if not _qualifies(diagram, entry, exit_node):
                claimed.append(entry)
                continue
            outer = (discovery.dominators[entry] - {entry}) & pending.keys()
            if outer:
                continue
            claimed.append(entry)
            if entry == exit_node:
                continue
            enclosing = [c for c, inner in members.items() if entry in inner]
            owner = min(enclosing, key=lambda c: len(members[c])) if enclosing else parent
            label = f"Subprocess {len(containers) + 1}"
            container, inner = _build_container(diagram, entry, exit_node, owner, label)
            containers[entry] = container
            members[container] = inner

        if not claimed:
            logger.warning(f"Stopped subprocess construction with {len(pending)} unclaimable borders")
            break
        for entry in claimed:
            del pending[entry]

    return containers
