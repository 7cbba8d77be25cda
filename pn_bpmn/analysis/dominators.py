"""
Dominator and post-dominator analysis.

Iterative fixpoint over a rooted graph. A node d dominates n when every path
from the root to n passes through d; post-dominance is the same relation on
the reversed graph rooted at the end node.

:return : Dominator utilities.
:return: Functions computing dominator sets and derived lookups.
"""

import logging
from typing import Dict, Iterable, Optional, Set

from pn_bpmn.models.graph import EdgeKind, Graph, NodeId

logger = logging.getLogger(__name__)


def compute_dominators(
    graph: Graph,
    root: NodeId,
    reverse: bool = False,
    nodes: Optional[Iterable[NodeId]] = None,
    kind: Optional[EdgeKind] = None,
) -> Dict[NodeId, Set[NodeId]]:
    """
    Compute the dominator set of every node.

    Every non-root node starts with the set of all nodes and the root with
    itself; each round intersects a node's set with the sets of its
    predecessors and adds the node back, until nothing shrinks. Nodes without
    predecessors besides the root keep the full set.

    :param graph: Graph to analyze.
    :param root: Start node, or end node when reverse is set.
    :param reverse: Follow edges backwards (post-dominators).
    :param nodes: Restrict the analysis to these nodes (one containment level).
    :param kind: Only follow edges of this kind.
    :return : Map node -> dominator set.
    :return: Dominator (or post-dominator) sets including the node itself.
    """
    scope = list(nodes) if nodes is not None else graph.node_ids()
    in_scope = set(scope)
    if root not in in_scope:
        raise ValueError(f"Root {root} is not part of the analyzed nodes")

    dominators: Dict[NodeId, Set[NodeId]] = {
        n: ({root} if n == root else set(in_scope)) for n in scope
    }

    rounds = 0
    changed = True
    while changed:
        changed = False
        rounds += 1
        for node in scope:
            if node == root:
                continue
            neighbours = graph.successors(node, kind) if reverse else graph.predecessors(node, kind)
            incoming = [dominators[p] for p in neighbours if p in in_scope]
            if not incoming:
                continue
            updated = set.intersection(*incoming) | {node}
            if updated != dominators[node]:
                dominators[node] = updated
                changed = True

    logger.debug(
        f"{'Post-dominators' if reverse else 'Dominators'} from {root} "
        f"converged after {rounds} rounds over {len(scope)} nodes"
    )
    return dominators


def build_dominance_tree(dominators: Dict[NodeId, Set[NodeId]]) -> Dict[NodeId, Set[NodeId]]:
    """
    Group, for every node d, the nodes whose dominator set contains d.

    The result is the inclusion structure used for subset comparisons, not an
    immediate-dominator tree. A node is not listed under itself.

    :param dominators: Output of compute_dominators.
    :return : Map node -> dominated nodes.
    :return: Strictly dominated nodes per node.
    """
    tree: Dict[NodeId, Set[NodeId]] = {node: set() for node in dominators}
    for node, doms in dominators.items():
        for dominator in doms:
            if dominator != node:
                tree[dominator].add(node)
    return tree


def minimal_dominator(
    dominators: Dict[NodeId, Set[NodeId]], node: NodeId, candidates: Iterable[NodeId]
) -> Optional[NodeId]:
    """
    Nearest dominator of a node among candidates.

    :param dominators: Dominator sets.
    :param node: Node whose dominators are searched.
    :param candidates: Allowed answers.
    :return : Node handle or None.
    :return: The candidate dominating node that is dominated by all other such candidates.
    """
    found = [c for c in candidates if c in dominators.get(node, ())]
    if not found:
        return None
    return max(found, key=lambda c: len(dominators.get(c, ())))


def immediate_common_dominator(
    dominators: Dict[NodeId, Set[NodeId]], nodes: Iterable[NodeId]
) -> Optional[NodeId]:
    """
    Nearest node dominating all given nodes.

    :param dominators: Dominator (or post-dominator) sets.
    :param nodes: Nodes that must all be dominated.
    :return : Node handle or None.
    :return: Deepest common dominator.
    """
    sets = [dominators[n] for n in nodes]
    if not sets:
        return None
    common = set.intersection(*sets)
    if not common:
        return None
    return max(common, key=lambda c: (len(dominators.get(c, ())), -c))
