"""
Splitting of C-net nodes with intersecting input bindings.

A node whose input bindings share members cannot be expressed as a plain
join. It is replaced by one replica per input binding, all feeding a silent
terminal node that takes over the original output bindings.

:return : Binding splitter.
:return: Functions has_intersecting_bindings and split_bindings.
"""

import logging
from typing import List, Optional

from pn_bpmn.models.cnet import Binding, CausalNet
from pn_bpmn.models.graph import NodeId

logger = logging.getLogger(__name__)


def has_intersecting_bindings(cnet: CausalNet, node: NodeId) -> bool:
    """
    Check whether two input bindings of a node share a member.

    :param cnet: C-net.
    :param node: Node handle.
    :return : Boolean.
    :return: True if the node needs splitting.
    """
    bindings = [b for b in cnet.input_bindings(node) if b]
    if len(bindings) < 2:
        return False
    for i, first in enumerate(bindings):
        for second in bindings[i + 1:]:
            if first & second:
                return True
    return False


def _next_candidate(cnet: CausalNet) -> Optional[NodeId]:
    for node in cnet.activities():
        if has_intersecting_bindings(cnet, node):
            return node
    return None


def _rebound(
    bindings: List[Binding],
    original: NodeId,
    owner: NodeId,
    replicas: List[NodeId],
    inputs: List[Binding],
) -> List[Binding]:
    result: List[Binding] = []
    for binding in bindings:
        if original not in binding:
            result.append(binding)
            continue
        rest = binding - {original}
        for replica, replica_input in zip(replicas, inputs):
            if owner in replica_input:
                result.append(rest | {replica})
    return result


def _split_node(cnet: CausalNet, node: NodeId) -> List[NodeId]:
    label = cnet.node(node).label
    inputs = [b for b in cnet.input_bindings(node) if b]
    outputs = cnet.output_bindings(node)

    terminal = cnet.add_activity(f"{label}_t", silent=True)
    replicas = []
    for binding in inputs:
        replica = cnet.add_activity(label)
        cnet.add_input_binding(replica, [terminal if m == node else m for m in binding])
        cnet.add_output_binding(replica, [terminal])
        cnet.add_input_binding(terminal, [replica])
        replicas.append(replica)

    # a self-loop on the split node becomes terminal -> replica
    cnet.set_output_bindings(terminal, _rebound(outputs, node, node, replicas, inputs))
    for predecessor in sorted({m for binding in inputs for m in binding} - {node}):
        cnet.set_output_bindings(
            predecessor,
            _rebound(cnet.output_bindings(predecessor), node, predecessor, replicas, inputs),
        )
    for successor in sorted({m for binding in outputs for m in binding} - {node}):
        cnet.set_input_bindings(
            successor,
            [[terminal if m == node else m for m in b] for b in cnet.input_bindings(successor)],
        )

    if node in cnet.start_nodes:
        cnet.start_nodes = replicas + [n for n in cnet.start_nodes if n != node]
    if node in cnet.end_nodes:
        cnet.end_nodes = [terminal if n == node else n for n in cnet.end_nodes]
    cnet.remove_node(node)
    logger.debug(f"Split C-net node '{label}' into {len(replicas)} replicas and terminal {terminal}")
    return replicas


def split_bindings(cnet: CausalNet) -> CausalNet:
    """
    Replace every node with intersecting input bindings, in place.

    Replicas get exactly one input binding each, and the terminal node's
    bindings are singletons of distinct replicas, so neither needs another
    split and the loop ends.

    :param cnet: C-net to modify.
    :return : CausalNet.
    :return: The same C-net object.
    """
    cnet.remove_empty_bindings()
    splits = 0
    node = _next_candidate(cnet)
    while node is not None:
        _split_node(cnet, node)
        splits += 1
        node = _next_candidate(cnet)
    if splits:
        logger.info(f"Split {splits} C-net nodes with intersecting bindings")
    return cnet
