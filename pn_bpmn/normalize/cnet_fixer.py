"""
Start and end repair of C-nets.

:return : C-net fixer.
:return: Functions locating start/end nodes and adding common ones.
"""

import logging
from typing import List, Tuple

from pn_bpmn.exceptions import ConversionError
from pn_bpmn.models.cnet import CausalNet
from pn_bpmn.models.graph import NodeId

logger = logging.getLogger(__name__)

COMMON_START = "start"
COMMON_END = "end"


def find_start_nodes(cnet: CausalNet) -> List[NodeId]:
    return [
        n
        for n in cnet.activities()
        if not cnet.input_bindings(n) or cnet.input_bindings(n) == [frozenset()]
    ]


def find_end_nodes(cnet: CausalNet) -> List[NodeId]:
    return [
        n
        for n in cnet.activities()
        if not cnet.output_bindings(n) or cnet.output_bindings(n) == [frozenset()]
    ]


def check_start_and_end(cnet: CausalNet) -> Tuple[List[NodeId], List[NodeId]]:
    """
    Resolve start and end nodes without modifying the net.

    :param cnet: C-net.
    :return : Tuple (start_nodes, end_nodes).
    :return: Declared nodes, or nodes detected from empty bindings.
    """
    starts = list(cnet.start_nodes) or find_start_nodes(cnet)
    if not starts:
        raise ConversionError("No start nodes found in the C-net")
    ends = list(cnet.end_nodes) or find_end_nodes(cnet)
    if not ends:
        raise ConversionError("No end nodes found in the C-net")
    return starts, ends


def fix_start_and_end(cnet: CausalNet) -> Tuple[NodeId, NodeId]:
    """
    Give the C-net exactly one start and one end node, in place.

    Empty bindings are dropped. Several start nodes get a silent common
    ``start`` node with one output binding per start node; end nodes are
    handled the same way.

    :param cnet: C-net to modify.
    :return : Tuple (start, end).
    :return: Handles of the single start and end node.
    """
    starts, ends = check_start_and_end(cnet)
    cnet.remove_empty_bindings()

    if len(starts) > 1:
        start = cnet.add_activity(COMMON_START, silent=True)
        for node in starts:
            cnet.add_output_binding(start, [node])
            cnet.add_input_binding(node, [start])
        logger.debug(f"Added common start node for {len(starts)} start nodes")
    else:
        start = starts[0]

    if len(ends) > 1:
        end = cnet.add_activity(COMMON_END, silent=True)
        for node in ends:
            cnet.add_input_binding(end, [node])
            cnet.add_output_binding(node, [end])
        logger.debug(f"Added common end node for {len(ends)} end nodes")
    else:
        end = ends[0]

    cnet.start_nodes = [start]
    cnet.end_nodes = [end]
    return start, end
