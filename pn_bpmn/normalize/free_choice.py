"""
Free-choice check and normalization of nets.

A net is free-choice when any two transitions whose input places overlap have
identical input places. Places in a partial overlap are split: each of their
outgoing arcs gets a private silent transition and place in series.

:return : Free-choice utilities.
:return: Functions for detection and in-place normalization.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Set, Tuple

from pn_bpmn.models.graph import EdgeKind, NodeId
from pn_bpmn.models.petri import PetriNet

logger = logging.getLogger(__name__)

ORTHOGONAL_ARCS = (EdgeKind.RESET, EdgeKind.INHIBITOR)


@contextmanager
def detached_arcs(net: PetriNet, kinds: Tuple[EdgeKind, ...] = ORTHOGONAL_ARCS) -> Iterator[int]:
    """
    Temporarily remove arcs of the given kinds from a net.

    :param net: Net to modify.
    :param kinds: Arc kinds to detach.
    :return : Context manager yielding the number of detached arcs.
    :return: Arcs are restored on exit.
    """
    detached = [e for e in net.edges() if e.kind in kinds]
    for edge in detached:
        net.remove_edge(edge)
    try:
        yield len(detached)
    finally:
        for edge in detached:
            if edge.source in net and edge.target in net:
                net.add_edge(edge.source, edge.target, edge.kind, edge.label)


def non_free_choice_places(net: PetriNet) -> List[NodeId]:
    """
    Places shared by two transitions with different input places.

    :param net: Net to inspect (ordinary arcs only).
    :return : List of place handles.
    :return: Places violating the free-choice property, in net order.
    """
    transitions = net.transitions()
    inputs = {t: set(net.input_places(t)) for t in transitions}
    marked: Set[NodeId] = set()
    for i, first in enumerate(transitions):
        for second in transitions[i + 1:]:
            common = inputs[first] & inputs[second]
            if common and inputs[first] != inputs[second]:
                marked |= common
    return [p for p in net.places() if p in marked]


def is_free_choice(net: PetriNet) -> bool:
    """
    Check the free-choice property with reset and inhibitor arcs ignored.

    :param net: Net to inspect.
    :return : Boolean.
    :return: True if no place is shared by a partial overlap.
    """
    with detached_arcs(net):
        return not non_free_choice_places(net)


def _split_place(net: PetriNet, place: NodeId) -> int:
    count = 0
    for edge in net.out_edges(place, EdgeKind.ARC):
        transition = edge.target
        net.remove_edge(edge)
        silent = net.add_transition(invisible=True)
        private = net.add_place(label=f"{net.node(place).label}_{net.node(transition).label}")
        net.add_arc(place, silent)
        net.add_arc(silent, private)
        net.add_arc(private, transition)
        count += 1
    return count


def normalize(net: PetriNet) -> PetriNet:
    """
    Make a net free-choice in place.

    Splitting a place can expose a partial overlap on a place that was fine
    before, so the check and split repeat until no violating place is left.
    Every original place is split at most once.

    :param net: Net to normalize, mutated in place.
    :return : PetriNet.
    :return: The same net object.
    """
    split: Set[NodeId] = set()
    while True:
        with detached_arcs(net):
            violating = [p for p in non_free_choice_places(net) if p not in split]
        if not violating:
            break
        for place in violating:
            arcs = _split_place(net, place)
            split.add(place)
            logger.debug(f"Split non free-choice place {place} over {arcs} arcs")
    if split:
        logger.info(f"Normalized net '{net.name}': split {len(split)} places")
    return net
