"""
Unit tests for dominator analysis and SESE subprocess discovery.

:return : Test suite.
:return: Unit tests for dominators, borders and subprocess construction.
"""

import pytest

from pn_bpmn.analysis.dominators import (
    build_dominance_tree,
    compute_dominators,
    immediate_common_dominator,
    minimal_dominator,
)
from pn_bpmn.analysis.sese import SubprocessDiscovery, collect_region
from pn_bpmn.map.pn_to_bpmn import convert_petri_net_to_bpmn_with_subprocesses
from pn_bpmn.models.bpmn import Diagram, EventType, GatewayType
from pn_bpmn.models.petri import PetriNet


def _diamond():
    diagram = Diagram()
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    c = diagram.add_activity("c")
    d = diagram.add_activity("d")
    diagram.add_flow(a, b)
    diagram.add_flow(a, c)
    diagram.add_flow(b, d)
    diagram.add_flow(c, d)
    return diagram, a, b, c, d


def test_dominators_of_diamond() -> None:
    """
    Test dominator sets of a diamond.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()

    doms = compute_dominators(diagram, a)

    assert doms == {a: {a}, b: {a, b}, c: {a, c}, d: {a, d}}


def test_post_dominators_of_diamond() -> None:
    """
    Test post-dominator sets of a diamond.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()

    post = compute_dominators(diagram, d, reverse=True)

    assert post == {a: {a, d}, b: {b, d}, c: {c, d}, d: {d}}


def test_dominators_with_loop() -> None:
    """
    Test that a back edge does not remove loop nodes from dominator sets.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    a, b, c, d = (diagram.add_activity(label) for label in "abcd")
    diagram.add_flow(a, b)
    diagram.add_flow(b, c)
    diagram.add_flow(c, b)
    diagram.add_flow(c, d)

    doms = compute_dominators(diagram, a)

    assert doms[b] == {a, b}
    assert doms[d] == {a, b, c, d}


def test_unreachable_node_keeps_all_nodes() -> None:
    """
    Test that a node without predecessors keeps the initial full set.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    x = diagram.add_activity("x")
    diagram.add_flow(a, b)

    doms = compute_dominators(diagram, a)

    assert doms[x] == {a, b, x}


def test_root_outside_scope() -> None:
    """
    Test that the root must belong to the analyzed nodes.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()

    with pytest.raises(ValueError):
        compute_dominators(diagram, a, nodes=[b, c, d])


def test_dominance_tree_and_common_dominator() -> None:
    """
    Test dominance tree grouping and the immediate common dominator.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()
    doms = compute_dominators(diagram, a)

    tree = build_dominance_tree(doms)

    assert tree == {a: {b, c, d}, b: set(), c: set(), d: set()}
    assert immediate_common_dominator(doms, [b, c]) == a
    assert immediate_common_dominator(doms, [d]) == d


def test_minimal_dominator() -> None:
    """
    Test the nearest dominator among candidates.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()
    doms = compute_dominators(diagram, a)

    assert minimal_dominator(doms, d, [a, b]) == a
    assert minimal_dominator(doms, d, [a, d]) == d
    assert minimal_dominator(doms, d, [b, c]) is None


def test_borders_of_sequence() -> None:
    """
    Test that a sequence has the whole-graph border.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    end = diagram.add_event(EventType.END)
    diagram.add_flow(start, a)
    diagram.add_flow(a, b)
    diagram.add_flow(b, end)

    discovery = SubprocessDiscovery(diagram, start, end)

    assert discovery.borders == {start: end}


def test_borders_of_xor_block() -> None:
    """
    Test the non-trivial borders of an exclusive choice.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    split = diagram.add_gateway(GatewayType.XOR)
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    join = diagram.add_gateway(GatewayType.XOR)
    end = diagram.add_event(EventType.END)
    diagram.add_flow(start, split)
    diagram.add_flow(split, a)
    diagram.add_flow(split, b)
    diagram.add_flow(a, join)
    diagram.add_flow(b, join)
    diagram.add_flow(join, end)

    discovery = SubprocessDiscovery(diagram, start, end)

    assert {d: p for d, p in discovery.borders.items() if d != p} == {start: end}
    assert discovery.borders[a] == a


def test_collect_region_stops_at_exit() -> None:
    """
    Test that region collection includes but does not expand the exit.

    :return : None.
    :return: Test assertion.
    """
    diagram, a, b, c, d = _diamond()
    e = diagram.add_activity("e")
    diagram.add_flow(d, e)

    nodes, edges = collect_region(diagram, a, d)

    assert set(nodes) == {a, b, c, d}
    assert len(edges) == 4


def test_subprocesses_for_sequential_net() -> None:
    """
    Test subprocess construction on a sequential net.

    :return : None.
    :return: Test assertion.
    """
    net = PetriNet()
    p0 = net.add_place("p0", tokens=1)
    a = net.add_transition("a")
    p1 = net.add_place("p1")
    b = net.add_transition("b")
    p2 = net.add_place("p2", final=1)
    net.add_arc(p0, a)
    net.add_arc(a, p1)
    net.add_arc(p1, b)
    net.add_arc(b, p2)

    result = convert_petri_net_to_bpmn_with_subprocesses(net)
    diagram = result.target

    assert result.ok
    assert len(diagram.subprocesses()) == 1
    subprocess = diagram.subprocesses()[0]
    assert result.conversion_map[a] in diagram.children(subprocess)
    assert result.conversion_map[b] in diagram.children(subprocess)
    assert len(diagram.children(None)) == 3
    assert len(diagram.start_events()) == 1
    assert len(diagram.end_events()) == 1
    assert len(diagram.start_events(subprocess)) == 1
