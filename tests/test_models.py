"""
Unit tests for the graph, net, diagram, C-net and process tree models.

:return : Test suite.
:return: Unit tests for model construction and invariants.
"""

import pytest

from pn_bpmn.models.bpmn import Diagram, EventType, GatewayType
from pn_bpmn.models.cnet import CausalNet
from pn_bpmn.models.graph import EdgeKind
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.process_tree import ProcessTree, TreeOperator, node, task, tau


def test_add_edge_is_idempotent() -> None:
    """
    Test that adding the same edge twice keeps one edge.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")

    first = diagram.add_flow(a, b)
    second = diagram.add_flow(a, b, "guard")

    assert first is second
    assert len(diagram.flows()) == 1
    assert first.label == "guard"


def test_remove_node_removes_incident_edges() -> None:
    """
    Test that removing a node drops its edges in both directions.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    c = diagram.add_activity("c")
    diagram.add_flow(a, b)
    diagram.add_flow(b, c)

    diagram.remove_node(b)

    assert b not in diagram
    assert diagram.flows() == []
    assert diagram.out_flows(a) == []
    assert diagram.in_flows(c) == []


def test_copy_preserves_handles() -> None:
    """
    Test that a copy keeps handles and is independent.

    :return : None.
    :return: Test assertion.
    """
    net = PetriNet()
    p = net.add_place("p", tokens=1)
    t = net.add_transition("t")
    net.add_arc(p, t)

    clone = net.copy()
    clone.remove_node(t)

    assert clone.node(p).label == "p"
    assert clone.initial_marking == {p: 1}
    assert t in net
    assert t not in clone
    assert len(net.edges()) == 1


def test_containment_cycle_is_rejected() -> None:
    """
    Test that a container cannot be placed inside its own descendant.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    outer = diagram.add_subprocess("outer")
    inner = diagram.add_subprocess("inner", parent=outer)

    with pytest.raises(ValueError):
        diagram.set_parent(outer, inner)
    with pytest.raises(ValueError):
        diagram.set_parent(outer, outer)


def test_removing_container_moves_children_up() -> None:
    """
    Test that children of a removed container move to its parent.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    outer = diagram.add_subprocess("outer")
    inner = diagram.add_subprocess("inner", parent=outer)
    a = diagram.add_activity("a", parent=inner)

    diagram.remove_node(inner)

    assert diagram.parent(a) == outer
    assert diagram.children(outer) == [a]


def test_flow_belongs_to_source_container() -> None:
    """
    Test that a flow without explicit owner belongs to the container of its source.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    sub = diagram.add_subprocess("sub")
    a = diagram.add_activity("a", parent=sub)
    b = diagram.add_activity("b", parent=sub)

    flow = diagram.add_flow(a, b)

    assert diagram.edge_parent(flow) == sub


def test_boundary_event_needs_activity() -> None:
    """
    Test boundary event attachment checks.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    sub = diagram.add_subprocess("sub")
    a = diagram.add_activity("a", parent=sub)
    gateway = diagram.add_gateway(GatewayType.XOR)

    event = diagram.add_event(EventType.INTERMEDIATE, "timeout", attached_to=a)

    assert diagram.boundary_events(a) == [event]
    assert diagram.parent(event) == sub
    with pytest.raises(ValueError):
        diagram.add_event(EventType.INTERMEDIATE, attached_to=gateway)


def test_net_arcs_must_alternate() -> None:
    """
    Test that net arcs connect a place and a transition.

    :return : None.
    :return: Test assertion.
    """
    net = PetriNet()
    p1 = net.add_place("p1")
    p2 = net.add_place("p2")
    t = net.add_transition("t")

    with pytest.raises(ValueError):
        net.add_arc(p1, p2)
    with pytest.raises(ValueError):
        net.add_arc(t, p1, EdgeKind.RESET)
    with pytest.raises(ValueError):
        net.add_arc(p1, t, EdgeKind.FLOW)

    net.add_arc(p1, t, EdgeKind.RESET)
    assert len(net.reset_arcs()) == 1
    assert net.input_places(t) == []


def test_silent_transitions() -> None:
    """
    Test which transitions count as silent.

    :return : None.
    :return: Test assertion.
    """
    net = PetriNet()
    visible = net.add_transition("a")
    unlabelled = net.add_transition()
    tau_labelled = net.add_transition("tau_1")
    invisible = net.add_transition("b", invisible=True)

    assert not net.is_silent(visible)
    assert net.is_silent(unlabelled)
    assert net.is_silent(tau_labelled)
    assert net.is_silent(invisible)


def test_cnet_remove_node_purges_bindings() -> None:
    """
    Test that removing a C-net node drops it from all bindings.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    a = cnet.add_activity("a")
    b = cnet.add_activity("b")
    c = cnet.add_activity("c")
    cnet.add_output_binding(a, [b, c])
    cnet.add_output_binding(a, [b])
    cnet.add_input_binding(b, [a])
    cnet.add_input_binding(c, [a])

    cnet.remove_node(b)

    assert cnet.output_bindings(a) == [frozenset({c})]
    assert cnet.has_edge(a, c, EdgeKind.DEPENDENCY)
    assert len(cnet.edges(EdgeKind.DEPENDENCY)) == 1


def test_cnet_binding_with_unknown_member() -> None:
    """
    Test that bindings must reference existing nodes.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    a = cnet.add_activity("a")

    with pytest.raises(KeyError):
        cnet.add_output_binding(a, [a + 100])


def test_process_tree_leaf_without_children() -> None:
    """
    Test that tasks and silent leaves cannot have children.

    :return : None.
    :return: Test assertion.
    """
    with pytest.raises(ValueError):
        ProcessTree(TreeOperator.TASK, "a", [task("b")])
    with pytest.raises(ValueError):
        ProcessTree(TreeOperator.TAU, "", [tau()])


def test_process_tree_walk_and_dict() -> None:
    """
    Test pre-order traversal and dictionary round trip of a tree.

    :return : None.
    :return: Test assertion.
    """
    tree = node(TreeOperator.SEQ, task("a"), node(TreeOperator.XOR, task("b"), tau()))

    labels = [n.label or n.operator.value for n in tree.walk()]
    restored = ProcessTree.from_dict(tree.to_dict())

    assert labels == ["seq", "a", "xor", "b", "tau"]
    assert restored.to_dict() == tree.to_dict()
