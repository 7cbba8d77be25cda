"""
Unit tests for diagram to Petri net conversion.

:return : Test suite.
:return: Unit tests for gateway, activity and subprocess translation.
"""

from pn_bpmn.config import EndEventJoin, LabelMode, NetTranslationConfig
from pn_bpmn.map.bpmn_to_pn import convert_bpmn_to_petri_net
from pn_bpmn.map.pn_to_bpmn import convert_petri_net_to_bpmn
from pn_bpmn.models.bpmn import Diagram, EventTrigger, EventType, GatewayType
from pn_bpmn.models.petri import PetriNet


def _split_diagram(gateway_type: GatewayType):
    diagram = Diagram("split")
    start = diagram.add_event(EventType.START, "start")
    gateway = diagram.add_gateway(gateway_type, "g")
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    end = diagram.add_event(EventType.END, "end")
    diagram.add_flow(start, gateway)
    diagram.add_flow(gateway, a)
    diagram.add_flow(gateway, b)
    diagram.add_flow(a, end)
    diagram.add_flow(b, end)
    return diagram, gateway


def test_sequence_translation() -> None:
    """
    Test the net of a sequential diagram.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram("sequence")
    start = diagram.add_event(EventType.START, "start")
    a = diagram.add_activity("a")
    end = diagram.add_event(EventType.END, "end")
    diagram.add_flow(start, a)
    diagram.add_flow(a, end)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target

    assert result.ok
    assert len(net.transitions()) == 3
    assert len(net.places()) == 4
    assert [net.node(t).label for t in net.transitions() if not net.is_silent(t)] == ["a"]
    assert len(net.initial_marking) == 1
    assert len(net.final_marking) == 1
    assert len(result.conversion_map[a]) == 1
    assert result.conversion_map[start][0] in net.initial_marking


def test_inclusive_split_enumerates_subsets() -> None:
    """
    Test that an inclusive split with two outgoing flows yields three transitions.

    :return : None.
    :return: Test assertion.
    """
    diagram, gateway = _split_diagram(GatewayType.OR)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    transitions = result.conversion_map[gateway]

    assert result.ok
    assert len(transitions) == 3
    assert all(net.transition(t).invisible for t in transitions)
    assert sorted(len(net.output_places(t)) for t in transitions) == [1, 1, 2]
    assert any("Inclusive-OR-Split" in w for w in result.warnings)


def test_inclusive_join_enumerates_subsets() -> None:
    """
    Test that an inclusive join is enumerated and reported as lossy.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram("join")
    start = diagram.add_event(EventType.START)
    split = diagram.add_gateway(GatewayType.AND)
    a = diagram.add_activity("a")
    b = diagram.add_activity("b")
    join = diagram.add_gateway(GatewayType.OR)
    end = diagram.add_event(EventType.END)
    diagram.add_flow(start, split)
    diagram.add_flow(split, a)
    diagram.add_flow(split, b)
    diagram.add_flow(a, join)
    diagram.add_flow(b, join)
    diagram.add_flow(join, end)

    result = convert_bpmn_to_petri_net(diagram)

    assert result.ok
    assert len(result.conversion_map[join]) == 3
    assert any("Inclusive-OR-Join" in w for w in result.warnings)


def test_exclusive_gateway_translation() -> None:
    """
    Test that an XOR split becomes one place with merge and split transitions.

    :return : None.
    :return: Test assertion.
    """
    diagram, gateway = _split_diagram(GatewayType.XOR)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    place, *transitions = result.conversion_map[gateway]

    assert result.ok
    assert result.warnings == []
    assert place in net.places()
    assert len(transitions) == 3
    assert len(net.output_transitions(place)) == 2


def test_parallel_gateway_translation() -> None:
    """
    Test that an AND split becomes a single routing transition.

    :return : None.
    :return: Test assertion.
    """
    diagram, gateway = _split_diagram(GatewayType.AND)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    (transition,) = result.conversion_map[gateway]

    assert len(net.output_places(transition)) == 2
    assert net.is_silent(transition)


def test_end_event_join_modes() -> None:
    """
    Test the place structure in front of an end event with two incoming flows.

    :return : None.
    :return: Test assertion.
    """
    diagram, _ = _split_diagram(GatewayType.XOR)
    end = diagram.end_events()[0]

    synchronizing = convert_bpmn_to_petri_net(diagram).target
    merging = convert_bpmn_to_petri_net(
        diagram, NetTranslationConfig(end_event_join=EndEventJoin.XOR)
    ).target

    assert len(synchronizing.places()) == len(merging.places()) + 1
    end_transition = convert_bpmn_to_petri_net(diagram).conversion_map[end][1]
    assert len(synchronizing.input_places(end_transition)) == 2


def test_label_modes() -> None:
    """
    Test task labels under the different label modes.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START, "s")
    a = diagram.add_activity("a")
    diagram.add_flow(start, a)

    labels = {}
    for mode in LabelMode:
        result = convert_bpmn_to_petri_net(diagram, NetTranslationConfig(label_nodes_with=mode))
        labels[mode] = result.target.node(result.conversion_map[a][0]).label

    assert labels[LabelMode.ORIGINAL] == "a"
    assert labels[LabelMode.PREFIX_NONTASK] == "a"
    assert labels[LabelMode.PREFIX_ALL] == "task_a"
    assert labels[LabelMode.PREFIX_ALL_PN] == "t_task_a"


def test_looped_activity_gets_lifecycle() -> None:
    """
    Test lifecycle structure and repeat transition of a looped activity.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    a = diagram.add_activity("a", looped=True)
    end = diagram.add_event(EventType.END)
    diagram.add_flow(start, a)
    diagram.add_flow(a, end)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    act, start_t, complete_t, ready, finished, repeat = result.conversion_map[a]

    assert not net.is_silent(act)
    assert net.is_silent(start_t)
    assert net.is_silent(complete_t)
    assert net.output_places(repeat) == [ready]
    assert net.input_places(repeat) == [finished]


def test_boundary_event_consumes_ready_place() -> None:
    """
    Test that a boundary event interrupts the activity from its ready place.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    a = diagram.add_activity("a")
    end = diagram.add_event(EventType.END)
    boundary = diagram.add_event(EventType.INTERMEDIATE, "timeout", EventTrigger.TIMER, attached_to=a)
    failed = diagram.add_event(EventType.END, "failed")
    diagram.add_flow(start, a)
    diagram.add_flow(a, end)
    diagram.add_flow(boundary, failed)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    (boundary_t,) = result.conversion_map[boundary]
    ready = result.conversion_map[a][3]

    assert net.node(boundary_t).label == "event_TIMER_timeout_a"
    assert net.input_places(boundary_t) == [ready]


def test_compensation_event_warns() -> None:
    """
    Test that compensation events are reported.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    a = diagram.add_activity("a")
    diagram.add_event(EventType.INTERMEDIATE, "undo", EventTrigger.COMPENSATION, attached_to=a)

    result = convert_bpmn_to_petri_net(diagram)

    assert result.ok
    assert any("compensation" in w for w in result.warnings)
    assert len(result.conversion_map[a]) == 6


def test_subprocess_is_linked() -> None:
    """
    Test that subprocess contents run between its start and complete transitions.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    sub = diagram.add_subprocess("sub")
    end = diagram.add_event(EventType.END)
    inner_start = diagram.add_event(EventType.START, parent=sub)
    x = diagram.add_activity("x", parent=sub)
    inner_end = diagram.add_event(EventType.END, parent=sub)
    diagram.add_flow(start, sub)
    diagram.add_flow(sub, end)
    diagram.add_flow(inner_start, x)
    diagram.add_flow(x, inner_end)

    result = convert_bpmn_to_petri_net(diagram)
    net = result.target
    sub_start = result.conversion_map[sub][1]
    sub_complete = result.conversion_map[sub][2]
    inner_place = result.conversion_map[inner_start][0]
    inner_ended = result.conversion_map[inner_end][0]

    assert result.ok
    assert result.warnings == []
    assert list(net.initial_marking) == [result.conversion_map[start][0]]
    assert list(net.final_marking) == [result.conversion_map[end][0]]
    assert inner_place in net.output_places(sub_start)
    assert inner_ended in net.input_places(sub_complete)


def test_subprocess_without_linking() -> None:
    """
    Test unlinked subprocesses and the unique source and sink places.

    :return : None.
    :return: Test assertion.
    """
    diagram = Diagram()
    start = diagram.add_event(EventType.START)
    sub = diagram.add_subprocess("sub")
    end = diagram.add_event(EventType.END)
    diagram.add_flow(start, sub)
    diagram.add_flow(sub, end)

    result = convert_bpmn_to_petri_net(
        diagram, NetTranslationConfig(link_subprocess_to_activity=False)
    )
    net = result.target
    source = net.find_by_label("i")
    sink = net.find_by_label("o")

    assert result.ok
    assert any("atomic activity" in w for w in result.warnings)
    assert len(result.conversion_map[sub]) == 1
    assert net.initial_marking == {source: 1}
    assert net.final_marking == {sink: 1}


def test_sequential_round_trip_keeps_visible_transitions() -> None:
    """
    Test that a net survives conversion to a diagram and back.

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

    diagram = convert_petri_net_to_bpmn(net).target
    result = convert_bpmn_to_petri_net(diagram)
    back = result.target

    visible = sorted(back.node(t).label for t in back.transitions() if not back.is_silent(t))
    assert result.ok
    assert visible == ["a", "b"]
    assert len(back.initial_marking) == 1
    assert len(back.final_marking) == 1
