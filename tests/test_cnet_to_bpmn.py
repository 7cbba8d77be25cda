"""
Unit tests for C-net to diagram conversion.

:return : Test suite.
:return: Unit tests for binding translation and start/end handling.
"""

from pn_bpmn.map.cnet_to_bpmn import convert_cnet_to_bpmn
from pn_bpmn.models.bpmn import GatewayType
from pn_bpmn.models.cnet import CausalNet


def _choice_cnet(parallel: bool = False):
    cnet = CausalNet("choice")
    a, b, c, d = (cnet.add_activity(label) for label in "abcd")
    if parallel:
        cnet.add_output_binding(a, [b, c])
        cnet.add_input_binding(d, [b, c])
    else:
        cnet.add_output_binding(a, [b])
        cnet.add_output_binding(a, [c])
        cnet.add_input_binding(d, [b])
        cnet.add_input_binding(d, [c])
    for middle in (b, c):
        cnet.add_input_binding(middle, [a])
        cnet.add_output_binding(middle, [d])
    return cnet, a, b, c, d


def test_exclusive_bindings() -> None:
    """
    Test that alternative singleton bindings become XOR gateways.

    :return : None.
    :return: Test assertion.
    """
    cnet, a, b, c, d = _choice_cnet()

    result = convert_cnet_to_bpmn(cnet, simplify=False)
    diagram = result.target

    assert result.ok
    assert sorted(diagram.labels()) == ["a", "b", "c", "d"]
    assert len(diagram.gateways(GatewayType.XOR)) == 2
    assert len(diagram.gateways()) == 2
    assert len(diagram.flows()) == 8
    assert len(diagram.start_events()) == 1
    assert len(diagram.end_events()) == 1
    split = diagram.successors(result.conversion_map[a])[0]
    assert diagram.node(split).label == "a_O"
    assert set(diagram.successors(split)) == {result.conversion_map[b], result.conversion_map[c]}


def test_parallel_binding() -> None:
    """
    Test that a binding with several members becomes an AND gateway.

    :return : None.
    :return: Test assertion.
    """
    cnet, a, b, c, d = _choice_cnet(parallel=True)

    unsimplified = convert_cnet_to_bpmn(cnet, simplify=False).target
    simplified = convert_cnet_to_bpmn(cnet).target

    assert len(unsimplified.gateways(GatewayType.AND)) == 2
    assert len(unsimplified.flows()) == 8
    assert len(simplified.gateways()) == 1
    assert len(simplified.gateways(GatewayType.AND)) == 1


def test_inclusive_gateways_for_mixed_bindings() -> None:
    """
    Test one inclusive gateway per side when bindings mix sizes.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    a, b, c, d = (cnet.add_activity(label) for label in "abcd")
    cnet.add_output_binding(a, [b])
    cnet.add_output_binding(a, [b, c])
    cnet.add_input_binding(d, [b])
    cnet.add_input_binding(d, [b, c])
    for middle in (b, c):
        cnet.add_input_binding(middle, [a])
        cnet.add_output_binding(middle, [d])

    result = convert_cnet_to_bpmn(cnet, inclusive=True, split=False)
    labels = sorted(result.target.node(g).label for g in result.target.gateways(GatewayType.OR))

    assert result.ok
    assert labels == ["a_OUT", "d_IN"]


def test_common_start_is_not_mapped() -> None:
    """
    Test that the added common start node is spliced out and left out of the map.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    a1 = cnet.add_activity("a1")
    a2 = cnet.add_activity("a2")
    d = cnet.add_activity("d")
    cnet.add_output_binding(a1, [d])
    cnet.add_output_binding(a2, [d])
    cnet.add_input_binding(d, [a1])
    cnet.add_input_binding(d, [a2])

    result = convert_cnet_to_bpmn(cnet)
    diagram = result.target

    assert result.ok
    assert len(cnet) == 3
    assert set(result.conversion_map) == {a1, a2, d}
    assert not any(diagram.is_silent(n) for n in diagram.activities())
    assert len(diagram.start_events()) == 1
    assert sorted(diagram.labels()) == ["a1", "a2", "d"]


def test_intersecting_bindings_are_split() -> None:
    """
    Test conversion of a node with intersecting input bindings.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    s = cnet.add_activity("s")
    x = cnet.add_activity("x")
    y = cnet.add_activity("y")
    n = cnet.add_activity("n")
    cnet.add_output_binding(s, [x])
    cnet.add_output_binding(s, [x, y])
    cnet.add_input_binding(x, [s])
    cnet.add_input_binding(y, [s])
    cnet.add_output_binding(x, [n])
    cnet.add_output_binding(y, [n])
    cnet.add_input_binding(n, [x])
    cnet.add_input_binding(n, [x, y])

    result = convert_cnet_to_bpmn(cnet)

    assert result.ok
    assert n not in result.conversion_map
    assert sorted(result.target.labels()) == ["n", "n", "s", "x", "y"]


def test_cnet_without_start_fails() -> None:
    """
    Test that a cyclic C-net without start node yields an error result.

    :return : None.
    :return: Test assertion.
    """
    cnet = CausalNet()
    a = cnet.add_activity("a")
    b = cnet.add_activity("b")
    cnet.add_output_binding(a, [b])
    cnet.add_input_binding(b, [a])
    cnet.add_output_binding(b, [a])
    cnet.add_input_binding(a, [b])

    result = convert_cnet_to_bpmn(cnet)

    assert not result.ok
    assert result.target is None
    assert "No start nodes" in result.errors[0]
