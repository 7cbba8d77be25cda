"""
pm4py integration adapter.

Converts between pm4py objects and the arena models of this package, and
wraps pm4py file I/O for PNML, BPMN and PTML files.

:return : pm4py integration utilities.
:return: Functions for pm4py conversion and file I/O.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import pm4py
from pm4py.objects.bpmn.obj import BPMN
from pm4py.objects.petri_net import properties as petri_properties
from pm4py.objects.petri_net.exporter import exporter as pnml_exporter
from pm4py.objects.petri_net.importer import importer as pnml_importer
from pm4py.objects.petri_net.obj import InhibitorNet, Marking, ResetInhibitorNet, ResetNet
from pm4py.objects.petri_net.obj import PetriNet as Pm4pyNet
from pm4py.objects.petri_net.utils import petri_utils
from pm4py.objects.process_tree.obj import Operator
from pm4py.objects.process_tree.obj import ProcessTree as Pm4pyTree

from pn_bpmn.models.bpmn import Diagram, EventTrigger, EventType, GatewayType
from pn_bpmn.models.graph import EdgeKind, NodeId, NodeKind
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.process_tree import ProcessTree, TreeOperator, tau
from pn_bpmn.normalize.free_choice import detached_arcs

logger = logging.getLogger(__name__)

TREE_OPERATORS = {
    Operator.SEQUENCE: TreeOperator.SEQ,
    Operator.XOR: TreeOperator.XOR,
    Operator.PARALLEL: TreeOperator.AND,
    Operator.OR: TreeOperator.OR,
    Operator.LOOP: TreeOperator.LOOP_XOR,
}

TRIGGER_NAMES = (
    ("message", EventTrigger.MESSAGE),
    ("timer", EventTrigger.TIMER),
    ("signal", EventTrigger.SIGNAL),
    ("error", EventTrigger.ERROR),
    ("cancel", EventTrigger.CANCEL),
    ("compensat", EventTrigger.COMPENSATION),
)

ARC_TYPES = {
    petri_properties.RESET_ARC: EdgeKind.RESET,
    petri_properties.INHIBITOR_ARC: EdgeKind.INHIBITOR,
}


# Petri nets


def petri_net_from_pm4py(net: Pm4pyNet, initial_marking: Marking, final_marking: Marking) -> PetriNet:
    """
    Convert a pm4py Petri net with markings.

    Transitions with label None are invisible; reset and inhibitor arcs are
    recognised from the ``arctype`` arc property.

    :param net: pm4py Petri net.
    :param initial_marking: pm4py initial marking.
    :param final_marking: pm4py final marking.
    :return : PetriNet.
    :return: Converted net with both markings.
    """
    result = PetriNet(name=net.name or "net")
    handles: Dict[Any, NodeId] = {}
    for place in sorted(net.places, key=lambda p: p.name):
        handles[place] = result.add_place(
            place.name, tokens=initial_marking.get(place, 0), final=final_marking.get(place, 0)
        )
    for transition in sorted(net.transitions, key=lambda t: t.name):
        handles[transition] = result.add_transition(
            transition.label if transition.label is not None else transition.name,
            invisible=transition.label is None,
        )
    for arc in sorted(net.arcs, key=lambda a: (a.source.name, a.target.name)):
        kind = ARC_TYPES.get(arc.properties.get(petri_properties.ARCTYPE), EdgeKind.ARC)
        result.add_arc(handles[arc.source], handles[arc.target], kind)
    logger.debug(
        f"Imported pm4py net '{result.name}' with {len(result.places())} places "
        f"and {len(result.transitions())} transitions"
    )
    return result


def _pm4py_net_class(net: PetriNet) -> type:
    kinds = {edge.kind for edge in net.edges()}
    if EdgeKind.RESET in kinds and EdgeKind.INHIBITOR in kinds:
        return ResetInhibitorNet
    if EdgeKind.RESET in kinds:
        return ResetNet
    if EdgeKind.INHIBITOR in kinds:
        return InhibitorNet
    return Pm4pyNet


def petri_net_to_pm4py(net: PetriNet) -> Tuple[Pm4pyNet, Marking, Marking]:
    """
    Convert a net into a pm4py Petri net.

    Nets with reset or inhibitor arcs become a pm4py ``ResetNet``,
    ``InhibitorNet`` or ``ResetInhibitorNet``.

    :param net: Net to convert.
    :return : Tuple of (petri_net, initial_marking, final_marking).
    :return: pm4py objects ready for export or analysis.
    """
    result = _pm4py_net_class(net)(net.name)
    objects: Dict[NodeId, Any] = {}
    for place in net.places():
        objects[place] = Pm4pyNet.Place(f"p{place}")
        result.places.add(objects[place])
    for transition in net.transitions():
        node = net.transition(transition)
        objects[transition] = Pm4pyNet.Transition(f"t{transition}", None if node.silent else node.label)
        result.transitions.add(objects[transition])

    arc_types = {kind: name for name, kind in ARC_TYPES.items()}
    for edge in net.edges():
        petri_utils.add_arc_from_to(
            objects[edge.source], objects[edge.target], result, type=arc_types.get(edge.kind)
        )

    initial_marking = Marking()
    for place, tokens in net.initial_marking.items():
        initial_marking[objects[place]] = tokens
    final_marking = Marking()
    for place, tokens in net.final_marking.items():
        final_marking[objects[place]] = tokens
    return result, initial_marking, final_marking


def import_pnml(filepath: str) -> PetriNet:
    """
    Import Petri net from PNML file.

    :param filepath: Input file path.
    :return : PetriNet.
    :return: Loaded net with markings.
    """
    net, initial_marking, final_marking = pnml_importer.apply(filepath)
    return petri_net_from_pm4py(net, initial_marking, final_marking)


def export_pnml(net: PetriNet, filepath: str) -> None:
    """
    Export a net to a PNML file.

    :param net: Net to export.
    :param filepath: Output file path.
    :return : None.
    :return: File write side-effect.
    """
    pm_net, initial_marking, final_marking = petri_net_to_pm4py(net)
    pnml_exporter.apply(pm_net, initial_marking, filepath, final_marking=final_marking)


# Diagrams


def _trigger(node: Any) -> EventTrigger:
    name = type(node).__name__.lower()
    for fragment, trigger in TRIGGER_NAMES:
        if fragment in name:
            return trigger
    return EventTrigger.NONE


def _gateway_type(node: Any) -> GatewayType:
    name = type(node).__name__.lower()
    if isinstance(node, BPMN.ParallelGateway):
        return GatewayType.AND
    if isinstance(node, BPMN.InclusiveGateway):
        return GatewayType.OR
    if "eventbased" in name:
        return GatewayType.EVENTBASED
    if "complex" in name:
        return GatewayType.COMPLEX
    return GatewayType.XOR


def bpmn_from_pm4py(bpmn: BPMN) -> Diagram:
    """
    Convert a pm4py BPMN graph into a diagram.

    Nodes whose process id is the id of a subprocess become children of that
    subprocess. Boundary events are attached to the activity they reference.

    :param bpmn: pm4py BPMN graph.
    :return : Diagram.
    :return: Converted diagram.
    """
    diagram = Diagram(name=bpmn.get_name() or "diagram")
    handles: Dict[str, NodeId] = {}
    boundary: Dict[str, Any] = {}
    nodes = sorted(bpmn.get_nodes(), key=lambda n: n.get_id())

    for node in nodes:
        name = node.get_name() or ""
        if isinstance(node, BPMN.BoundaryEvent):
            boundary[node.get_id()] = node
        elif isinstance(node, BPMN.StartEvent):
            handles[node.get_id()] = diagram.add_event(EventType.START, name, _trigger(node))
        elif isinstance(node, BPMN.EndEvent):
            handles[node.get_id()] = diagram.add_event(EventType.END, name, _trigger(node))
        elif isinstance(node, (BPMN.IntermediateCatchEvent, BPMN.IntermediateThrowEvent)):
            handles[node.get_id()] = diagram.add_event(EventType.INTERMEDIATE, name, _trigger(node))
        elif isinstance(node, BPMN.SubProcess):
            handles[node.get_id()] = diagram.add_subprocess(name)
        elif isinstance(node, BPMN.Gateway):
            handles[node.get_id()] = diagram.add_gateway(_gateway_type(node), name)
        elif isinstance(node, BPMN.Activity):
            handles[node.get_id()] = diagram.add_activity(name)
        else:
            logger.warning(f"Skipping BPMN element {node.get_id()} of type {type(node).__name__}")

    for node_id, node in boundary.items():
        activity = handles.get(node.get_activity())
        if activity is None:
            logger.warning(f"Boundary event {node_id} references unknown activity {node.get_activity()}")
            continue
        handles[node_id] = diagram.add_event(
            EventType.INTERMEDIATE, node.get_name() or "", _trigger(node), attached_to=activity
        )

    for node in nodes:
        node_id = node.get_id()
        parent = handles.get(node.get_process())
        if node_id in handles and parent is not None and diagram.node(parent).kind == NodeKind.SUBPROCESS:
            diagram.set_parent(handles[node_id], parent)

    for flow in bpmn.get_flows():
        source = handles.get(flow.get_source().get_id())
        target = handles.get(flow.get_target().get_id())
        if source is None or target is None:
            continue
        diagram.add_flow(source, target, flow.get_name() or None)
    return diagram


def _pm4py_event(diagram: Diagram, node: NodeId, process: str, activities: Dict[NodeId, Any]) -> Any:
    event = diagram.node(node)
    trigger = event.trigger
    if event.attached_to is not None:
        cls = {
            EventTrigger.ERROR: BPMN.ErrorBoundaryEvent,
            EventTrigger.CANCEL: BPMN.CancelBoundaryEvent,
            EventTrigger.MESSAGE: BPMN.MessageBoundaryEvent,
        }.get(trigger, BPMN.BoundaryEvent)
        return cls(name=event.label, process=process, activity=activities[event.attached_to].get_id())
    if event.event_type == EventType.START:
        cls = BPMN.MessageStartEvent if trigger == EventTrigger.MESSAGE else BPMN.NormalStartEvent
    elif event.event_type == EventType.END:
        cls = {
            EventTrigger.ERROR: BPMN.ErrorEndEvent,
            EventTrigger.CANCEL: BPMN.CancelEndEvent,
            EventTrigger.MESSAGE: BPMN.MessageEndEvent,
        }.get(trigger, BPMN.NormalEndEvent)
    else:
        cls = BPMN.MessageIntermediateCatchEvent if trigger == EventTrigger.MESSAGE else BPMN.IntermediateCatchEvent
    return cls(name=event.label, process=process)


def _direction(diagram: Diagram, node: NodeId) -> Any:
    if len(diagram.out_flows(node)) > 1:
        return BPMN.Gateway.Direction.DIVERGING
    if len(diagram.in_flows(node)) > 1:
        return BPMN.Gateway.Direction.CONVERGING
    return BPMN.Gateway.Direction.UNSPECIFIED


def bpmn_to_pm4py(diagram: Diagram) -> BPMN:
    """
    Convert a diagram into a pm4py BPMN graph.

    Event-based and complex gateways are exported as exclusive gateways.

    :param diagram: Diagram to convert.
    :return : BPMN.
    :return: pm4py BPMN graph.
    """
    bpmn = BPMN(name=diagram.name)
    root = bpmn.get_process_id()
    objects: Dict[NodeId, Any] = {}

    def process_of(node: NodeId) -> str:
        parent = diagram.parent(node)
        return root if parent is None else objects[parent].get_id()

    # containers before children, activities before boundary events
    order = sorted(diagram.node_ids(), key=lambda n: (len(diagram.ancestors(n)), n))
    boundary = [n for n in order if diagram.is_event(n) and diagram.node(n).attached_to is not None]
    for node in order:
        if node in boundary:
            continue
        kind = diagram.node(node).kind
        label = diagram.node(node).label
        if kind == NodeKind.SUBPROCESS:
            objects[node] = BPMN.SubProcess(name=label, process=process_of(node))
        elif kind == NodeKind.ACTIVITY:
            objects[node] = BPMN.Task(name=label, process=process_of(node))
        elif kind == NodeKind.GATEWAY:
            gateway_type = diagram.node(node).gateway_type
            cls = {
                GatewayType.AND: BPMN.ParallelGateway,
                GatewayType.OR: BPMN.InclusiveGateway,
            }.get(gateway_type, BPMN.ExclusiveGateway)
            objects[node] = cls(name=label, gateway_direction=_direction(diagram, node), process=process_of(node))
        elif kind == NodeKind.EVENT:
            objects[node] = _pm4py_event(diagram, node, process_of(node), objects)
    for node in boundary:
        objects[node] = _pm4py_event(diagram, node, process_of(node), objects)

    for node in order:
        bpmn.add_node(objects[node])
    for flow in diagram.flows():
        parent = diagram.edge_parent(flow)
        process = root if parent is None else objects[parent].get_id()
        bpmn.add_flow(
            BPMN.SequenceFlow(objects[flow.source], objects[flow.target], name=flow.label or "", process=process)
        )
    return bpmn


def import_bpmn(filepath: str) -> Diagram:
    """
    Import a diagram from a BPMN 2.0 XML file.

    :param filepath: Input file path.
    :return : Diagram.
    :return: Loaded diagram.
    """
    return bpmn_from_pm4py(pm4py.read_bpmn(filepath))


def export_bpmn(diagram: Diagram, filepath: str) -> None:
    """
    Export a diagram to a BPMN 2.0 XML file with automatic layout.

    :param diagram: Diagram to export.
    :param filepath: Output file path.
    :return : None.
    :return: File write side-effect.
    """
    pm4py.write_bpmn(bpmn_to_pm4py(diagram), filepath, auto_layout=True)


# Process trees


def process_tree_from_pm4py(tree: Pm4pyTree) -> ProcessTree:
    """
    Convert a pm4py process tree.

    Leaves with label None are silent. A pm4py loop with two children gets a
    silent exit child.

    :param tree: pm4py process tree.
    :return : ProcessTree.
    :return: Converted tree.
    """
    if tree.operator is None:
        return tau() if tree.label is None else ProcessTree(TreeOperator.TASK, tree.label)
    operator = TREE_OPERATORS.get(tree.operator)
    if operator is None:
        raise ValueError(f"Unsupported process tree operator: {tree.operator}")
    children = [process_tree_from_pm4py(child) for child in tree.children]
    if operator == TreeOperator.LOOP_XOR and len(children) == 2:
        children.append(tau())
    return ProcessTree(operator, "", children)


def import_process_tree(filepath: str) -> ProcessTree:
    """
    Import a process tree from a PTML file.

    :param filepath: Input file path.
    :return : ProcessTree.
    :return: Loaded tree.
    """
    return process_tree_from_pm4py(pm4py.read_ptml(filepath))


def discover_process_tree(net: PetriNet) -> ProcessTree:
    """
    Obtain the process tree of a block-structured net through pm4py.

    Reset and inhibitor arcs have no process tree counterpart and are left
    out of the discovery.

    :param net: Sound, block-structured workflow net.
    :return : ProcessTree.
    :return: Equivalent tree.
    """
    with detached_arcs(net) as detached:
        if detached:
            logger.warning(f"Ignoring {detached} reset and inhibitor arcs of net '{net.name}'")
        pm_net, initial_marking, final_marking = petri_net_to_pm4py(net)
    return process_tree_from_pm4py(pm4py.convert_to_process_tree(pm_net, initial_marking, final_marking))


def export_to_json(model: Any, filepath: str, conversion_map: Optional[Dict[Any, Any]] = None) -> None:
    """
    Export a model to JSON.

    :param model: Any model with ``to_dict``.
    :param filepath: Output file path.
    :param conversion_map: Optional conversion map stored under ``conversion_map``.
    :return : None.
    :return: File write side-effect.
    """
    data = model.to_dict()
    if conversion_map is not None:
        data["conversion_map"] = {str(k): v for k, v in conversion_map.items()}
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)
