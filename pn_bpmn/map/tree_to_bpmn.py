"""
Process tree to diagram translation.

The root starts as one internal-node activity between a start and an end
event. Internal-node activities are expanded one by one: blocks become a split
and a join gateway around one internal-node activity per child, sequences a
chain of them, loops a do/redo cycle with an exit branch, and tasks a plain
activity.

:return : Process tree to diagram conversion.
:return: ProcessTreeToBpmnTranslator and convert_process_tree_to_bpmn.
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional, Tuple

from pn_bpmn.exceptions import ConversionError
from pn_bpmn.map.simplify import simplify as simplify_diagram
from pn_bpmn.models.bpmn import SILENT_LABEL, Diagram, EventTrigger, EventType, GatewayType
from pn_bpmn.models.graph import NodeId
from pn_bpmn.models.process_tree import LOOP_OPERATORS, ProcessTree, TreeOperator
from pn_bpmn.models.result import ConversionContext, ConversionResult

logger = logging.getLogger(__name__)

INTERNAL_NODE = "Process tree internal node"
PLACEHOLDER_LABEL = "Placeholder"
FIRST_ALTERNATIVE = "This subprocess could be replaced by one of the alternatives"

BLOCK_GATEWAYS = {
    TreeOperator.XOR: (GatewayType.XOR, GatewayType.XOR),
    TreeOperator.OR: (GatewayType.OR, GatewayType.OR),
    TreeOperator.AND: (GatewayType.AND, GatewayType.AND),
    TreeOperator.DEF: (GatewayType.EVENTBASED, GatewayType.XOR),
}


def check_tree(tree: ProcessTree) -> None:
    """
    Validate operator arities before anything is built.

    :param tree: Root of the tree.
    :return : None.
    :return: Raises ConversionError for malformed loops and events.
    """
    for node in tree.walk():
        if node.operator in LOOP_OPERATORS and len(node.children) != 3:
            raise ConversionError("Loop node must have three children")
        if node.operator == TreeOperator.EVENT and len(node.children) != 1:
            raise ConversionError("Event node must have one child")


class ProcessTreeToBpmnTranslator:
    """
    Expand a process tree into a diagram.

    :param tree: Root of the tree.
    :param context: Conversion context; its map receives tree node -> diagram node.
    :return : ProcessTreeToBpmnTranslator instance.
    :return: Translator ready to run.
    """

    def __init__(self, tree: ProcessTree, context: ConversionContext, name: str = "") -> None:
        self.tree = tree
        self.context = context
        self.diagram = Diagram(name=name or "Diagram for process tree")
        self._pending: Deque[Tuple[NodeId, ProcessTree]] = deque()

    def translate(self) -> Diagram:
        """
        Run the expansion until no internal-node activity is left.

        :return : Diagram.
        :return: Unsimplified diagram.
        """
        check_tree(self.tree)
        start = self.diagram.add_event(EventType.START, label="Start")
        end = self.diagram.add_event(EventType.END, label="End")
        root = self._internal_node(self.tree)
        self.diagram.add_flow(start, root)
        self.diagram.add_flow(root, end)

        expansions = 0
        while self._pending:
            activity, node = self._pending.popleft()
            self._expand(activity, node)
            expansions += 1
        logger.info(f"Expanded {expansions} process tree nodes into {len(self.diagram)} diagram nodes")
        return self.diagram

    def _internal_node(self, node: ProcessTree) -> NodeId:
        activity = self.diagram.add_activity(INTERNAL_NODE)
        self._pending.append((activity, node))
        return activity

    def _detach(self, activity: NodeId) -> Tuple[NodeId, NodeId, Optional[str]]:
        """
        Remove an internal-node activity and return its neighbours.

        :param activity: Activity handle.
        :return : Tuple (source, target, label).
        :return: Predecessor, successor and the label of the incoming flow.
        """
        incoming = self.diagram.in_flows(activity)
        outgoing = self.diagram.out_flows(activity)
        if len(incoming) != 1:
            raise ConversionError(f"Expanded activity {activity} has {len(incoming)} incoming control flows")
        if len(outgoing) != 1:
            raise ConversionError(f"Expanded activity {activity} has {len(outgoing)} outgoing control flows")
        self.diagram.remove_node(activity)
        return incoming[0].source, outgoing[0].target, incoming[0].label

    def _expand(self, activity: NodeId, node: ProcessTree) -> None:
        source, target, label = self._detach(activity)
        if node.is_leaf:
            self._expand_task(node, source, target, label)
        elif node.operator == TreeOperator.EVENT:
            self._expand_event(node, source, target, label)
        elif node.operator == TreeOperator.SEQ:
            self._expand_sequence(node, source, target, label)
        elif node.operator in LOOP_OPERATORS:
            self._expand_loop(node, source, target, label)
        elif node.operator == TreeOperator.PLACEHOLDER:
            self._expand_placeholder(node, source, target, label)
        elif node.operator in BLOCK_GATEWAYS:
            self._expand_block(node, source, target, label)
        else:
            raise ConversionError(f"Process tree operator {node.operator} cannot be translated")

    def _expand_task(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        name = node.label if node.operator == TreeOperator.TASK and node.label != "tau" else SILENT_LABEL
        task = self.diagram.add_activity(name)
        self.diagram.add_flow(source, task, label)
        self.diagram.add_flow(task, target)
        self.context.conversion_map[node] = task

    def _expand_event(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        event = self.diagram.add_event(EventType.INTERMEDIATE, label=node.label, trigger=EventTrigger.SIGNAL)
        self.diagram.add_flow(source, event, label)
        child = self._internal_node(node.children[0])
        self.diagram.add_flow(event, child)
        self.diagram.add_flow(child, target)
        self.context.conversion_map[node] = event

    def _expand_sequence(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        previous = source
        for child in node.children:
            activity = self._internal_node(child)
            self.diagram.add_flow(previous, activity, label if previous == source else None)
            previous = activity
        self.diagram.add_flow(previous, target, label if previous == source else None)

    def _expand_block(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        split_type, join_type = BLOCK_GATEWAYS[node.operator]
        split = self.diagram.add_gateway(split_type)
        join = self.diagram.add_gateway(join_type)
        self.diagram.add_flow(source, split, label)
        self.diagram.add_flow(join, target)
        for child in node.children:
            activity = self._internal_node(child)
            self.diagram.add_flow(split, activity)
            self.diagram.add_flow(activity, join)
        self.context.conversion_map[node] = split

    def _expand_loop(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        """
        Expand a loop into join, body, choice, redo and exit.

        :param node: Loop node with do, redo and exit children.
        :param source: Predecessor of the expanded activity.
        :param target: Successor of the expanded activity.
        :param label: Label of the incoming flow.
        :return : None.
        :return: Diagram construction side-effect.
        """
        deferred = node.operator == TreeOperator.LOOP_DEF
        join = self.diagram.add_gateway(GatewayType.XOR)
        split = self.diagram.add_gateway(GatewayType.EVENTBASED if deferred else GatewayType.XOR)
        self.diagram.add_flow(source, join, label)

        body, redo, leave = (self._internal_node(child) for child in node.children)
        self.diagram.add_flow(join, body)
        self.diagram.add_flow(body, split)
        self.diagram.add_flow(split, redo)
        self.diagram.add_flow(redo, join)
        self.diagram.add_flow(split, leave)
        self.diagram.add_flow(leave, target)
        self.context.conversion_map[node] = split

    def _expand_placeholder(
        self, node: ProcessTree, source: NodeId, target: NodeId, label: Optional[str]
    ) -> None:
        split = self.diagram.add_gateway(GatewayType.XOR, label=PLACEHOLDER_LABEL)
        join = self.diagram.add_gateway(GatewayType.XOR)
        self.diagram.add_flow(source, split, label)
        self.diagram.add_flow(join, target)
        for number, child in enumerate(node.children, start=1):
            activity = self._internal_node(child)
            branch = FIRST_ALTERNATIVE if number == 1 else f"Alternative {number}"
            self.diagram.add_flow(split, activity, branch)
            self.diagram.add_flow(activity, join)
        self.context.conversion_map[node] = split


def convert_process_tree_to_bpmn(
    tree: ProcessTree, simplify: bool = True, name: str = ""
) -> ConversionResult:
    """
    Convert a process tree into a diagram.

    :param tree: Root of the tree.
    :param simplify: Run the diagram simplifier on the result.
    :param name: Diagram name.
    :return : ConversionResult.
    :return: (diagram, tree node -> diagram node, warnings, errors).
    """
    context = ConversionContext()
    try:
        diagram = ProcessTreeToBpmnTranslator(tree, context, name).translate()
    except ConversionError as e:
        return context.failed(str(e))
    if simplify:
        simplify_diagram(diagram, context)
        for node, target in list(context.conversion_map.items()):
            if target not in diagram:
                del context.conversion_map[node]
    return context.result(diagram)
