"""
C-net to diagram translation.

Every C-net node becomes an activity. Output bindings become an XOR gateway
over alternative bindings and an AND gateway per binding with several members;
a target reached from several bindings gets its own XOR merge. Input bindings
are translated symmetrically, and each dependency arc links the output side of
its source to the input side of its target.

:return : C-net to diagram conversion.
:return: CausalNetToBpmnTranslator and convert_cnet_to_bpmn.
"""

import logging
from typing import Dict, List, Tuple

from pn_bpmn.exceptions import ConversionError
from pn_bpmn.map.simplify import simplify as simplify_diagram
from pn_bpmn.models.bpmn import SILENT_LABEL, Diagram, EventType, GatewayType
from pn_bpmn.models.cnet import Binding, CausalNet
from pn_bpmn.models.graph import EdgeKey, EdgeKind, NodeId
from pn_bpmn.models.result import ConversionContext, ConversionResult
from pn_bpmn.normalize.binding_splitter import split_bindings
from pn_bpmn.normalize.cnet_fixer import fix_start_and_end

logger = logging.getLogger(__name__)


class CausalNetToBpmnTranslator:
    """
    Translate a C-net with one start and one end node into a diagram.

    :param cnet: C-net prepared by the fixer.
    :param start: Start node handle.
    :param end: End node handle.
    :param context: Conversion context; its map receives node -> activity.
    :param inclusive: Use one inclusive gateway per side where bindings mix.
    :return : CausalNetToBpmnTranslator instance.
    :return: Translator ready to run.
    """

    def __init__(
        self,
        cnet: CausalNet,
        start: NodeId,
        end: NodeId,
        context: ConversionContext,
        inclusive: bool = False,
    ) -> None:
        self.cnet = cnet
        self.start = start
        self.end = end
        self.context = context
        self.inclusive = inclusive
        self.diagram = Diagram(name=cnet.name)
        self.activities: Dict[NodeId, NodeId] = {}
        self._arc_sources: Dict[EdgeKey, NodeId] = {}
        self._arc_targets: Dict[EdgeKey, NodeId] = {}

    def translate(self) -> Diagram:
        """
        Run the translation.

        :return : Diagram.
        :return: Unsimplified diagram.
        """
        self._convert_activities()
        for node in self.cnet.activities():
            if self.inclusive:
                self._convert_side_inclusive(node, outputs=True)
                self._convert_side_inclusive(node, outputs=False)
            else:
                self._convert_side(node, outputs=True)
                self._convert_side(node, outputs=False)
        for edge in self.cnet.edges(EdgeKind.DEPENDENCY):
            if edge.key in self._arc_sources and edge.key in self._arc_targets:
                self.diagram.add_flow(self._arc_sources[edge.key], self._arc_targets[edge.key])
        logger.info(
            f"Translated C-net '{self.cnet.name}' into {len(self.diagram)} diagram nodes "
            f"and {len(self.diagram.flows())} flows"
        )
        return self.diagram

    def _convert_activities(self) -> None:
        for node in self.cnet.nodes():
            label = SILENT_LABEL if node.silent else node.label
            activity = self.diagram.add_activity(label)
            self.activities[node.node_id] = activity
            self.context.conversion_map[node.node_id] = activity
            if node.node_id == self.start:
                event = self.diagram.add_event(EventType.START, label="start")
                self.diagram.add_flow(event, activity)
            if node.node_id == self.end:
                event = self.diagram.add_event(EventType.END, label="end")
                self.diagram.add_flow(activity, event)

    def _connect(self, first: NodeId, second: NodeId, outputs: bool) -> None:
        if outputs:
            self.diagram.add_flow(first, second)
        else:
            self.diagram.add_flow(second, first)

    def _convert_side(self, node: NodeId, outputs: bool) -> None:
        """
        Build the gateways of one side of a node.

        :param node: C-net node handle.
        :param outputs: True for output bindings, False for input bindings.
        :return : None.
        :return: Diagram construction side-effect.
        """
        label = self.cnet.node(node).label
        suffix = "O" if outputs else "I"
        bindings = self.cnet.output_bindings(node) if outputs else self.cnet.input_bindings(node)
        current = self.activities[node]
        if len(bindings) > 1:
            choice = self.diagram.add_gateway(GatewayType.XOR, f"{label}_{suffix}")
            self._connect(current, choice, outputs)
            current = choice

        anchors: Dict[Binding, NodeId] = {}
        for i, binding in enumerate(bindings):
            anchor = current
            if len(binding) > 1:
                anchor = self.diagram.add_gateway(GatewayType.AND, f"{label}_{suffix}{i}")
                self._connect(current, anchor, outputs)
            anchors[binding] = anchor

        edges = self.cnet.out_edges(node, EdgeKind.DEPENDENCY) if outputs else self.cnet.in_edges(
            node, EdgeKind.DEPENDENCY
        )
        for edge in edges:
            other = edge.target if outputs else edge.source
            holding = [b for b in bindings if other in b]
            if len(holding) > 1:
                other_label = self.cnet.node(other).label
                name = f"{label}_{other_label}" if outputs else f"{other_label}_{label}"
                merge = self.diagram.add_gateway(GatewayType.XOR, name)
                for binding in holding:
                    self._connect(anchors[binding], merge, outputs)
                anchor = merge
            elif holding:
                anchor = anchors[holding[0]]
            else:
                continue
            if outputs:
                self._arc_sources[edge.key] = anchor
            else:
                self._arc_targets[edge.key] = anchor

    def _convert_side_inclusive(self, node: NodeId, outputs: bool) -> None:
        label = self.cnet.node(node).label
        suffix = "OUT" if outputs else "IN"
        bindings = self.cnet.output_bindings(node) if outputs else self.cnet.input_bindings(node)
        current = self.activities[node]
        gateway_type = None
        if len(bindings) > 1:
            mixed = any(len(b) > 1 for b in bindings)
            gateway_type = GatewayType.OR if mixed else GatewayType.XOR
        elif bindings and len(bindings[0]) > 1:
            gateway_type = GatewayType.AND
        if gateway_type is not None:
            gateway = self.diagram.add_gateway(gateway_type, f"{label}_{suffix}")
            self._connect(current, gateway, outputs)
            current = gateway

        edges = self.cnet.out_edges(node, EdgeKind.DEPENDENCY) if outputs else self.cnet.in_edges(
            node, EdgeKind.DEPENDENCY
        )
        for edge in edges:
            if outputs:
                self._arc_sources[edge.key] = current
            else:
                self._arc_targets[edge.key] = current

    def remove_synthetic_nodes(self, synthetic: List[NodeId]) -> None:
        """
        Splice out activities of nodes added by the start/end fixer.

        :param synthetic: C-net handles of the added common start/end nodes.
        :return : None.
        :return: Diagram mutation side-effect.
        """
        for node in synthetic:
            activity = self.activities.get(node)
            if activity is None:
                continue
            incoming = self.diagram.in_flows(activity)
            outgoing = self.diagram.out_flows(activity)
            if len(incoming) != 1 or len(outgoing) != 1:
                continue
            self.diagram.remove_node(activity)
            self.diagram.add_flow(incoming[0].source, outgoing[0].target)
            del self.context.conversion_map[node]


def _prepare(cnet: CausalNet, split: bool) -> Tuple[CausalNet, NodeId, NodeId, List[NodeId]]:
    work = cnet.copy()
    start, end = fix_start_and_end(work)
    synthetic = [n for n in (start, end) if n not in cnet]
    if split:
        split_bindings(work)
    if not work.start_nodes or not work.end_nodes:
        raise ConversionError("C-net lost its start or end node during splitting")
    return work, work.start_nodes[0], work.end_nodes[0], synthetic


def convert_cnet_to_bpmn(
    cnet: CausalNet, inclusive: bool = False, split: bool = True, simplify: bool = True
) -> ConversionResult:
    """
    Convert a C-net into a diagram.

    :param cnet: Source C-net; it is cloned and not modified.
    :param inclusive: Translate mixed bindings into inclusive gateways.
    :param split: Split nodes with intersecting input bindings first.
    :param simplify: Run the diagram simplifier on the result.
    :return : ConversionResult.
    :return: (diagram, C-net node -> activity, warnings, errors).
    """
    context = ConversionContext()
    try:
        work, start, end, synthetic = _prepare(cnet, split)
        translator = CausalNetToBpmnTranslator(work, start, end, context, inclusive)
        diagram = translator.translate()
        translator.remove_synthetic_nodes(synthetic)
        if simplify:
            simplify_diagram(diagram, context)
    except ConversionError as e:
        return context.failed(str(e))

    for node in list(context.conversion_map):
        if node not in cnet:
            del context.conversion_map[node]
    return context.result(diagram)
