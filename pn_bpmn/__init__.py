"""
PN-BPMN: Conversion between Petri nets and BPMN-style process diagrams.

This package translates place/transition nets into block-and-gateway diagrams and
back, and converts causal nets and process trees into diagrams.

Main components:
- models: Arena graph with Petri net, diagram, C-net and process tree views
- analysis: Dominators and single-entry single-exit regions
- normalize: Free-choice normalization and C-net repair
- map: Translators and the diagram simplifier
- integration: pm4py adapters and file I/O
- cli: Command-line interface

:return : Package initialization.
:return: Module exports for public API.
"""

__version__ = "0.1.0"
__author__ = "PN-BPMN Team"

from pn_bpmn.config import EndEventJoin, LabelMode, NetTranslationConfig
from pn_bpmn.exceptions import ConversionError
from pn_bpmn.map.bpmn_to_pn import convert_bpmn_to_petri_net
from pn_bpmn.map.cnet_to_bpmn import convert_cnet_to_bpmn
from pn_bpmn.map.pn_to_bpmn import (
    convert_petri_net_to_bpmn,
    convert_petri_net_to_bpmn_with_subprocesses,
)
from pn_bpmn.map.simplify import simplify
from pn_bpmn.map.tree_to_bpmn import convert_process_tree_to_bpmn
from pn_bpmn.models.bpmn import Diagram
from pn_bpmn.models.cnet import CausalNet
from pn_bpmn.models.petri import PetriNet
from pn_bpmn.models.process_tree import ProcessTree
from pn_bpmn.models.result import ConversionResult

__all__ = [
    "CausalNet",
    "ConversionError",
    "ConversionResult",
    "Diagram",
    "EndEventJoin",
    "LabelMode",
    "NetTranslationConfig",
    "PetriNet",
    "ProcessTree",
    "convert_bpmn_to_petri_net",
    "convert_cnet_to_bpmn",
    "convert_petri_net_to_bpmn",
    "convert_petri_net_to_bpmn_with_subprocesses",
    "convert_process_tree_to_bpmn",
    "simplify",
]
