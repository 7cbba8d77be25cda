"""
Configuration of the diagram to net translation.

:return : Configuration objects.
:return: Classes for LabelMode, EndEventJoin and NetTranslationConfig.
"""

from dataclasses import dataclass
from enum import Enum


class LabelMode(Enum):
    """How net nodes created for diagram elements are labelled."""

    ORIGINAL = "original"
    PREFIX_NONTASK = "prefix_nontask"
    PREFIX_ALL = "prefix_all"
    PREFIX_ALL_PN = "prefix_all_pn"


class EndEventJoin(Enum):
    """Whether several flows into an end event synchronize (AND) or merge (XOR)."""

    AND = "and"
    XOR = "xor"


@dataclass
class NetTranslationConfig:
    """
    Options of the diagram to net translation.

    :param label_nodes_with: Labelling scheme for created places and transitions.
    :param label_flow_places: Label places created for flows after their endpoints.
    :param make_routing_transitions_visible: Gateway transitions get visible labels.
    :param make_start_end_events_visible: Start and end event transitions get visible labels.
    :param make_intermediate_events_visible: Intermediate event transitions get visible labels.
    :param translate_with_lifecycle_visible: Lifecycle transitions of activities stay visible.
    :param link_subprocess_to_activity: Translate subprocess contents inline.
    :param end_event_join: Semantics of several flows into one end event.
    :return : NetTranslationConfig instance.
    :return: Translation options with defaults.
    """

    label_nodes_with: LabelMode = LabelMode.PREFIX_NONTASK
    label_flow_places: bool = False
    make_routing_transitions_visible: bool = False
    make_start_end_events_visible: bool = False
    make_intermediate_events_visible: bool = True
    translate_with_lifecycle_visible: bool = False
    link_subprocess_to_activity: bool = True
    end_event_join: EndEventJoin = EndEventJoin.AND

    def __post_init__(self) -> None:
        if isinstance(self.label_nodes_with, str):
            self.label_nodes_with = LabelMode(self.label_nodes_with)
        if isinstance(self.end_event_join, str):
            self.end_event_join = EndEventJoin(self.end_event_join)
        if not isinstance(self.label_nodes_with, LabelMode):
            raise ValueError(f"Invalid label mode: {self.label_nodes_with}")
        if not isinstance(self.end_event_join, EndEventJoin):
            raise ValueError(f"Invalid end event join: {self.end_event_join}")
