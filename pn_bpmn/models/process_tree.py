"""
Block-structured process tree model.

:return : Process tree model components.
:return: Classes for TreeOperator and ProcessTree.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List


class TreeOperator(Enum):
    """Operator of a process tree node."""

    SEQ = "seq"
    XOR = "xor"
    AND = "and"
    OR = "or"
    DEF = "def"
    LOOP_XOR = "loop_xor"
    LOOP_DEF = "loop_def"
    EVENT = "event"
    TASK = "task"
    TAU = "tau"
    PLACEHOLDER = "placeholder"


LEAF_OPERATORS = (TreeOperator.TASK, TreeOperator.TAU)
LOOP_OPERATORS = (TreeOperator.LOOP_XOR, TreeOperator.LOOP_DEF)


@dataclass(eq=False)
class ProcessTree:
    """
    Node of a process tree.

    :param operator: Node operator.
    :param label: Task label, or message of an event node.
    :param children: Ordered child nodes.
    :return : ProcessTree instance.
    :return: A tree node.
    """

    operator: TreeOperator
    label: str = ""
    children: List["ProcessTree"] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.operator in LEAF_OPERATORS and self.children:
            raise ValueError(f"Leaf node {self.operator.value} cannot have children")

    @property
    def is_leaf(self) -> bool:
        return self.operator in LEAF_OPERATORS

    def walk(self) -> Iterator["ProcessTree"]:
        """
        Iterate over the subtree in pre-order.

        :return : Iterator of nodes.
        :return: This node followed by all descendants.
        """
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"operator": self.operator.value}
        if self.label:
            data["label"] = self.label
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ProcessTree":
        """
        Deserialize a tree from dictionary.

        :param data: Dictionary with operator, label and children.
        :return : ProcessTree instance.
        :return: Reconstructed tree.
        """
        return ProcessTree(
            operator=TreeOperator(data["operator"]),
            label=data.get("label", ""),
            children=[ProcessTree.from_dict(c) for c in data.get("children", [])],
        )


def task(label: str) -> ProcessTree:
    return ProcessTree(TreeOperator.TASK, label)


def tau() -> ProcessTree:
    return ProcessTree(TreeOperator.TAU)


def node(operator: TreeOperator, *children: ProcessTree, label: str = "") -> ProcessTree:
    return ProcessTree(operator, label, list(children))
