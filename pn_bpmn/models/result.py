"""
Per-call conversion context and conversion result.

Every conversion creates one ConversionContext, threads it explicitly through
its helpers and turns it into a ConversionResult at the end.

:return : Conversion bookkeeping.
:return: Classes for ConversionContext and ConversionResult.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple

logger = logging.getLogger(__name__)


class ConversionResult(NamedTuple):
    """
    Outcome of a conversion entry point.

    Non-empty ``errors`` means the target must be discarded. Non-empty
    ``warnings`` means the conversion succeeded but is approximate.

    :param target: Converted model, None after a fatal error.
    :param conversion_map: Read-only map from source handle to target reference.
    :param warnings: Lossy or approximate translation steps.
    :param errors: Fatal problems.
    :return : ConversionResult instance.
    :return: Tuple (target, conversion_map, warnings, errors).
    """

    target: Any
    conversion_map: Mapping[Any, Any]
    warnings: List[str]
    errors: List[str]

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ConversionContext:
    """
    Mutable state of one conversion call.

    :param conversion_map: Source handle to target reference, built during the call.
    :param warnings: Collected warnings.
    :param errors: Collected errors.
    :return : ConversionContext instance.
    :return: Fresh bookkeeping for a single call.
    """

    conversion_map: Dict[Any, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def error(self, message: str) -> None:
        logger.error(message)
        self.errors.append(message)

    def result(self, target: Any) -> ConversionResult:
        """
        Freeze the context into a result.

        :param target: Converted model or None.
        :return : ConversionResult.
        :return: Result with a read-only conversion map.
        """
        return ConversionResult(
            target=target,
            conversion_map=MappingProxyType(dict(self.conversion_map)),
            warnings=list(self.warnings),
            errors=list(self.errors),
        )

    def failed(self, message: str) -> ConversionResult:
        """
        Record a fatal error and build a result without target.

        :param message: Error message.
        :return : ConversionResult.
        :return: Result with empty map and the error recorded.
        """
        self.error(message)
        self.conversion_map.clear()
        return self.result(None)
