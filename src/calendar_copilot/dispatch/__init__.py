"""Routing of calendar commands to backend operations."""

from __future__ import annotations

from .availability import find_available_slots, validate_duration
from .dispatcher import CommandDispatcher
from .registry import OperationHandler, get_handler, get_operation_handlers, register_operation
from .resolver import FuzzyTargetResolver, TargetNotFound

__all__ = [
    "CommandDispatcher",
    "FuzzyTargetResolver",
    "OperationHandler",
    "TargetNotFound",
    "find_available_slots",
    "get_handler",
    "get_operation_handlers",
    "register_operation",
    "validate_duration",
]
