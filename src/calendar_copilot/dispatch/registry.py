from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ..domain import Command, OperationKind, ResultData

if TYPE_CHECKING:
    from .context import OperationContext

OperationFunc = Callable[["OperationContext", Command], Awaitable[ResultData]]


@dataclass(frozen=True)
class OperationHandler:
    kind: OperationKind
    func: OperationFunc
    description: str
    operation: Optional[str]
    required: tuple[str, ...]
    optional: tuple[str, ...]

    def as_catalog_entry(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "required": list(self.required),
            "optional": list(self.optional),
        }


HANDLERS: Dict[OperationKind, OperationHandler] = {}


def register_operation(
    kind: OperationKind,
    *,
    description: str,
    operation: Optional[str] = None,
    required: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> Callable[[OperationFunc], OperationFunc]:
    def decorator(func: OperationFunc) -> OperationFunc:
        if kind in HANDLERS:
            raise ValueError(f"Calendar operation '{kind.value}' is already registered.")
        HANDLERS[kind] = OperationHandler(
            kind=kind,
            func=func,
            description=description,
            operation=operation,
            required=tuple(required),
            optional=tuple(optional),
        )
        return func

    return decorator


def get_operation_handlers() -> List[OperationHandler]:
    return list(HANDLERS.values())


def get_handler(kind: OperationKind) -> OperationHandler:
    if kind not in HANDLERS:
        raise KeyError(f"Calendar operation '{kind.value}' is not registered.")
    return HANDLERS[kind]
