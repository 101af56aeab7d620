from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import ErrorInfo, OperationResult


class ErrorPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage: str
    message: str

    @classmethod
    def from_domain(cls, error: ErrorInfo) -> "ErrorPayload":
        return cls(stage=error.stage.value, message=error.message)


class OperationResultPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    kind: Optional[str] = Field(default=None)
    data: Any = Field(default=None)
    error: Optional[ErrorPayload] = Field(default=None)
    message: str = Field(default="")

    @classmethod
    def from_domain(cls, result: OperationResult) -> "OperationResultPayload":
        return cls(
            ok=result.ok,
            kind=result.kind.value if result.kind else None,
            data=result.data,
            error=ErrorPayload.from_domain(result.error) if result.error else None,
            message=result.message,
        )


def serialize_result(result: OperationResult) -> Dict[str, Any]:
    return OperationResultPayload.from_domain(result).model_dump(exclude_none=True)
