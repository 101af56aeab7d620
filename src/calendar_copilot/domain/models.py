from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .enums import ErrorStage, OperationKind

ResultData = Union[Mapping[str, Any], Sequence[Any]]


@dataclass(slots=True)
class Command:
    """A calendar instruction parsed out of model text. Lives for one chat turn."""

    kind: OperationKind
    params: Dict[str, Any] = field(default_factory=dict)
    human_message: str = ""

    def param(self, *names: str) -> Any:
        """Return the first present, non-empty parameter among ``names``."""

        for name in names:
            value = self.params.get(name)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            return value
        return None


@dataclass(frozen=True, slots=True)
class TimeWindow:
    start: str
    end: str
    zone: str


@dataclass(slots=True)
class NormalizedEvent:
    title: str
    start: str
    end: str
    id: Optional[str] = None
    description: str = ""
    location: str = ""
    attendees: List[str] = field(default_factory=list)
    color_id: Optional[str] = None
    status: Optional[str] = None
    html_link: Optional[str] = None
    calendar_id: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start": self.start,
            "end": self.end,
            "location": self.location,
            "attendees": list(self.attendees),
        }
        if self.color_id is not None:
            record["colorId"] = self.color_id
        if self.status is not None:
            record["status"] = self.status
        if self.html_link:
            record["htmlLink"] = self.html_link
        if self.calendar_id is not None:
            record["calendarId"] = self.calendar_id
        return record


@dataclass(slots=True)
class CalendarSummary:
    id: str
    summary: str
    primary: bool = False
    time_zone: Optional[str] = None
    access_role: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"id": self.id, "summary": self.summary, "primary": self.primary}
        if self.time_zone:
            record["timeZone"] = self.time_zone
        if self.access_role:
            record["accessRole"] = self.access_role
        return record


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    stage: ErrorStage
    message: str


@dataclass(slots=True)
class OperationResult:
    ok: bool
    kind: Optional[OperationKind] = None
    data: Optional[ResultData] = None
    error: Optional[ErrorInfo] = None
    message: str = ""

    @classmethod
    def success(cls, kind: OperationKind, data: ResultData, *, message: str = "") -> "OperationResult":
        return cls(ok=True, kind=kind, data=data, message=message)

    @classmethod
    def failure(
        cls,
        stage: ErrorStage,
        message: str,
        *,
        kind: Optional[OperationKind] = None,
        human_message: str = "",
    ) -> "OperationResult":
        return cls(ok=False, kind=kind, error=ErrorInfo(stage, message), message=human_message)

    @property
    def stage(self) -> Optional[ErrorStage]:
        return self.error.stage if self.error else None

    @property
    def is_fallthrough(self) -> bool:
        """True when no command was found and the text should be shown as prose."""

        return self.stage in (ErrorStage.EXTRACT, ErrorStage.PARSE)

    @property
    def is_retryable(self) -> bool:
        return self.stage is ErrorStage.UPSTREAM


@dataclass(frozen=True, slots=True)
class ParseFailure:
    stage: ErrorStage
    message: str
    text: str = ""

    def to_result(self) -> OperationResult:
        return OperationResult.failure(self.stage, self.message)
