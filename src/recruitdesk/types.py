from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SortDirection = Literal["asc", "desc"]
Granularity = Literal["day", "month", "year"]
PagingMode = Literal["server", "client"]
ThemeName = Literal["light", "dark"]
NotificationLevel = Literal["success", "info", "error"]
DuplicateState = Literal["idle", "validating", "checking", "clear", "duplicate", "not_found", "error"]


class LookupOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    code: str = ""


class DuplicateCheckResult(BaseModel):
    is_duplicate: bool = False
    locked_by: str | None = None
    remaining_time: str | None = None
    already_registered: bool = False
    candidate: dict[str, Any] | None = None

    def describe(self) -> str:
        if self.already_registered and not self.locked_by:
            return "You have already registered this candidate."
        owner = self.locked_by or "another recruiter"
        if self.remaining_time:
            return f"Candidate already locked by {owner} for {self.remaining_time}"
        return f"Candidate already locked by {owner}"


class PagedResult(BaseModel):
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0

    @field_validator("total_count", "total_pages")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("totals must not be negative")
        return value


class BulkUploadSummary(BaseModel):
    successful: int = 0
    failed: int = 0
    total: int = 0
    details: list[dict[str, Any]] = Field(default_factory=list)


class BulkUploadResult(BaseModel):
    status: str = ""
    message: str = ""
    results: BulkUploadSummary = Field(default_factory=BulkUploadSummary)


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date | None = None
    end: date | None = None

    @property
    def is_active(self) -> bool:
        return self.start is not None and self.end is not None


class Notification(BaseModel):
    level: NotificationLevel
    message: str
