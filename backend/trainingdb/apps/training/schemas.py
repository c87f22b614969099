# backend/trainingdb/apps/training/schemas.py

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .dates import parse_iso_date
from .models import (
    ComplianceStatus,
    DisplayLanguage,
    DisplayTheme,
    TrainingCategory,
    TrainingDelivery,
)

# Upper bound for renewal intervals (100 years).
MAX_RENEWAL_MONTHS = 1200


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


class EmployeeCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Display name. Not required to be unique.")
    department: str = Field("General", description="Free-text department label.")

    @field_validator("name", "department")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class EmployeeRead(BaseModel):
    id: str
    name: str
    department: str

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# TRAINING TEMPLATES
# ---------------------------------------------------------------------------


class TrainingTemplateBase(BaseModel):
    name: str = Field(..., min_length=1)
    renewal_months: Optional[int] = Field(
        None,
        ge=0,
        le=MAX_RENEWAL_MONTHS,
        description="Recurrent interval in months. Omit for a one-time training.",
    )
    description: Optional[str] = None
    category: Optional[TrainingCategory] = Field(None, description="Safety / Quality / Technical.")
    delivery: Optional[TrainingDelivery] = Field(None, description="Workday / In-person.")


class TrainingTemplateCreate(TrainingTemplateBase):
    pass


class TrainingTemplateRead(TrainingTemplateBase):
    id: str

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# TRAINING RECORDS
# ---------------------------------------------------------------------------


class TrainingRecordCreate(BaseModel):
    """
    training_name may be omitted when template_id is given; the template
    name is copied at assignment time.
    """

    employee_id: str
    template_id: Optional[str] = None
    training_name: Optional[str] = None
    completion_date: Optional[date] = None
    due_date: Optional[date] = None
    renewal_months: Optional[int] = Field(
        None,
        ge=0,
        le=MAX_RENEWAL_MONTHS,
        description="Overrides the template interval; 0 keeps the template cadence.",
    )
    notes: Optional[str] = None


class TrainingRecordUpdate(BaseModel):
    """
    Partial patch. Only fields present in the request are applied; an
    explicit null clears the field.
    """

    template_id: Optional[str] = None
    training_name: Optional[str] = None
    completion_date: Optional[date] = None
    due_date: Optional[date] = None
    renewal_months: Optional[int] = Field(None, ge=0, le=MAX_RENEWAL_MONTHS)
    notes: Optional[str] = None


class TrainingRecordRead(BaseModel):
    id: str
    employee_id: str
    template_id: Optional[str] = None
    training_name: str
    completion_date: Optional[date] = None
    due_date: Optional[date] = None
    renewal_months: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class SnoozeRequest(BaseModel):
    days: int = Field(30, ge=1, description="Days added to the current next due date (or today).")
    clear_completion_on_renewal: bool = Field(
        False,
        description=(
            "Also clear the completion date when the training renews, so the "
            "new due date actually takes effect."
        ),
    )


class EnrichedRecordRead(BaseModel):
    """
    Assignment joined with its employee/template plus computed fields.
    employee_name/department/category/delivery are null when unresolved.
    """

    id: str
    employee_id: str
    employee_name: Optional[str] = None
    department: Optional[str] = None
    template_id: Optional[str] = None
    template_name: Optional[str] = None
    training_name: str
    category: Optional[TrainingCategory] = None
    delivery: Optional[TrainingDelivery] = None
    completion_date: Optional[date] = None
    due_date: Optional[date] = None
    renewal_months: Optional[int] = Field(None, description="Record override, else template interval.")
    notes: Optional[str] = None
    next_due: Optional[date] = None
    next_due_days: Optional[int] = None
    status: ComplianceStatus


# ---------------------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------------------


class ComplianceKpisRead(BaseModel):
    compliance_pct: int
    with_due_count: int
    due_next_quarter: int
    due_next_24_months: int
    due_next_36_months: int

    class Config:
        from_attributes = True


class MonthBucketRead(BaseModel):
    key: str = Field(..., description="YYYY-MM")
    start: date
    count: int

    class Config:
        from_attributes = True


class WeekBucketRead(BaseModel):
    start: date
    end: date
    count: int

    class Config:
        from_attributes = True


class StatusCountRead(BaseModel):
    status: ComplianceStatus
    count: int


class TrainingDashboardRead(BaseModel):
    today: date
    soon_window_days: int
    kpis: ComplianceKpisRead
    monthly_expirations: List[MonthBucketRead]
    weekly_projection: List[WeekBucketRead]
    status_counts: List[StatusCountRead]
    departments: List[str]
    rows: List[EnrichedRecordRead]


# ---------------------------------------------------------------------------
# SETTINGS
# ---------------------------------------------------------------------------


class TrackerSettingsRead(BaseModel):
    soon_window_days: int
    language: DisplayLanguage
    theme: DisplayTheme

    class Config:
        from_attributes = True


class TrackerSettingsUpdate(BaseModel):
    soon_window_days: Optional[int] = Field(None, ge=1)
    language: Optional[DisplayLanguage] = None
    theme: Optional[DisplayTheme] = None


# ---------------------------------------------------------------------------
# CSV / SNAPSHOT
# ---------------------------------------------------------------------------


class CsvImportResult(BaseModel):
    employees_created: int
    records_created: int


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SnapshotEmployee(_SnapshotModel):
    id: str
    name: str
    department: str = "General"


class SnapshotTemplate(_SnapshotModel):
    id: str
    name: str
    renewal_months: Optional[int] = Field(None, ge=0, le=MAX_RENEWAL_MONTHS)
    description: Optional[str] = None
    category: Optional[TrainingCategory] = None
    delivery: Optional[TrainingDelivery] = None


class SnapshotRecord(_SnapshotModel):
    id: str
    employee_id: str
    template_id: Optional[str] = None
    training_name: str
    completion_date: Optional[date] = None
    due_date: Optional[date] = None
    renewal_months: Optional[int] = Field(None, ge=0, le=MAX_RENEWAL_MONTHS)
    notes: Optional[str] = None

    @field_validator("completion_date", "due_date", mode="before")
    @classmethod
    def _lenient_date(cls, v):
        # malformed strings degrade to "no date"
        return parse_iso_date(v)

    @field_validator("template_id", mode="before")
    @classmethod
    def _blank_template(cls, v):
        return v or None


class TrackerSnapshot(_SnapshotModel):
    """
    The whole dataset plus preferences as one JSON document.

    Keys are camelCase (employees, templates, records, soonWindowDays, lang,
    theme). There is no version field.
    """

    employees: List[SnapshotEmployee] = Field(default_factory=list)
    templates: List[SnapshotTemplate] = Field(default_factory=list)
    records: List[SnapshotRecord] = Field(default_factory=list)
    soon_window_days: int = Field(30, ge=1)
    lang: DisplayLanguage = DisplayLanguage.EN
    theme: DisplayTheme = DisplayTheme.LIGHT
