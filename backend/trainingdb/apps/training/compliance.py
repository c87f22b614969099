# backend/trainingdb/apps/training/compliance.py
"""
Compliance computation engine.

Pure functions over in-memory employees, templates and records (ORM rows or
any object with the same attributes). Nothing here touches the database or
the clock: every function that depends on "today" takes it as an argument,
so one request samples the date once and all derived fields agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .dates import add_months, days_until, first_of_month
from .models import ComplianceStatus

ALL = "all"
NO_VALUE = "—"

KPI_HORIZON_QUARTER_DAYS = 90
KPI_HORIZON_24_MONTHS_DAYS = 24 * 30
KPI_HORIZON_36_MONTHS_DAYS = 36 * 30

HISTOGRAM_MONTHS = 12
PROJECTION_WEEKS = 12


# ---------------------------------------------------------------------------
# RESOLVER / CLASSIFIER
# ---------------------------------------------------------------------------


def resolve_renewal_months(record: Any, template: Optional[Any]) -> int:
    """
    Record override first, then the template interval, else 0 (one-time).
    """
    renewal = getattr(record, "renewal_months", None)
    if renewal is None and template is not None:
        renewal = getattr(template, "renewal_months", None)
    return renewal or 0


def next_due_for(record: Any, template: Optional[Any]) -> Optional[date]:
    """
    The single date all status and projection logic works from.

    A completion with a positive cadence always recurs and wins over a stored
    due date; the due date only applies to one-time or not-yet-done items.
    A cadence that lands outside the supported date range gives None.
    """
    renewal = resolve_renewal_months(record, template)
    completion = getattr(record, "completion_date", None)
    if completion is not None and renewal > 0:
        try:
            return add_months(completion, renewal)
        except (ValueError, OverflowError):
            return None
    due = getattr(record, "due_date", None)
    if due is not None:
        return due
    return None


def classify_next_due(
    next_due: Optional[date],
    soon_window_days: int,
    today: date,
) -> ComplianceStatus:
    if next_due is None:
        return ComplianceStatus.UNSCHEDULED
    d = days_until(next_due, today)
    if d < 0:
        return ComplianceStatus.OVERDUE
    if d <= soon_window_days:
        return ComplianceStatus.DUE_SOON
    return ComplianceStatus.OK


def status_for(
    record: Any,
    template: Optional[Any],
    soon_window_days: int,
    today: date,
) -> ComplianceStatus:
    return classify_next_due(next_due_for(record, template), soon_window_days, today)


# ---------------------------------------------------------------------------
# ENRICHMENT
# ---------------------------------------------------------------------------


@dataclass
class EnrichedRecord:
    """
    A raw assignment joined with its employee/template plus computed fields.
    Either reference may be None when it cannot be resolved.
    """

    record: Any
    employee: Optional[Any]
    template: Optional[Any]
    next_due: Optional[date]
    status: ComplianceStatus
    next_due_days: Optional[int]

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def training_name(self) -> str:
        return self.record.training_name

    @property
    def employee_name(self) -> Optional[str]:
        return self.employee.name if self.employee is not None else None

    @property
    def department(self) -> Optional[str]:
        return self.employee.department if self.employee is not None else None

    @property
    def category(self) -> Optional[str]:
        return _enum_value(getattr(self.template, "category", None))

    @property
    def delivery(self) -> Optional[str]:
        return _enum_value(getattr(self.template, "delivery", None))

    @property
    def effective_renewal_months(self) -> Optional[int]:
        """Renewal as displayed/exported: override, else template, else None."""
        if self.record.renewal_months is not None:
            return self.record.renewal_months
        if self.template is not None:
            return self.template.renewal_months
        return None


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


class TemplateIndex:
    """
    Id-or-name template lookup.

    Lookup by id first; when the record has no template id, or the id matches
    nothing, fall back to the first template whose name equals the record's
    training name. Cascade delete of a template is by id only, so a record
    matched here by name survives the template's removal.
    """

    def __init__(self, templates: Iterable[Any]):
        self._by_id: Dict[str, Any] = {}
        self._by_name: Dict[str, Any] = {}
        for t in templates:
            self._by_id.setdefault(t.id, t)
            self._by_name.setdefault(t.name, t)

    def resolve(self, record: Any) -> Optional[Any]:
        template_id = getattr(record, "template_id", None)
        if template_id:
            match = self._by_id.get(template_id)
            if match is not None:
                return match
        return self._by_name.get(record.training_name)


def enrich_records(
    records: Iterable[Any],
    employees: Iterable[Any],
    templates: Iterable[Any],
    soon_window_days: int,
    today: date,
) -> List[EnrichedRecord]:
    employees_by_id = {e.id: e for e in employees}
    template_index = TemplateIndex(templates)

    rows: List[EnrichedRecord] = []
    for record in records:
        template = template_index.resolve(record)
        next_due = next_due_for(record, template)
        rows.append(
            EnrichedRecord(
                record=record,
                employee=employees_by_id.get(record.employee_id),
                template=template,
                next_due=next_due,
                status=classify_next_due(next_due, soon_window_days, today),
                next_due_days=days_until(next_due, today),
            )
        )
    return rows


# ---------------------------------------------------------------------------
# FILTERING / SORTING
# ---------------------------------------------------------------------------


@dataclass
class RecordFilter:
    """
    Conjunctive view filters. None or "all" disables a filter.

    category/delivery use NO_VALUE ("—") to select rows whose resolved
    template has no value (or which have no template at all).
    horizon_days keeps rows with no next due date, since they have nothing
    to exceed.
    """

    department: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    delivery: Optional[str] = None
    search: Optional[str] = None
    horizon_days: Optional[int] = None


def _active(value: Optional[str]) -> bool:
    return value is not None and value != ALL


def _contains(haystack: Optional[str], needle: str) -> bool:
    return haystack is not None and needle in haystack.lower()


def filter_records(rows: Sequence[EnrichedRecord], criteria: RecordFilter) -> List[EnrichedRecord]:
    out = list(rows)

    if _active(criteria.department):
        out = [r for r in out if r.department == criteria.department]
    if _active(criteria.status):
        wanted = _enum_value(criteria.status)
        out = [r for r in out if r.status.value == wanted]
    if _active(criteria.category):
        wanted = _enum_value(criteria.category)
        out = [r for r in out if (r.category or NO_VALUE) == wanted]
    if _active(criteria.delivery):
        wanted = _enum_value(criteria.delivery)
        out = [r for r in out if (r.delivery or NO_VALUE) == wanted]

    query = criteria.search or ""
    if query.strip():
        q = query.lower()
        out = [
            r
            for r in out
            if _contains(r.employee_name, q)
            or _contains(r.training_name, q)
            or _contains(r.department, q)
        ]

    if criteria.horizon_days is not None:
        horizon = criteria.horizon_days
        out = [r for r in out if r.next_due_days is None or r.next_due_days <= horizon]

    return out


def sort_by_next_due(rows: Iterable[EnrichedRecord]) -> List[EnrichedRecord]:
    """Ascending by next due; rows without one go last (stable)."""
    return sorted(rows, key=lambda r: (r.next_due is None, r.next_due or date.min))


# ---------------------------------------------------------------------------
# AGGREGATES
# ---------------------------------------------------------------------------


@dataclass
class ComplianceKpis:
    compliance_pct: int
    with_due_count: int
    due_next_quarter: int
    due_next_24_months: int
    due_next_36_months: int


def _round_half_up_pct(part: int, whole: int) -> int:
    # floor(100 * part / whole + 0.5) in integer arithmetic
    return (200 * part + whole) // (2 * whole)


def compute_kpis(rows: Sequence[EnrichedRecord]) -> ComplianceKpis:
    """
    Compliance over rows that have a next due date.

    No such rows means nothing is overdue, so the dataset counts as 100%
    compliant.
    """
    with_due = [r for r in rows if r.next_due is not None]
    compliant = sum(1 for r in with_due if r.status != ComplianceStatus.OVERDUE)
    pct = _round_half_up_pct(compliant, len(with_due)) if with_due else 100

    def within(days: int) -> int:
        return sum(
            1
            for r in with_due
            if r.next_due_days is not None and 0 <= r.next_due_days <= days
        )

    return ComplianceKpis(
        compliance_pct=pct,
        with_due_count=len(with_due),
        due_next_quarter=within(KPI_HORIZON_QUARTER_DAYS),
        due_next_24_months=within(KPI_HORIZON_24_MONTHS_DAYS),
        due_next_36_months=within(KPI_HORIZON_36_MONTHS_DAYS),
    )


@dataclass
class MonthBucket:
    key: str
    start: date
    count: int = 0


def monthly_expirations(rows: Iterable[EnrichedRecord], today: date) -> List[MonthBucket]:
    """
    Twelve calendar-month buckets from the first day of the current month.
    Due dates outside the window are left out of this view.
    """
    start = first_of_month(today)
    buckets: List[MonthBucket] = []
    by_key: Dict[str, MonthBucket] = {}
    for i in range(HISTOGRAM_MONTHS):
        month_start = add_months(start, i)
        bucket = MonthBucket(key=month_start.strftime("%Y-%m"), start=month_start)
        buckets.append(bucket)
        by_key[bucket.key] = bucket

    for r in rows:
        if r.next_due is None:
            continue
        bucket = by_key.get(r.next_due.strftime("%Y-%m"))
        if bucket is not None:
            bucket.count += 1
    return buckets


@dataclass
class WeekBucket:
    start: date
    end: date
    count: int = 0


def weekly_projection(rows: Iterable[EnrichedRecord], today: date) -> List[WeekBucket]:
    """
    Twelve 7-day buckets starting today. Overdue items and anything past the
    last week are left out of this view.
    """
    buckets = [
        WeekBucket(
            start=today + timedelta(days=i * 7),
            end=today + timedelta(days=i * 7 + 6),
        )
        for i in range(PROJECTION_WEEKS)
    ]
    for r in rows:
        if r.next_due is None:
            continue
        offset = (r.next_due - today).days
        if offset < 0:
            continue
        idx = offset // 7
        if idx < PROJECTION_WEEKS:
            buckets[idx].count += 1
    return buckets


def status_breakdown(rows: Iterable[EnrichedRecord]) -> Dict[ComplianceStatus, int]:
    counts = {
        ComplianceStatus.OVERDUE: 0,
        ComplianceStatus.DUE_SOON: 0,
        ComplianceStatus.OK: 0,
        ComplianceStatus.UNSCHEDULED: 0,
    }
    for r in rows:
        counts[r.status] += 1
    return counts


def list_departments(employees: Iterable[Any]) -> List[str]:
    return sorted({e.department for e in employees})


# ---------------------------------------------------------------------------
# ONE-PASS DASHBOARD
# ---------------------------------------------------------------------------


@dataclass
class DashboardView:
    today: date
    soon_window_days: int
    rows: List[EnrichedRecord]
    kpis: ComplianceKpis
    monthly: List[MonthBucket]
    weekly: List[WeekBucket]
    breakdown: Dict[ComplianceStatus, int]
    departments: List[str] = field(default_factory=list)


def build_dashboard(
    *,
    employees: Sequence[Any],
    templates: Sequence[Any],
    records: Sequence[Any],
    soon_window_days: int,
    today: date,
    criteria: Optional[RecordFilter] = None,
) -> DashboardView:
    """
    Everything the dashboard shows, computed from one snapshot and one date.

    KPIs, histogram, projection and breakdown cover the whole dataset; only
    the row list honours the filters.
    """
    enriched = enrich_records(records, employees, templates, soon_window_days, today)
    visible = sort_by_next_due(filter_records(enriched, criteria or RecordFilter()))
    return DashboardView(
        today=today,
        soon_window_days=soon_window_days,
        rows=visible,
        kpis=compute_kpis(enriched),
        monthly=monthly_expirations(enriched, today),
        weekly=weekly_projection(enriched, today),
        breakdown=status_breakdown(enriched),
        departments=list_departments(employees),
    )
