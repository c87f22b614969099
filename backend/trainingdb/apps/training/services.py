from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import compliance
from . import models
from . import schemas

logger = logging.getLogger(__name__)

DEFAULT_SOON_WINDOW_DAYS = int(os.getenv("TRAINING_SOON_WINDOW_DAYS", "30"))
DEFAULT_DEPARTMENT = "General"
SNOOZE_DAYS = 30

_PATCHABLE_RECORD_FIELDS = (
    "template_id",
    "training_name",
    "completion_date",
    "due_date",
    "renewal_months",
    "notes",
)


@dataclass
class TrackerError(Exception):
    code: str
    detail: str


def _not_found(kind: str, entity_id: str) -> TrackerError:
    return TrackerError(code="not_found", detail=f"{kind} {entity_id} not found")


# ---------------------------------------------------------------------------
# READS
# ---------------------------------------------------------------------------


def list_employees(db: Session) -> List[models.Employee]:
    return db.query(models.Employee).order_by(models.Employee.created_at.asc()).all()


def list_templates(db: Session) -> List[models.TrainingTemplate]:
    return db.query(models.TrainingTemplate).order_by(models.TrainingTemplate.created_at.asc()).all()


def list_records(db: Session) -> List[models.TrainingRecord]:
    return db.query(models.TrainingRecord).order_by(models.TrainingRecord.created_at.asc()).all()


def get_employee(db: Session, employee_id: str) -> models.Employee:
    employee = db.get(models.Employee, employee_id)
    if employee is None:
        raise _not_found("Employee", employee_id)
    return employee


def get_template(db: Session, template_id: str) -> models.TrainingTemplate:
    template = db.get(models.TrainingTemplate, template_id)
    if template is None:
        raise _not_found("Template", template_id)
    return template


def get_record(db: Session, record_id: str) -> models.TrainingRecord:
    record = db.get(models.TrainingRecord, record_id)
    if record is None:
        raise _not_found("Record", record_id)
    return record


def get_settings(db: Session) -> models.TrackerSettings:
    settings = db.get(models.TrackerSettings, 1)
    if settings is None:
        settings = models.TrackerSettings(
            id=1,
            soon_window_days=DEFAULT_SOON_WINDOW_DAYS,
            language=models.DisplayLanguage.EN,
            theme=models.DisplayTheme.LIGHT,
        )
        db.add(settings)
        db.flush()
    return settings


def enriched_records(db: Session, *, today: date) -> List[compliance.EnrichedRecord]:
    settings = get_settings(db)
    return compliance.enrich_records(
        list_records(db),
        list_employees(db),
        list_templates(db),
        settings.soon_window_days,
        today,
    )


def load_dashboard(
    db: Session,
    *,
    today: date,
    criteria: Optional[compliance.RecordFilter] = None,
) -> compliance.DashboardView:
    """
    Snapshot the three collections and the soon window, then compute every
    view in one pass against `today`.
    """
    settings = get_settings(db)
    return compliance.build_dashboard(
        employees=list_employees(db),
        templates=list_templates(db),
        records=list_records(db),
        soon_window_days=settings.soon_window_days,
        today=today,
        criteria=criteria,
    )


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


def add_employee(db: Session, *, name: str, department: Optional[str] = None) -> models.Employee:
    employee = models.Employee(name=name, department=department or DEFAULT_DEPARTMENT)
    db.add(employee)
    db.flush()
    logger.info("employee added", extra={"employee_id": employee.id})
    return employee


def remove_employee(db: Session, *, employee_id: str) -> int:
    """
    Delete an employee and every record they own. Returns records removed.
    """
    employee = get_employee(db, employee_id)
    removed = (
        db.query(models.TrainingRecord)
        .filter(models.TrainingRecord.employee_id == employee_id)
        .delete(synchronize_session="fetch")
    )
    db.delete(employee)
    db.flush()
    logger.info("employee removed", extra={"employee_id": employee_id, "records_removed": removed})
    return removed


# ---------------------------------------------------------------------------
# TEMPLATES
# ---------------------------------------------------------------------------


def add_template(
    db: Session,
    *,
    name: str,
    renewal_months: Optional[int] = None,
    description: Optional[str] = None,
    category: Optional[models.TrainingCategory] = None,
    delivery: Optional[models.TrainingDelivery] = None,
) -> models.TrainingTemplate:
    template = models.TrainingTemplate(
        name=name,
        renewal_months=renewal_months,
        description=description or None,
        category=category,
        delivery=delivery,
    )
    db.add(template)
    db.flush()
    logger.info("template added", extra={"template_id": template.id})
    return template


def remove_template(db: Session, *, template_id: str) -> int:
    """
    Delete a template and the records that reference it by id.

    Records that only match the template by training name are left alone;
    after the delete they simply resolve to no template (or another one with
    the same name).
    """
    template = get_template(db, template_id)
    removed = (
        db.query(models.TrainingRecord)
        .filter(models.TrainingRecord.template_id == template_id)
        .delete(synchronize_session="fetch")
    )
    db.delete(template)
    db.flush()
    logger.info("template removed", extra={"template_id": template_id, "records_removed": removed})
    return removed


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------


def assign_training(
    db: Session,
    *,
    employee_id: str,
    training_name: Optional[str] = None,
    template_id: Optional[str] = None,
    completion_date: Optional[date] = None,
    due_date: Optional[date] = None,
    renewal_months: Optional[int] = None,
    notes: Optional[str] = None,
) -> models.TrainingRecord:
    get_employee(db, employee_id)

    name = (training_name or "").strip()
    if template_id:
        template = get_template(db, template_id)
        name = name or template.name
    if not name:
        raise TrackerError(code="invalid", detail="training_name is required without a template")

    record = models.TrainingRecord(
        employee_id=employee_id,
        template_id=template_id or None,
        training_name=name,
        completion_date=completion_date,
        due_date=due_date,
        # 0 means "use the template cadence" here, not a one-time override
        renewal_months=renewal_months or None,
        notes=notes or None,
    )
    db.add(record)
    db.flush()
    logger.info("training assigned", extra={"record_id": record.id, "employee_id": employee_id})
    return record


def update_record(db: Session, *, record_id: str, patch: Dict[str, Any]) -> models.TrainingRecord:
    """
    Merge the provided fields into the record. None clears a field; keys not
    present are left untouched.
    """
    record = get_record(db, record_id)
    for key, value in patch.items():
        if key not in _PATCHABLE_RECORD_FIELDS:
            raise TrackerError(code="invalid", detail=f"Field {key} cannot be updated")
        if key == "training_name" and not (value or "").strip():
            raise TrackerError(code="invalid", detail="training_name cannot be blank")
        setattr(record, key, value)
    db.add(record)
    db.flush()
    return record


def mark_done(db: Session, *, record_id: str, today: date) -> models.TrainingRecord:
    """
    Completed today. The stored due date is dropped so the next due date
    comes from the fresh completion and the cadence.
    """
    return update_record(
        db,
        record_id=record_id,
        patch={"completion_date": today, "due_date": None},
    )


def snooze(
    db: Session,
    *,
    record_id: str,
    today: date,
    days: int = SNOOZE_DAYS,
    clear_completion_on_renewal: bool = False,
) -> models.TrainingRecord:
    """
    Push the due date out by `days` from the current next due date (or from
    today when there is none).

    The completion date is kept by default. A completed record with a
    positive cadence keeps resolving from completion + cadence, so the snooze
    does not change its next due date. Pass clear_completion_on_renewal=True
    to drop the completion date in that case and make the new due date take
    effect.
    """
    record = get_record(db, record_id)
    template = compliance.TemplateIndex(list_templates(db)).resolve(record)
    current = compliance.next_due_for(record, template) or today
    try:
        new_due = current + timedelta(days=days)
    except OverflowError:
        raise TrackerError(code="invalid", detail="Snoozed due date is out of range")
    patch: Dict[str, Any] = {"due_date": new_due}

    if clear_completion_on_renewal and compliance.resolve_renewal_months(record, template) > 0:
        patch["completion_date"] = None

    return update_record(db, record_id=record_id, patch=patch)


def clear_completion(db: Session, *, record_id: str) -> models.TrainingRecord:
    return update_record(db, record_id=record_id, patch={"completion_date": None})


def remove_record(db: Session, *, record_id: str) -> None:
    record = get_record(db, record_id)
    db.delete(record)
    db.flush()


# ---------------------------------------------------------------------------
# SETTINGS
# ---------------------------------------------------------------------------


def update_settings(
    db: Session,
    *,
    soon_window_days: Optional[int] = None,
    language: Optional[models.DisplayLanguage] = None,
    theme: Optional[models.DisplayTheme] = None,
) -> models.TrackerSettings:
    settings = get_settings(db)
    if soon_window_days is not None:
        if soon_window_days < 1:
            raise TrackerError(code="invalid", detail="soon_window_days must be at least 1")
        settings.soon_window_days = soon_window_days
    if language is not None:
        settings.language = language
    if theme is not None:
        settings.theme = theme
    db.add(settings)
    db.flush()
    return settings


# ---------------------------------------------------------------------------
# WHOLE-DATASET OPERATIONS
# ---------------------------------------------------------------------------


def clear_all(db: Session) -> None:
    """Delete every record, template and employee. Settings are kept."""
    db.query(models.TrainingRecord).delete(synchronize_session=False)
    db.query(models.TrainingTemplate).delete(synchronize_session=False)
    db.query(models.Employee).delete(synchronize_session=False)
    db.expire_all()
    db.flush()
    logger.info("tracker data cleared")


_SAMPLE_EMPLOYEES = (
    ("Avery Chen", "Operations"),
    ("Maya Singh", "Engineering"),
    ("Leo Garcia", "HR"),
)

_SAMPLE_TEMPLATES = (
    {
        "name": "First Aid / CPR",
        "renewal_months": 24,
        "description": "Standard first aid and CPR level C",
        "category": models.TrainingCategory.SAFETY,
        "delivery": models.TrainingDelivery.IN_PERSON,
    },
    {
        "name": "WHMIS",
        "renewal_months": 12,
        "category": models.TrainingCategory.SAFETY,
        "delivery": models.TrainingDelivery.WORKDAY,
    },
    {
        "name": "Forklift Certification",
        "renewal_months": 36,
        "category": models.TrainingCategory.TECHNICAL,
        "delivery": models.TrainingDelivery.IN_PERSON,
    },
)

# (employee index, template name, completion date, due date)
_SAMPLE_RECORDS = (
    (0, "First Aid / CPR", date(2024, 11, 15), None),
    (1, "WHMIS", date(2025, 8, 1), None),
    (2, "Forklift Certification", None, date(2025, 9, 30)),
)


def load_sample_data(db: Session) -> None:
    """
    Replace the dataset with three employees, three templates and one linked
    assignment each.
    """
    clear_all(db)
    employees = [add_employee(db, name=name, department=dept) for name, dept in _SAMPLE_EMPLOYEES]
    templates = {t["name"]: add_template(db, **t) for t in _SAMPLE_TEMPLATES}
    for emp_idx, template_name, completed, due in _SAMPLE_RECORDS:
        assign_training(
            db,
            employee_id=employees[emp_idx].id,
            template_id=templates[template_name].id,
            completion_date=completed,
            due_date=due,
        )
    logger.info("sample data loaded")


def export_snapshot(db: Session) -> schemas.TrackerSnapshot:
    settings = get_settings(db)
    return schemas.TrackerSnapshot(
        employees=[schemas.SnapshotEmployee.model_validate(e) for e in list_employees(db)],
        templates=[schemas.SnapshotTemplate.model_validate(t) for t in list_templates(db)],
        records=[schemas.SnapshotRecord.model_validate(r) for r in list_records(db)],
        soon_window_days=settings.soon_window_days,
        lang=settings.language,
        theme=settings.theme,
    )


def restore_snapshot(db: Session, snapshot: schemas.TrackerSnapshot) -> None:
    """
    Replace the whole dataset and preferences with `snapshot`.

    Records whose employee is not part of the snapshot are skipped so no
    dangling employee id is stored. Template ids are kept as-is.
    """
    clear_all(db)

    employee_ids = set()
    for e in snapshot.employees:
        db.add(models.Employee(id=e.id, name=e.name, department=e.department))
        employee_ids.add(e.id)
    for t in snapshot.templates:
        db.add(
            models.TrainingTemplate(
                id=t.id,
                name=t.name,
                renewal_months=t.renewal_months,
                description=t.description,
                category=t.category,
                delivery=t.delivery,
            )
        )
    db.flush()

    skipped = 0
    for r in snapshot.records:
        if r.employee_id not in employee_ids:
            skipped += 1
            continue
        db.add(
            models.TrainingRecord(
                id=r.id,
                employee_id=r.employee_id,
                template_id=r.template_id,
                training_name=r.training_name,
                completion_date=r.completion_date,
                due_date=r.due_date,
                renewal_months=r.renewal_months,
                notes=r.notes,
            )
        )
        db.flush()
    if skipped:
        logger.warning("snapshot records without employee skipped", extra={"skipped": skipped})

    update_settings(
        db,
        soon_window_days=snapshot.soon_window_days,
        language=snapshot.lang,
        theme=snapshot.theme,
    )
    logger.info(
        "snapshot restored",
        extra={
            "employees": len(snapshot.employees),
            "templates": len(snapshot.templates),
            "records": len(snapshot.records) - skipped,
        },
    )
