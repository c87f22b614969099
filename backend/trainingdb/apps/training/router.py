from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ...database import get_db
from . import compliance
from . import csv_io
from . import schemas as training_schemas
from . import services as training_services

router = APIRouter(prefix="/training", tags=["training"])


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def _today() -> date:
    """
    Evaluation date for one request. Sampled once and passed down so every
    derived field in a response agrees.
    """
    return date.today()


def _http_error(exc: training_services.TrackerError) -> HTTPException:
    code = status.HTTP_404_NOT_FOUND if exc.code == "not_found" else status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.detail)


def _to_enriched_read(row: compliance.EnrichedRecord) -> training_schemas.EnrichedRecordRead:
    record = row.record
    return training_schemas.EnrichedRecordRead(
        id=record.id,
        employee_id=record.employee_id,
        employee_name=row.employee_name,
        department=row.department,
        template_id=record.template_id,
        template_name=row.template.name if row.template is not None else None,
        training_name=record.training_name,
        category=row.category,
        delivery=row.delivery,
        completion_date=record.completion_date,
        due_date=record.due_date,
        renewal_months=row.effective_renewal_months,
        notes=record.notes,
        next_due=row.next_due,
        next_due_days=row.next_due_days,
        status=row.status,
    )


def _record_filter(
    department: Optional[str] = Query(None, description="Exact department, or 'all'."),
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        description="overdue / due-soon / ok / unscheduled, or 'all'.",
    ),
    category: Optional[str] = Query(None, description="Safety / Quality / Technical, '—' for none, or 'all'."),
    delivery: Optional[str] = Query(None, description="Workday / In-person, '—' for none, or 'all'."),
    search: Optional[str] = Query(None, description="Case-insensitive match on employee, training or department."),
    horizon_days: Optional[int] = Query(
        None,
        description="Keep rows due within N days; rows with no due date are always kept.",
    ),
) -> compliance.RecordFilter:
    return compliance.RecordFilter(
        department=department,
        status=status_filter,
        category=category,
        delivery=delivery,
        search=search,
        horizon_days=horizon_days,
    )


def _commit_or_raise(db: Session, fn, *args, **kwargs):
    try:
        result = fn(db, *args, **kwargs)
    except training_services.TrackerError as exc:
        db.rollback()
        raise _http_error(exc)
    db.commit()
    return result


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


@router.get(
    "/employees",
    response_model=List[training_schemas.EmployeeRead],
    summary="List employees",
)
def list_employees(db: Session = Depends(get_db)):
    return training_services.list_employees(db)


@router.post(
    "/employees",
    response_model=training_schemas.EmployeeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add an employee",
)
def create_employee(
    payload: training_schemas.EmployeeCreate,
    db: Session = Depends(get_db),
):
    employee = _commit_or_raise(
        db,
        training_services.add_employee,
        name=payload.name,
        department=payload.department,
    )
    db.refresh(employee)
    return employee


@router.delete(
    "/employees/{employee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an employee and all of their assignments",
)
def delete_employee(employee_id: str, db: Session = Depends(get_db)):
    _commit_or_raise(db, training_services.remove_employee, employee_id=employee_id)


@router.get(
    "/departments",
    response_model=List[str],
    summary="Distinct departments, sorted",
)
def list_departments(db: Session = Depends(get_db)):
    return compliance.list_departments(training_services.list_employees(db))


# ---------------------------------------------------------------------------
# TEMPLATES
# ---------------------------------------------------------------------------


@router.get(
    "/templates",
    response_model=List[training_schemas.TrainingTemplateRead],
    summary="List training templates",
)
def list_templates(db: Session = Depends(get_db)):
    return training_services.list_templates(db)


@router.post(
    "/templates",
    response_model=training_schemas.TrainingTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a training template",
)
def create_template(
    payload: training_schemas.TrainingTemplateCreate,
    db: Session = Depends(get_db),
):
    template = _commit_or_raise(
        db,
        training_services.add_template,
        **payload.model_dump(),
    )
    db.refresh(template)
    return template


@router.delete(
    "/templates/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a template and the assignments that reference it by id",
)
def delete_template(template_id: str, db: Session = Depends(get_db)):
    _commit_or_raise(db, training_services.remove_template, template_id=template_id)


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------


@router.get(
    "/records",
    response_model=List[training_schemas.EnrichedRecordRead],
    summary="Enriched assignments, filtered and sorted by next due date",
)
def list_records(
    criteria: compliance.RecordFilter = Depends(_record_filter),
    db: Session = Depends(get_db),
):
    rows = training_services.enriched_records(db, today=_today())
    db.commit()
    visible = compliance.sort_by_next_due(compliance.filter_records(rows, criteria))
    return [_to_enriched_read(r) for r in visible]


@router.post(
    "/records",
    response_model=training_schemas.TrainingRecordRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a training to an employee",
)
def create_record(
    payload: training_schemas.TrainingRecordCreate,
    db: Session = Depends(get_db),
):
    record = _commit_or_raise(db, training_services.assign_training, **payload.model_dump())
    db.refresh(record)
    return record


@router.patch(
    "/records/{record_id}",
    response_model=training_schemas.TrainingRecordRead,
    summary="Partially update an assignment",
)
def patch_record(
    record_id: str,
    payload: training_schemas.TrainingRecordUpdate,
    db: Session = Depends(get_db),
):
    record = _commit_or_raise(
        db,
        training_services.update_record,
        record_id=record_id,
        patch=payload.model_dump(exclude_unset=True),
    )
    db.refresh(record)
    return record


@router.post(
    "/records/{record_id}/mark-done",
    response_model=training_schemas.TrainingRecordRead,
    summary="Set completion to today and clear the stored due date",
)
def mark_record_done(record_id: str, db: Session = Depends(get_db)):
    record = _commit_or_raise(db, training_services.mark_done, record_id=record_id, today=_today())
    db.refresh(record)
    return record


@router.post(
    "/records/{record_id}/snooze",
    response_model=training_schemas.TrainingRecordRead,
    summary="Push the due date out (30 days by default)",
)
def snooze_record(
    record_id: str,
    payload: Optional[training_schemas.SnoozeRequest] = None,
    db: Session = Depends(get_db),
):
    payload = payload or training_schemas.SnoozeRequest()
    record = _commit_or_raise(
        db,
        training_services.snooze,
        record_id=record_id,
        today=_today(),
        days=payload.days,
        clear_completion_on_renewal=payload.clear_completion_on_renewal,
    )
    db.refresh(record)
    return record


@router.post(
    "/records/{record_id}/clear-completion",
    response_model=training_schemas.TrainingRecordRead,
    summary="Remove the completion date only",
)
def clear_record_completion(record_id: str, db: Session = Depends(get_db)):
    record = _commit_or_raise(db, training_services.clear_completion, record_id=record_id)
    db.refresh(record)
    return record


@router.delete(
    "/records/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an assignment",
)
def delete_record(record_id: str, db: Session = Depends(get_db)):
    _commit_or_raise(db, training_services.remove_record, record_id=record_id)


# ---------------------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------------------


@router.get(
    "/dashboard",
    response_model=training_schemas.TrainingDashboardRead,
    summary="KPIs, expiration histogram, 12-week projection and status breakdown",
)
def get_dashboard(
    criteria: compliance.RecordFilter = Depends(_record_filter),
    db: Session = Depends(get_db),
):
    """
    Aggregates always cover the whole dataset; filters only narrow `rows`.
    """
    view = training_services.load_dashboard(db, today=_today(), criteria=criteria)
    db.commit()
    return training_schemas.TrainingDashboardRead(
        today=view.today,
        soon_window_days=view.soon_window_days,
        kpis=training_schemas.ComplianceKpisRead.model_validate(view.kpis),
        monthly_expirations=[
            training_schemas.MonthBucketRead.model_validate(b) for b in view.monthly
        ],
        weekly_projection=[
            training_schemas.WeekBucketRead.model_validate(b) for b in view.weekly
        ],
        status_counts=[
            training_schemas.StatusCountRead(status=s, count=c)
            for s, c in view.breakdown.items()
        ],
        departments=view.departments,
        rows=[_to_enriched_read(r) for r in view.rows],
    )


# ---------------------------------------------------------------------------
# SETTINGS
# ---------------------------------------------------------------------------


@router.get(
    "/settings",
    response_model=training_schemas.TrackerSettingsRead,
    summary="Due-soon window and display preferences",
)
def get_settings(db: Session = Depends(get_db)):
    settings = training_services.get_settings(db)
    db.commit()
    return settings


@router.put(
    "/settings",
    response_model=training_schemas.TrackerSettingsRead,
    summary="Update the due-soon window and display preferences",
)
def update_settings(
    payload: training_schemas.TrackerSettingsUpdate,
    db: Session = Depends(get_db),
):
    settings = _commit_or_raise(db, training_services.update_settings, **payload.model_dump())
    db.refresh(settings)
    return settings


# ---------------------------------------------------------------------------
# CSV / SNAPSHOT / BULK
# ---------------------------------------------------------------------------


@router.get(
    "/export.csv",
    response_class=PlainTextResponse,
    summary="Export every assignment as CSV",
)
def export_records_csv(db: Session = Depends(get_db)):
    today = _today()
    rows = training_services.enriched_records(db, today=today)
    db.commit()
    return PlainTextResponse(
        csv_io.export_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{csv_io.export_filename(today)}"'},
    )


@router.post(
    "/import",
    response_model=training_schemas.CsvImportResult,
    summary="Import assignments from CSV (all rows or nothing)",
)
async def import_records_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV must be UTF-8 encoded.",
        )
    try:
        summary = csv_io.import_csv(db, text)
    except csv_io.CsvImportError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    db.commit()
    return training_schemas.CsvImportResult(
        employees_created=summary.employees_created,
        records_created=summary.records_created,
    )


@router.get(
    "/snapshot",
    response_model=training_schemas.TrackerSnapshot,
    response_model_by_alias=True,
    summary="Whole dataset and preferences as one JSON document",
)
def get_snapshot(db: Session = Depends(get_db)):
    snapshot = training_services.export_snapshot(db)
    db.commit()
    return snapshot


@router.put(
    "/snapshot",
    response_model=training_schemas.TrackerSnapshot,
    response_model_by_alias=True,
    summary="Replace the whole dataset and preferences",
)
def put_snapshot(
    payload: training_schemas.TrackerSnapshot,
    db: Session = Depends(get_db),
):
    _commit_or_raise(db, training_services.restore_snapshot, payload)
    return training_services.export_snapshot(db)


@router.post(
    "/sample",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Replace the dataset with sample data",
)
def load_sample(db: Session = Depends(get_db)):
    _commit_or_raise(db, training_services.load_sample_data)


@router.delete(
    "/data",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete all employees, templates and assignments",
)
def clear_data(db: Session = Depends(get_db)):
    _commit_or_raise(db, training_services.clear_all)

