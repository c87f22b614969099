from __future__ import annotations

from datetime import date

import pytest

from trainingdb.apps.training import csv_io
from trainingdb.apps.training import services as training_services


def _export(db, today):
    return csv_io.export_csv(training_services.enriched_records(db, today=today))


def test_export_header_and_quoting(db_session, today):
    employee = training_services.add_employee(db_session, name="Doe, Jane", department="Ops")
    training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name='Say "hi"',
        due_date=date(2025, 4, 1),
    )

    text = _export(db_session, today)
    lines = text.split("\n")

    assert lines[0] == (
        '"employee","department","training","completionDate","dueDate",'
        '"renewalMonths","nextDue","status","category","delivery"'
    )
    assert lines[1] == '"Doe, Jane","Ops","Say ""hi""","","2025-04-01","","2025-04-01","due-soon","",""'
    assert not text.endswith("\n")


def test_export_uses_template_renewal_and_labels(db_session, today):
    training_services.load_sample_data(db_session)

    text = _export(db_session, today)

    assert '"Avery Chen","Operations","First Aid / CPR","2024-11-15","","24","2026-11-15","ok","Safety","In-person"' in text
    assert '"Leo Garcia","HR","Forklift Certification","","2025-09-30","36","2025-09-30","ok","Technical","In-person"' in text


def test_export_filename():
    assert csv_io.export_filename(date(2025, 3, 15)) == "training_export_2025-03-15.csv"


def test_parse_accepts_reordered_columns_and_quoted_commas():
    text = (
        "renewalMonths, Training ,EMPLOYEE,department,dueDate\n"
        '12,"WHMIS, refresher","Doe, Jane",Ops,2025-06-01\n'
    )
    [row] = csv_io.parse_import_rows(text)

    assert row.employee == "Doe, Jane"
    assert row.department == "Ops"
    assert row.training == "WHMIS, refresher"
    assert row.due_date == date(2025, 6, 1)
    assert row.completion_date is None
    assert row.renewal_months == 12


def test_parse_applies_defaults_and_lenient_values():
    text = "\n".join(
        [
            "employee,department,training,completionDate,renewalMonths",
            "",
            "Avery Chen,,,2025-13-40,twelve",
            "Maya Singh,Engineering,Forklift,2025-01-05,6.0",
            "",
        ]
    )
    first, second = csv_io.parse_import_rows(text)

    assert first.department == "General"
    assert first.training == "Training"
    assert first.completion_date is None
    assert first.renewal_months is None

    assert second.completion_date == date(2025, 1, 5)
    assert second.renewal_months == 6


def test_parse_header_only_yields_nothing():
    assert csv_io.parse_import_rows("employee,department,training\n") == []
    assert csv_io.parse_import_rows("") == []


def test_import_reuses_existing_and_batch_employees(db_session):
    existing = training_services.add_employee(db_session, name="Avery Chen", department="Operations")
    text = "\n".join(
        [
            "employee,department,training",
            "Avery Chen,Operations,WHMIS",
            "Maya Singh,Engineering,WHMIS",
            "Maya Singh,Engineering,Forklift",
            "Avery Chen,HR,WHMIS",
        ]
    )

    summary = csv_io.import_csv(db_session, text)
    db_session.commit()

    assert summary.employees_created == 2
    assert summary.records_created == 4

    employees = training_services.list_employees(db_session)
    assert len(employees) == 3
    records = training_services.list_records(db_session)
    assert sum(1 for r in records if r.employee_id == existing.id) == 1
    assert all(r.template_id is None for r in records)


def test_malformed_import_writes_nothing(db_session):
    training_services.add_employee(db_session, name="Avery Chen", department="Operations")
    db_session.commit()
    text = 'employee,department,training\nAvery Chen,Operations,WHMIS\n"Maya"x,Engineering,WHMIS\n'

    with pytest.raises(csv_io.CsvImportError):
        csv_io.import_csv(db_session, text)

    assert len(training_services.list_employees(db_session)) == 1
    assert training_services.list_records(db_session) == []


def test_export_then_import_preserves_fields(db_session, today):
    training_services.load_sample_data(db_session)
    text = _export(db_session, today)
    before = sorted(
        (r.employee_name, r.department, r.training_name, r.record.completion_date, r.record.due_date, r.effective_renewal_months)
        for r in training_services.enriched_records(db_session, today=today)
    )

    training_services.clear_all(db_session)
    csv_io.import_csv(db_session, text)
    db_session.commit()

    after = sorted(
        (r.employee_name, r.department, r.training_name, r.record.completion_date, r.record.due_date, r.record.renewal_months)
        for r in training_services.enriched_records(db_session, today=today)
    )
    assert after == before


def test_parse_drops_out_of_range_renewal():
    text = "employee,training,renewalMonths\nAvery Chen,WHMIS,120000\nMaya Singh,WHMIS,-3\n"
    first, second = csv_io.parse_import_rows(text)
    assert first.renewal_months is None
    assert second.renewal_months is None
