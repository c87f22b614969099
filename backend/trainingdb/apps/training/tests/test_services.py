from __future__ import annotations

from datetime import date, timedelta

import pytest

from trainingdb.apps.training import models as training_models
from trainingdb.apps.training import schemas as training_schemas
from trainingdb.apps.training import services as training_services
from trainingdb.apps.training.services import TrackerError


def _seed_employee(db, name="Avery Chen", department="Operations"):
    return training_services.add_employee(db, name=name, department=department)


def _status_of(db, record_id, today):
    rows = training_services.enriched_records(db, today=today)
    return next(r for r in rows if r.id == record_id)


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


def test_add_employee_defaults_department(db_session):
    employee = training_services.add_employee(db_session, name="Leo Garcia")
    assert employee.department == "General"
    assert len(employee.id) == 8


def test_remove_employee_cascades_only_their_records(db_session):
    avery = _seed_employee(db_session)
    maya = _seed_employee(db_session, "Maya Singh", "Engineering")
    for name in ("WHMIS", "First Aid"):
        training_services.assign_training(db_session, employee_id=avery.id, training_name=name)
    kept = training_services.assign_training(db_session, employee_id=maya.id, training_name="WHMIS")

    removed = training_services.remove_employee(db_session, employee_id=avery.id)
    db_session.commit()

    assert removed == 2
    assert [e.id for e in training_services.list_employees(db_session)] == [maya.id]
    assert [r.id for r in training_services.list_records(db_session)] == [kept.id]


def test_remove_unknown_employee_is_not_found(db_session):
    with pytest.raises(TrackerError) as exc:
        training_services.remove_employee(db_session, employee_id="missing")
    assert exc.value.code == "not_found"


# ---------------------------------------------------------------------------
# TEMPLATES
# ---------------------------------------------------------------------------


def test_remove_template_cascades_by_id_only(db_session, today):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="WHMIS", renewal_months=12)
    linked = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        template_id=template.id,
        completion_date=date(2025, 1, 10),
    )
    by_name = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        completion_date=date(2025, 1, 10),
    )
    assert _status_of(db_session, by_name.id, today).next_due == date(2026, 1, 10)

    removed = training_services.remove_template(db_session, template_id=template.id)
    db_session.commit()

    assert removed == 1
    remaining = training_services.list_records(db_session)
    assert [r.id for r in remaining] == [by_name.id]
    assert linked.id not in {r.id for r in remaining}

    row = _status_of(db_session, by_name.id, today)
    assert row.template is None
    assert row.status == training_models.ComplianceStatus.UNSCHEDULED


# ---------------------------------------------------------------------------
# ASSIGN / UPDATE
# ---------------------------------------------------------------------------


def test_assign_from_template_copies_name(db_session):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="Forklift Certification", renewal_months=36)

    record = training_services.assign_training(db_session, employee_id=employee.id, template_id=template.id)

    assert record.training_name == "Forklift Certification"
    assert record.template_id == template.id
    assert record.renewal_months is None


def test_assign_rejects_unknown_references_and_missing_name(db_session):
    employee = _seed_employee(db_session)

    with pytest.raises(TrackerError) as exc:
        training_services.assign_training(db_session, employee_id="ghost", training_name="WHMIS")
    assert exc.value.code == "not_found"

    with pytest.raises(TrackerError) as exc:
        training_services.assign_training(db_session, employee_id=employee.id, template_id="ghost")
    assert exc.value.code == "not_found"

    with pytest.raises(TrackerError) as exc:
        training_services.assign_training(db_session, employee_id=employee.id, training_name="  ")
    assert exc.value.code == "invalid"


def test_update_record_applies_only_given_fields(db_session):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        due_date=date(2025, 6, 1),
        notes="bring badge",
    )

    training_services.update_record(
        db_session,
        record_id=record.id,
        patch={"renewal_months": 6, "notes": None},
    )

    assert record.renewal_months == 6
    assert record.notes is None
    assert record.due_date == date(2025, 6, 1)


def test_update_record_rejects_unknown_field_and_blank_name(db_session):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(db_session, employee_id=employee.id, training_name="WHMIS")

    with pytest.raises(TrackerError):
        training_services.update_record(db_session, record_id=record.id, patch={"employee_id": "x"})
    with pytest.raises(TrackerError):
        training_services.update_record(db_session, record_id=record.id, patch={"training_name": ""})


# ---------------------------------------------------------------------------
# QUICK ACTIONS
# ---------------------------------------------------------------------------


def test_mark_done_sets_completion_and_drops_due_date(db_session, today):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="WHMIS", renewal_months=12)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        template_id=template.id,
        due_date=today - timedelta(days=10),
    )

    training_services.mark_done(db_session, record_id=record.id, today=today)

    assert record.completion_date == today
    assert record.due_date is None
    row = _status_of(db_session, record.id, today)
    assert row.next_due == date(2026, 3, 15)
    assert row.status == training_models.ComplianceStatus.OK


def test_snooze_keeps_completion_by_default(db_session, today):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="WHMIS", renewal_months=12)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        template_id=template.id,
        completion_date=date(2025, 1, 10),
    )

    training_services.snooze(db_session, record_id=record.id, today=today)

    assert record.due_date == date(2026, 2, 9)
    assert record.completion_date == date(2025, 1, 10)
    # completion + cadence still wins
    assert _status_of(db_session, record.id, today).next_due == date(2026, 1, 10)


def test_snooze_can_clear_completion_for_renewing_training(db_session, today):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="WHMIS", renewal_months=12)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        template_id=template.id,
        completion_date=date(2025, 1, 10),
    )

    training_services.snooze(
        db_session,
        record_id=record.id,
        today=today,
        clear_completion_on_renewal=True,
    )

    assert record.completion_date is None
    assert _status_of(db_session, record.id, today).next_due == date(2026, 2, 9)


def test_snooze_one_time_and_unscheduled_records(db_session, today):
    employee = _seed_employee(db_session)
    one_time = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="Orientation",
        completion_date=date(2025, 1, 2),
        due_date=date(2025, 3, 1),
    )
    unscheduled = training_services.assign_training(db_session, employee_id=employee.id, training_name="Custom")

    training_services.snooze(db_session, record_id=one_time.id, today=today, clear_completion_on_renewal=True)
    training_services.snooze(db_session, record_id=unscheduled.id, today=today, days=7)

    assert one_time.due_date == date(2025, 3, 31)
    # no cadence, so the completion date stays
    assert one_time.completion_date == date(2025, 1, 2)
    assert unscheduled.due_date == today + timedelta(days=7)


def test_clear_completion_keeps_other_fields(db_session, today):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        completion_date=date(2025, 1, 10),
        due_date=date(2025, 12, 1),
        renewal_months=12,
    )

    training_services.clear_completion(db_session, record_id=record.id)

    assert record.completion_date is None
    assert record.due_date == date(2025, 12, 1)
    assert record.renewal_months == 12
    assert _status_of(db_session, record.id, today).next_due == date(2025, 12, 1)


def test_remove_record(db_session):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(db_session, employee_id=employee.id, training_name="WHMIS")

    training_services.remove_record(db_session, record_id=record.id)

    assert training_services.list_records(db_session) == []
    with pytest.raises(TrackerError):
        training_services.remove_record(db_session, record_id=record.id)


# ---------------------------------------------------------------------------
# SETTINGS / DASHBOARD
# ---------------------------------------------------------------------------


def test_settings_default_and_update(db_session):
    settings = training_services.get_settings(db_session)
    assert settings.soon_window_days == 30
    assert settings.language == training_models.DisplayLanguage.EN
    assert settings.theme == training_models.DisplayTheme.LIGHT

    training_services.update_settings(
        db_session,
        soon_window_days=60,
        theme=training_models.DisplayTheme.DARK,
    )
    again = training_services.get_settings(db_session)
    assert again.soon_window_days == 60
    assert again.theme == training_models.DisplayTheme.DARK
    assert again.language == training_models.DisplayLanguage.EN

    with pytest.raises(TrackerError):
        training_services.update_settings(db_session, soon_window_days=0)


def test_dashboard_uses_stored_window(db_session, today):
    employee = _seed_employee(db_session)
    training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        due_date=today + timedelta(days=45),
    )

    view = training_services.load_dashboard(db_session, today=today)
    assert view.rows[0].status == training_models.ComplianceStatus.OK

    training_services.update_settings(db_session, soon_window_days=60)
    view = training_services.load_dashboard(db_session, today=today)
    assert view.rows[0].status == training_models.ComplianceStatus.DUE_SOON
    assert view.soon_window_days == 60


# ---------------------------------------------------------------------------
# SAMPLE / CLEAR / SNAPSHOT
# ---------------------------------------------------------------------------


def test_load_sample_data_replaces_dataset(db_session):
    _seed_employee(db_session, "Someone Else", "Finance")

    training_services.load_sample_data(db_session)
    db_session.commit()

    employees = training_services.list_employees(db_session)
    templates = training_services.list_templates(db_session)
    records = training_services.list_records(db_session)

    assert sorted(e.name for e in employees) == ["Avery Chen", "Leo Garcia", "Maya Singh"]
    assert sorted(t.name for t in templates) == ["First Aid / CPR", "Forklift Certification", "WHMIS"]
    assert len(records) == 3
    template_names = {t.id: t.name for t in templates}
    for r in records:
        assert template_names[r.template_id] == r.training_name


def test_clear_all_keeps_settings(db_session):
    training_services.load_sample_data(db_session)
    training_services.update_settings(db_session, soon_window_days=14)

    training_services.clear_all(db_session)
    db_session.commit()

    assert training_services.list_employees(db_session) == []
    assert training_services.list_templates(db_session) == []
    assert training_services.list_records(db_session) == []
    assert training_services.get_settings(db_session).soon_window_days == 14


def test_snapshot_export_then_restore_is_lossless(db_session):
    training_services.load_sample_data(db_session)
    training_services.update_settings(
        db_session,
        soon_window_days=45,
        language=training_models.DisplayLanguage.FR,
    )
    before = training_services.export_snapshot(db_session)
    payload = before.model_dump(by_alias=True, mode="json")

    assert set(payload) == {"employees", "templates", "records", "soonWindowDays", "lang", "theme"}
    assert "employeeId" in payload["records"][0]

    training_services.clear_all(db_session)
    training_services.update_settings(db_session, soon_window_days=30)
    training_services.restore_snapshot(db_session, training_schemas.TrackerSnapshot.model_validate(payload))
    db_session.commit()

    after = training_services.export_snapshot(db_session).model_dump()
    expected = before.model_dump()
    for key in ("employees", "templates", "records"):
        assert sorted(after[key], key=lambda item: item["id"]) == sorted(expected[key], key=lambda item: item["id"])
    assert after["soon_window_days"] == 45
    assert after["lang"] == training_models.DisplayLanguage.FR


def test_restore_snapshot_tolerates_bad_dates_and_skips_orphans(db_session):
    snapshot = training_schemas.TrackerSnapshot.model_validate(
        {
            "employees": [{"id": "emp00001", "name": "Avery Chen"}],
            "templates": [],
            "records": [
                {
                    "id": "rec00001",
                    "employeeId": "emp00001",
                    "templateId": "",
                    "trainingName": "WHMIS",
                    "completionDate": "not-a-date",
                    "dueDate": "2025-06-01",
                },
                {"id": "rec00002", "employeeId": "ghost", "trainingName": "Forklift"},
            ],
            "soonWindowDays": 14,
            "lang": "fr",
            "theme": "dark",
        }
    )

    training_services.restore_snapshot(db_session, snapshot)
    db_session.commit()

    [record] = training_services.list_records(db_session)
    assert record.id == "rec00001"
    assert record.template_id is None
    assert record.completion_date is None
    assert record.due_date == date(2025, 6, 1)
    assert training_services.list_employees(db_session)[0].department == "General"

    settings = training_services.get_settings(db_session)
    assert settings.soon_window_days == 14
    assert settings.language == training_models.DisplayLanguage.FR
    assert settings.theme == training_models.DisplayTheme.DARK


def test_assign_with_zero_renewal_keeps_template_cadence(db_session, today):
    employee = _seed_employee(db_session)
    template = training_services.add_template(db_session, name="WHMIS", renewal_months=12)

    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        template_id=template.id,
        completion_date=date(2025, 1, 1),
        renewal_months=0,
    )

    assert record.renewal_months is None
    row = _status_of(db_session, record.id, today)
    assert row.next_due == date(2026, 1, 1)
    assert row.status == training_models.ComplianceStatus.OK


def test_dashboard_survives_cadence_past_date_range(db_session, today):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        completion_date=date(2024, 1, 1),
        renewal_months=120000,
    )

    view = training_services.load_dashboard(db_session, today=today)

    [row] = view.rows
    assert row.id == record.id
    assert row.status == training_models.ComplianceStatus.UNSCHEDULED
    assert view.kpis.compliance_pct == 100


def test_snooze_past_date_range_is_invalid(db_session, today):
    employee = _seed_employee(db_session)
    record = training_services.assign_training(
        db_session,
        employee_id=employee.id,
        training_name="WHMIS",
        due_date=date(9999, 12, 20),
    )

    with pytest.raises(TrackerError) as exc:
        training_services.snooze(db_session, record_id=record.id, today=today)
    assert exc.value.code == "invalid"
    assert record.due_date == date(9999, 12, 20)
