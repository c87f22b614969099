# backend/trainingdb/apps/training/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...user_id import generate_id


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class TrainingCategory(str, enum.Enum):
    SAFETY = "Safety"
    QUALITY = "Quality"
    TECHNICAL = "Technical"


class TrainingDelivery(str, enum.Enum):
    WORKDAY = "Workday"
    IN_PERSON = "In-person"


class ComplianceStatus(str, enum.Enum):
    """
    Derived status of an assignment. Never stored; recomputed on every read.
    """

    OVERDUE = "overdue"
    DUE_SOON = "due-soon"
    OK = "ok"
    UNSCHEDULED = "unscheduled"


class DisplayLanguage(str, enum.Enum):
    EN = "en"
    FR = "fr"


class DisplayTheme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


class Employee(Base):
    """
    A person on the roster. Department is a free-text label.
    """

    __tablename__ = "employees"
    __table_args__ = (
        Index("idx_employees_name_department", "name", "department"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    department = Column(String(255), nullable=False, default="General")

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    records = relationship(
        "TrainingRecord",
        back_populates="employee",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Employee {self.name} ({self.department})>"


# ---------------------------------------------------------------------------
# TRAINING TEMPLATES
# ---------------------------------------------------------------------------


class TrainingTemplate(Base):
    """
    Catalogue entry for a training.

    - renewal_months = recurrent interval; NULL for one-time trainings.
    - category / delivery are optional; NULL means "not set", which is
      distinct from an invalid value (rejected at the API boundary).
    """

    __tablename__ = "training_templates"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False, index=True)
    renewal_months = Column(
        Integer,
        nullable=True,
        doc="Recurrent interval in months; NULL for one-off trainings.",
    )
    description = Column(Text, nullable=True)
    category = Column(
        Enum(TrainingCategory, name="training_category_enum"),
        nullable=True,
    )
    delivery = Column(
        Enum(TrainingDelivery, name="training_delivery_enum"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<TrainingTemplate {self.name}>"


# ---------------------------------------------------------------------------
# TRAINING RECORDS (ASSIGNMENTS)
# ---------------------------------------------------------------------------


class TrainingRecord(Base):
    """
    One training assigned to one employee.

    template_id is a loose reference (no FK): a record may point at no
    template at all, and the engine falls back to matching training_name
    against template names. Deleting a template only removes records that
    carry its id.
    """

    __tablename__ = "training_records"
    __table_args__ = (
        Index("idx_training_records_employee", "employee_id"),
        Index("idx_training_records_template", "template_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)

    employee_id = Column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    template_id = Column(String(36), nullable=True)

    training_name = Column(String(255), nullable=False)

    completion_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    renewal_months = Column(
        Integer,
        nullable=True,
        doc="Per-record override of the template renewal interval.",
    )
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    employee = relationship("Employee", back_populates="records")

    def __repr__(self) -> str:
        return f"<TrainingRecord {self.training_name} ({self.employee_id})>"


# ---------------------------------------------------------------------------
# SETTINGS (SINGLE ROW)
# ---------------------------------------------------------------------------


class TrackerSettings(Base):
    """
    Evaluation and display preferences. Exactly one row, id = 1.
    """

    __tablename__ = "tracker_settings"

    id = Column(Integer, primary_key=True, default=1)
    soon_window_days = Column(Integer, nullable=False, default=30)
    language = Column(
        Enum(DisplayLanguage, name="display_language_enum"),
        nullable=False,
        default=DisplayLanguage.EN,
    )
    theme = Column(
        Enum(DisplayTheme, name="display_theme_enum"),
        nullable=False,
        default=DisplayTheme.LIGHT,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
