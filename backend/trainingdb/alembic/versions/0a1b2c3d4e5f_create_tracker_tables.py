"""create tracker tables

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2025-09-02 10:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('department', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_employees_name_department', 'employees', ['name', 'department'], unique=False)

    op.create_table(
        'training_templates',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('renewal_months', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.Enum('SAFETY', 'QUALITY', 'TECHNICAL', name='training_category_enum'), nullable=True),
        sa.Column('delivery', sa.Enum('WORKDAY', 'IN_PERSON', name='training_delivery_enum'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_training_templates_name'), 'training_templates', ['name'], unique=False)

    op.create_table(
        'training_records',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('employee_id', sa.String(length=36), nullable=False),
        sa.Column('template_id', sa.String(length=36), nullable=True),
        sa.Column('training_name', sa.String(length=255), nullable=False),
        sa.Column('completion_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('renewal_months', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_training_records_employee', 'training_records', ['employee_id'], unique=False)
    op.create_index('idx_training_records_template', 'training_records', ['template_id'], unique=False)

    op.create_table(
        'tracker_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('soon_window_days', sa.Integer(), nullable=False),
        sa.Column('language', sa.Enum('EN', 'FR', name='display_language_enum'), nullable=False),
        sa.Column('theme', sa.Enum('LIGHT', 'DARK', name='display_theme_enum'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('tracker_settings')
    op.drop_index('idx_training_records_template', table_name='training_records')
    op.drop_index('idx_training_records_employee', table_name='training_records')
    op.drop_table('training_records')
    op.drop_index(op.f('ix_training_templates_name'), table_name='training_templates')
    op.drop_table('training_templates')
    op.drop_index('idx_employees_name_department', table_name='employees')
    op.drop_table('employees')
    sa.Enum(name='display_theme_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='display_language_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='training_delivery_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='training_category_enum').drop(op.get_bind(), checkfirst=True)
