"""create compliance calendar, reminder and in-app notification tables

Revision ID: 7c3e1a9f0b21
Revises:
Create Date: 2025-06-02 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c3e1a9f0b21"
down_revision = None
branch_labels = None
depends_on = None


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return name in _insp().get_table_names()


def upgrade():
    # business_entities is normally created by the formation service
    if not _has_table("business_entities"):
        op.create_table(
            "business_entities",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.String(length=64), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=True),
            sa.Column("entity_type", sa.String(length=50), nullable=True),
            sa.Column("state", sa.String(length=2), nullable=True),
            sa.Column("formation_date", sa.Date, nullable=True),
            sa.Column("contact_email", sa.String(length=255), nullable=True),
            sa.Column("contact_phone", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        )
        op.create_index("ix_business_entities_user_id", "business_entities", ["user_id"])
        op.create_index("ix_business_entities_entity_type", "business_entities", ["entity_type"])
        op.create_index("ix_business_entities_state", "business_entities", ["state"])

    if not _has_table("compliance_calendar"):
        op.create_table(
            "compliance_calendar",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("business_entity_id", sa.Integer, nullable=False),
            sa.Column("event_type", sa.String(length=64), nullable=False),
            sa.Column("event_title", sa.String(length=255), nullable=False),
            sa.Column("event_description", sa.Text, nullable=True),
            sa.Column("due_date", sa.Date, nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("completed_date", sa.DateTime, nullable=True),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("category", sa.String(length=50), nullable=False),
            sa.Column("is_recurring", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column("recurring_interval", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.ForeignKeyConstraint(["business_entity_id"], ["business_entities.id"], ondelete="RESTRICT"),
            sa.UniqueConstraint(
                "business_entity_id", "event_type", "due_date",
                name="uq_compliance_calendar_entity_event_due",
            ),
            sa.CheckConstraint(
                "status IN ('pending', 'completed', 'cancelled')",
                name="ck_compliance_calendar_status_allowed",
            ),
            sa.CheckConstraint(
                "priority IN ('high', 'medium', 'low')",
                name="ck_compliance_calendar_priority_allowed",
            ),
            sa.CheckConstraint(
                "(NOT is_recurring) OR (recurring_interval IS NOT NULL)",
                name="ck_compliance_calendar_recurring_interval",
            ),
        )
        op.create_index("ix_compliance_calendar_business_entity_id", "compliance_calendar", ["business_entity_id"])
        op.create_index("ix_compliance_calendar_event_type", "compliance_calendar", ["event_type"])
        op.create_index("ix_compliance_calendar_due_date", "compliance_calendar", ["due_date"])
        op.create_index("ix_compliance_calendar_status", "compliance_calendar", ["status"])
        op.create_index(
            "ix_compliance_calendar_entity_status_due",
            "compliance_calendar",
            ["business_entity_id", "status", "due_date"],
        )

    if not _has_table("compliance_notifications"):
        op.create_table(
            "compliance_notifications",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("business_entity_id", sa.Integer, nullable=False),
            sa.Column("compliance_calendar_id", sa.Integer, nullable=False),
            sa.Column("notification_type", sa.String(length=20), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("message", sa.Text, nullable=False),
            sa.Column("scheduled_date", sa.Date, nullable=False),
            sa.Column("sent_date", sa.DateTime, nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("delivery_attempts", sa.Integer, nullable=False, server_default="0"),
            sa.Column("error_text", sa.Text, nullable=True),
            sa.Column("recipient", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
            sa.ForeignKeyConstraint(["business_entity_id"], ["business_entities.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["compliance_calendar_id"], ["compliance_calendar.id"], ondelete="RESTRICT"),
            sa.CheckConstraint(
                "notification_type IN ('email', 'sms', 'dashboard')",
                name="ck_compliance_notifications_type_allowed",
            ),
            sa.CheckConstraint(
                "status IN ('pending', 'sent', 'failed', 'cancelled')",
                name="ck_compliance_notifications_status_allowed",
            ),
        )
        op.create_index("ix_compliance_notifications_business_entity_id", "compliance_notifications", ["business_entity_id"])
        op.create_index("ix_compliance_notifications_compliance_calendar_id", "compliance_notifications", ["compliance_calendar_id"])
        op.create_index("ix_compliance_notifications_scheduled_date", "compliance_notifications", ["scheduled_date"])
        op.create_index("ix_compliance_notifications_status", "compliance_notifications", ["status"])
        op.create_index(
            "ix_compliance_notifications_status_scheduled",
            "compliance_notifications",
            ["status", "scheduled_date"],
        )

    if not _has_table("notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("business_entity_id", sa.Integer, nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=True),
            sa.Column("compliance_calendar_id", sa.Integer, nullable=True),
            sa.Column("reminder_date", sa.Date, nullable=True),
            sa.Column("type", sa.String(length=50), nullable=False, server_default="compliance_reminder"),
            sa.Column("category", sa.String(length=50), nullable=False, server_default="compliance"),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("message", sa.Text, nullable=False),
            sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
            sa.Column("action_url", sa.String(length=255), nullable=True),
            sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime, nullable=False),
            sa.ForeignKeyConstraint(["business_entity_id"], ["business_entities.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["compliance_calendar_id"], ["compliance_calendar.id"], ondelete="CASCADE"),
            sa.UniqueConstraint(
                "compliance_calendar_id", "reminder_date",
                name="uq_notifications_entry_reminder_date",
            ),
        )
        op.create_index("ix_notifications_business_entity_id", "notifications", ["business_entity_id"])
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade():
    for name in ("notifications", "compliance_notifications", "compliance_calendar"):
        if _has_table(name):
            op.drop_table(name)
    # business_entities left in place: owned by the formation service
