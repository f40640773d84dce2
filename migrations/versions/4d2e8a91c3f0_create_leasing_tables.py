"""create properties, applications and audit_events

Revision ID: 4d2e8a91c3f0
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "4d2e8a91c3f0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    if "properties" not in existing_tables:
        op.create_table(
            "properties",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("address", sa.String(length=512), nullable=False),
            sa.Column("rent", sa.Integer(), nullable=False),
            sa.Column("availability", sa.String(length=32), nullable=False, server_default="available"),
            sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("bathrooms", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("square_footage", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("amenities", sa.JSON(), nullable=True),
            sa.Column("photos", sa.JSON(), nullable=True),
            sa.Column("epc_rating", sa.String(length=2), nullable=True),
            sa.Column("council_tax_band", sa.String(length=2), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_properties_availability", "properties", ["availability"])
        op.create_index("idx_properties_created_at", "properties", ["created_at"])

    if "applications" not in existing_tables:
        op.create_table(
            "applications",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
            sa.Column("applicant_name", sa.String(length=255), nullable=False),
            sa.Column("applicant_email", sa.String(length=320), nullable=False),
            sa.Column("applicant_phone", sa.String(length=64), nullable=True),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="submitted"),
            sa.Column("notification_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
        )
        op.create_index("idx_applications_status", "applications", ["status"])
        op.create_index("idx_applications_property_id", "applications", ["property_id"])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("actor", sa.String(length=320), nullable=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("entity_type", sa.String(length=128), nullable=True),
            sa.Column("entity_id", sa.String(length=128), nullable=True),
            sa.Column("reason", sa.String(length=512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(length=64), nullable=True),
        )
        op.create_index("idx_audit_events_action", "audit_events", ["action"])
        op.create_index("idx_audit_events_entity", "audit_events", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("idx_audit_events_entity", table_name="audit_events")
    op.drop_index("idx_audit_events_action", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("idx_applications_property_id", table_name="applications")
    op.drop_index("idx_applications_status", table_name="applications")
    op.drop_table("applications")
    op.drop_index("idx_properties_created_at", table_name="properties")
    op.drop_index("idx_properties_availability", table_name="properties")
    op.drop_table("properties")
