"""Initial schema: agencies, models, team, content requests, uploads, invitations, audit.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NOW = sa.text("now()")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True, nullable=False)


def _agency_fk() -> sa.Column:
    return sa.Column("agency_id", sa.Uuid(), sa.ForeignKey("agencies.id"), nullable=False, index=True)


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(),
        server_default=sa.text(f"'{default}'::jsonb"),
        nullable=False,
    )


# Tables in dependency order.
TABLES = [
    "agencies",
    "creator_models",
    "team_members",
    "model_assignments",
    "content_requests",
    "gallery_items",
    "content_uploads",
    "invitations",
    "audit_events",
]


def upgrade() -> None:
    op.create_table(
        "agencies",
        _uuid_pk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("subscription_status", sa.String(), server_default="trial", nullable=False),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "creator_models",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        sa.Column("portal_token", sa.String(), nullable=False, unique=True, index=True),
        _jsonb("field_visibility", "{}"),
        sa.Column("email", sa.String(), index=True),
        sa.Column("phone", sa.String()),
        sa.Column("bio", sa.String()),
        sa.Column("avatar_url", sa.String()),
        sa.Column("instagram_handle", sa.String()),
        sa.Column("twitter_handle", sa.String()),
        sa.Column("tiktok_handle", sa.String()),
        sa.Column("onlyfans_handle", sa.String()),
        sa.Column("joined_date", sa.DateTime(timezone=True)),
        sa.Column("contract_split", sa.Float()),
        _jsonb("content_preferences", "{}"),
        sa.Column("contract_notes", sa.String()),
        sa.Column("internal_notes", sa.String()),
        sa.Column("archived_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("agency_id", "slug", name="uq_creator_models_agency_slug"),
        sa.CheckConstraint("status IN ('active', 'archived')", name="ck_creator_models_status"),
    )

    op.create_table(
        "team_members",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("email", sa.String(), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), server_default="member", nullable=False),
        sa.Column("status", sa.String(), server_default="active", nullable=False),
        _jsonb("permissions", "{}"),
        sa.Column("password_hash", sa.String()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("agency_id", "email", name="uq_team_members_agency_email"),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name="ck_team_members_role"),
        sa.CheckConstraint(
            "status IN ('invited', 'active', 'suspended')", name="ck_team_members_status"
        ),
    )

    op.create_table(
        "model_assignments",
        sa.Column("team_member_id", sa.Uuid(), sa.ForeignKey("team_members.id"), primary_key=True),
        sa.Column("model_id", sa.Uuid(), sa.ForeignKey("creator_models.id"), primary_key=True),
        _agency_fk(),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    )

    op.create_table(
        "content_requests",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("model_id", sa.Uuid(), sa.ForeignKey("creator_models.id"), nullable=False, index=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String()),
        _jsonb("reference_urls", "[]"),
        sa.Column("quantity_photo", sa.Integer(), server_default="0", nullable=False),
        sa.Column("quantity_video", sa.Integer(), server_default="0", nullable=False),
        sa.Column("priority", sa.String(), server_default="normal", nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(), server_default="pending", nullable=False, index=True),
        sa.Column(
            "created_by", sa.Uuid(), sa.ForeignKey("team_members.id", ondelete="SET NULL")
        ),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'delivered', 'approved', 'cancelled')",
            name="ck_content_requests_status",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')", name="ck_content_requests_priority"
        ),
        sa.CheckConstraint(
            "quantity_photo >= 0 AND quantity_video >= 0", name="ck_content_requests_quantities"
        ),
    )

    op.create_table(
        "gallery_items",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("model_id", sa.Uuid(), sa.ForeignKey("creator_models.id"), nullable=False, index=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("thumbnail_url", sa.String()),
        sa.Column("title", sa.String()),
        sa.Column("source", sa.String(), server_default="model_upload", nullable=False),
        _jsonb("tags", "[]"),
        *_timestamps(),
    )

    op.create_table(
        "content_uploads",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("model_id", sa.Uuid(), sa.ForeignKey("creator_models.id"), nullable=False, index=True),
        sa.Column(
            "content_request_id", sa.Uuid(), sa.ForeignKey("content_requests.id"), index=True
        ),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("mime_type", sa.String()),
        sa.Column("file_size", sa.BigInteger()),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("thumbnail_url", sa.String()),
        sa.Column("status", sa.String(), server_default="pending_review", nullable=False, index=True),
        sa.Column("rejection_note", sa.String()),
        _jsonb("metadata", "{}"),
        sa.Column("gallery_item_id", sa.Uuid(), sa.ForeignKey("gallery_items.id")),
        sa.Column(
            "reviewed_by", sa.Uuid(), sa.ForeignKey("team_members.id", ondelete="SET NULL")
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("file_type IN ('image', 'video')", name="ck_content_uploads_file_type"),
        sa.CheckConstraint(
            "status IN ('pending_review', 'approved', 'rejected')",
            name="ck_content_uploads_status",
        ),
        sa.CheckConstraint(
            "status <> 'rejected' OR (rejection_note IS NOT NULL AND length(trim(rejection_note)) > 0)",
            name="ck_content_uploads_rejection_note",
        ),
    )

    op.create_table(
        "invitations",
        _uuid_pk(),
        _agency_fk(),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, index=True),
        sa.Column("name", sa.String()),
        sa.Column("role", sa.String()),
        sa.Column("token", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("custom_message", sa.String()),
        _jsonb("assigned_model_ids", "[]"),
        sa.Column("status", sa.String(), server_default="pending", nullable=False),
        sa.Column(
            "invited_by", sa.Uuid(), sa.ForeignKey("team_members.id", ondelete="SET NULL")
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True)),
        sa.Column("revoked_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.CheckConstraint("kind IN ('team', 'model')", name="ck_invitations_kind"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'revoked')", name="ck_invitations_status"
        ),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        _agency_fk(),
        sa.Column("type", sa.String(), nullable=False, index=True),
        sa.Column("actor_id", sa.Uuid()),
        sa.Column("actor_type", sa.String(), nullable=False),
        _jsonb("payload", "{}"),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=NOW, nullable=False, index=True),
    )

    # Audit events are append-only
    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_audit_mutation() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'audit_events is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER audit_events_immutable
        BEFORE UPDATE OR DELETE ON audit_events
        FOR EACH ROW EXECUTE FUNCTION prevent_audit_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS audit_events_immutable ON audit_events")
    op.execute("DROP FUNCTION IF EXISTS prevent_audit_mutation()")
    for table in reversed(TABLES):
        op.drop_table(table)
