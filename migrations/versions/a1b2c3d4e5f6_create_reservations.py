"""create reservations, availability_overrides, audit_logs

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


ACTIVE_ROWS = sa.text("status IN ('pending', 'booked')")


def upgrade():
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("program", sa.String(length=20), nullable=False),
        sa.Column("slot", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("exclusivity_key", sa.String(length=20), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("verify_token_hash", sa.String(length=128), nullable=True),
        sa.Column("verify_expires_at", sa.DateTime(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(), nullable=True),
        sa.Column("name", sa.String(length=191), nullable=False),
        sa.Column("last_name", sa.String(length=191), nullable=True),
        sa.Column("first_name", sa.String(length=191), nullable=True),
        sa.Column("kana", sa.String(length=191), nullable=True),
        sa.Column("email", sa.String(length=191), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("contact", sa.String(length=191), nullable=True),
        sa.Column("notebook_type", sa.String(length=32), nullable=True),
        sa.Column("has_certificate", sa.Boolean(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("mirror_post_id", sa.Integer(), nullable=True),
        sa.Column("mirror_sync_status", sa.String(length=20), nullable=True),
        sa.Column("mirror_synced_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("reservations", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_reservations_date"), ["date"], unique=False)
        batch_op.create_index(batch_op.f("ix_reservations_status"), ["status"], unique=False)
        batch_op.create_index(batch_op.f("ix_reservations_end_at"), ["end_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_reservations_verify_token_hash"), ["verify_token_hash"], unique=False)
        batch_op.create_index(batch_op.f("ix_reservations_verify_expires_at"), ["verify_expires_at"], unique=False)

    # one active (pending/booked) reservation per program + date + key
    op.create_index(
        "uq_reservations_active",
        "reservations",
        ["program", "date", "exclusivity_key"],
        unique=True,
        sqlite_where=ACTIVE_ROWS,
        postgresql_where=ACTIVE_ROWS,
    )

    op.create_table(
        "availability_overrides",
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("open", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("date"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor", sa.String(length=80), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity", sa.String(length=80), nullable=True),
        sa.Column("entity_id", sa.String(length=80), nullable=True),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("availability_overrides")

    op.drop_index("uq_reservations_active", table_name="reservations")
    with op.batch_alter_table("reservations", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_reservations_verify_expires_at"))
        batch_op.drop_index(batch_op.f("ix_reservations_verify_token_hash"))
        batch_op.drop_index(batch_op.f("ix_reservations_end_at"))
        batch_op.drop_index(batch_op.f("ix_reservations_status"))
        batch_op.drop_index(batch_op.f("ix_reservations_date"))

    op.drop_table("reservations")
