"""Initial reservation schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="enseignant"),
        sa.CheckConstraint("role IN ('enseignant', 'admin')", name="ck_user_role"),
    )

    op.create_table(
        "filieres",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
    )

    op.create_table(
        "creneaux",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("weekday", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.CheckConstraint(
            "weekday IN ('Lundi', 'Mardi', 'Mercredi', 'Jeudi', 'Vendredi')",
            name="ck_slot_weekday",
        ),
        sa.CheckConstraint("end_time > start_time", name="ck_slot_end_after_start"),
        sa.UniqueConstraint("weekday", "start_time", "end_time", name="uq_slot_window"),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "filiere_id", sa.String(length=36), sa.ForeignKey("filieres.id"), nullable=False
        ),
        sa.Column("slot_id", sa.String(length=36), sa.ForeignKey("creneaux.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("axis", sa.String(length=200)),
        sa.Column("room", sa.String(length=50)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "slot_id", "date", "filiere_id", name="uq_reservation_slot_date_filiere"
        ),
    )
    op.create_index("ix_reservations_date", "reservations", ["date"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_reservations_user_id", table_name="reservations")
    op.drop_index("ix_reservations_date", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("creneaux")
    op.drop_table("filieres")
    op.drop_table("users")
