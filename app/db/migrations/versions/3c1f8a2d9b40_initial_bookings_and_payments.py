from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c1f8a2d9b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # 1️⃣ Users (travellers, guides, admins share one table)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="traveller"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # 2️⃣ Catalog
    for table, label in (("activities", "title"), ("places", "name")):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(label, sa.String(), nullable=False),
            sa.Column("city", sa.String(), nullable=True),
            sa.Column("location", sa.String(), nullable=True),
            sa.Column("price", sa.Float(), nullable=True),
            sa.Column("base_price", sa.Float(), nullable=True),
            sa.Column("deleted", sa.Boolean(), server_default=sa.false()),
        )
        op.create_index(f"ix_{table}_id", table, ["id"])

    # 3️⃣ Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("place_id", sa.Integer(), nullable=True),
        sa.Column("activity_id", sa.Integer(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("time", sa.String(), nullable=True),
        sa.Column("participants", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("people_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("contact_kind", sa.String(), nullable=False, server_default="snapshot"),
        sa.Column("contact", sa.JSON(), nullable=False),
        sa.Column("special_requests", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("pricing", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="confirmed"),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("payment_id", sa.String(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    for column in ("id", "user_id", "place_id", "activity_id", "date", "status", "payment_status", "deleted"):
        op.create_index(f"ix_bookings_{column}", "bookings", [column])
    op.create_index("ix_bookings_user_created", "bookings", ["user_id", "created_at"])
    op.create_index("ix_bookings_status_payment", "bookings", ["status", "payment_status"])

    # 4️⃣ Payments (booking link lives in meta.bookingId, no FK)
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(), nullable=False, server_default="INR"),
        sa.Column("provider", sa.String(), nullable=False, server_default="razorpay"),
        sa.Column("status", sa.String(), nullable=False, server_default="created"),
        sa.Column("provider_ref", sa.String(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_provider_ref", "payments", ["provider_ref"], unique=True)


def downgrade():
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("places")
    op.drop_table("activities")
    op.drop_table("users")
