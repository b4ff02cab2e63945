"""Initial repair shop schema

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20260301_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_name", sa.String(255), nullable=False),
        sa.Column("owner_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("security_pin_hash", sa.String(255), nullable=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("custom_rule", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("subscription_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_expire", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_plan", sa.String(120), nullable=False, server_default="trial"),
        sa.Column("subscription_class", sa.String(32), nullable=False, server_default="Basic"),
        sa.Column("max_staff_allowed", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("max_staff_allowed >= 1", name="ck_shops_max_staff_min"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shops", schema=None) as batch_op:
        batch_op.create_index("ix_shops_phone", ["phone"], unique=True)
        batch_op.create_index("ix_shops_email", ["email"], unique=True)
        batch_op.create_index("ix_shops_is_active", ["is_active"], unique=False)
        batch_op.create_index("ix_shops_subscription_expire", ["subscription_expire"], unique=False)

    op.create_table(
        "shop_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("plan_name", sa.String(120), nullable=True),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shop_payments", schema=None) as batch_op:
        batch_op.create_index("ix_shop_payments_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_shop_payments_shop_date", ["shop_id", "date"], unique=False)

    op.create_table(
        "owner_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(96), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("telegram_chat_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("owner_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_owner_tokens_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_owner_tokens_telegram_chat_id", ["telegram_chat_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("shop_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=True)
        batch_op.create_index("ix_users_shop_id", ["shop_id"], unique=False)

    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="Technician"),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("staff", schema=None) as batch_op:
        batch_op.create_index("ix_staff_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_staff_shop_created", ["shop_id", "created_at"], unique=False)

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_no", sa.String(32), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=False),
        sa.Column("device_model", sa.String(255), nullable=False),
        sa.Column("imei_or_sn", sa.String(64), nullable=False, server_default=""),
        sa.Column("color", sa.String(64), nullable=False, server_default=""),
        sa.Column("issue", sa.Text(), nullable=False),
        sa.Column("parts_cost", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("service_fee", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reserves", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("final_cost", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("profit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("checkout_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("assigned_technician_id", sa.Integer(), nullable=True),
        sa.Column("customer_chat_id", sa.String(64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["assigned_technician_id"], ["staff.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_no"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("jobs", schema=None) as batch_op:
        batch_op.create_index("ix_jobs_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_jobs_status", ["status"], unique=False)
        batch_op.create_index("ix_jobs_assigned_technician_id", ["assigned_technician_id"], unique=False)
        batch_op.create_index("ix_jobs_shop_created", ["shop_id", "created_at"], unique=False)
        batch_op.create_index("ix_jobs_shop_locked_checkout", ["shop_id", "is_locked", "checkout_date"], unique=False)

    op.create_table(
        "job_timeline_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("job_timeline_entries", schema=None) as batch_op:
        batch_op.create_index("ix_job_timeline_entries_job_id", ["job_id"], unique=False)

    op.create_table(
        "job_status_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("from_status", sa.String(16), nullable=True),
        sa.Column("to_status", sa.String(16), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by_user_id", sa.Integer(), nullable=True),
        sa.Column("updated_by_name", sa.String(255), nullable=False, server_default="System"),
        sa.Column("source", sa.String(32), nullable=False, server_default="manual"),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("job_status_logs", schema=None) as batch_op:
        batch_op.create_index("ix_job_status_logs_job_id", ["job_id"], unique=False)

    op.create_table(
        "subscription_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(8), nullable=False, server_default="MMK"),
        sa.Column("duration_days", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("max_staff_allowed", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_popular", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="ck_plans_price_nonneg"),
        sa.CheckConstraint("duration_days >= 1", name="ck_plans_duration_min"),
        sa.CheckConstraint("max_staff_allowed >= 1", name="ck_plans_max_staff_min"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("subscription_plans", schema=None) as batch_op:
        batch_op.create_index("ix_plans_active_sort", ["is_active", "sort_order"], unique=False)

    op.create_table(
        "invoice_vouchers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("voucher_no", sa.String(64), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("plan_name", sa.String(120), nullable=False),
        sa.Column("max_staffs", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(8), nullable=False, server_default="MMK"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.CheckConstraint("amount >= 0", name="ck_invoice_vouchers_amount_nonneg"),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("voucher_no"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("invoice_vouchers", schema=None) as batch_op:
        batch_op.create_index("ix_invoice_vouchers_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_invoice_vouchers_shop_issued", ["shop_id", "issued_at"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False, server_default=""),
        sa.Column("expense_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_expenses_amount_nonneg"),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("expenses", schema=None) as batch_op:
        batch_op.create_index("ix_expenses_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_expenses_shop_date", ["shop_id", "expense_date"], unique=False)

    op.create_table(
        "suggestions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("frequency", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type", "value", name="uq_suggestions_type_value"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("suggestions")
    op.drop_table("expenses")
    op.drop_table("invoice_vouchers")
    op.drop_table("subscription_plans")
    op.drop_table("job_status_logs")
    op.drop_table("job_timeline_entries")
    op.drop_table("jobs")
    op.drop_table("staff")
    op.drop_table("users")
    op.drop_table("owner_tokens")
    op.drop_table("shop_payments")
    op.drop_table("shops")
