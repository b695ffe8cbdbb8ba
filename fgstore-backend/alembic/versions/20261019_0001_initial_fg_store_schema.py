"""initial fg store schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("display_name", sa.String(length=100), nullable=True),
            sa.Column("role", sa.String(length=50), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("showroom_id", sa.String(length=36), nullable=True),
            sa.Column("showroom_name", sa.String(length=120), nullable=True),
            sa.Column("showroom_code", sa.String(length=30), nullable=True),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_role", "users", ["role"], unique=False)
        op.create_index("ix_users_showroom_id", "users", ["showroom_id"], unique=False)
        op.create_index("ix_users_role_status", "users", ["role", "status"], unique=False)

    if not _table_exists(inspector, "audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("actor_user_id", sa.String(length=36), nullable=False),
            sa.Column("actor_role", sa.String(length=50), nullable=True),
            sa.Column("action", sa.String(length=100), nullable=False),
            sa.Column("target_type", sa.String(length=100), nullable=False),
            sa.Column("target_id", sa.String(length=120), nullable=True),
            sa.Column("metadata_json", sa.JSON(), nullable=True),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
        op.create_index("ix_audit_logs_target_id", "audit_logs", ["target_id"], unique=False)
        op.create_index("ix_audit_logs_action_created_at", "audit_logs", ["action", "created_at"], unique=False)
        op.create_index(
            "ix_audit_logs_target_created_at",
            "audit_logs",
            ["target_type", "target_id", "created_at"],
            unique=False,
        )

    if not _table_exists(inspector, "sales_requests"):
        op.create_table(
            "sales_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_type", sa.String(length=30), nullable=False, server_default="direct_representative"),
            sa.Column("requested_by", sa.String(length=36), nullable=True),
            sa.Column("requested_by_name", sa.String(length=120), nullable=True),
            sa.Column("requester_role", sa.String(length=50), nullable=True),
            sa.Column("items", sa.JSON(), nullable=True),
            sa.Column("product", sa.String(length=120), nullable=True),
            sa.Column("quantity", sa.JSON(), nullable=True),
            sa.Column("products", sa.JSON(), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="normal"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("shop_name", sa.String(length=120), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("approved_by", sa.String(length=36), nullable=True),
            sa.Column("approver_name", sa.String(length=120), nullable=True),
            sa.Column("approver_role", sa.String(length=50), nullable=True),
            sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("rejected_by", sa.String(length=36), nullable=True),
            sa.Column("rejection_reason", sa.String(length=255), nullable=True),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_sales_requests_requested_by", "sales_requests", ["requested_by"], unique=False)
        op.create_index(
            "ix_sales_requests_status_created_at",
            "sales_requests",
            ["status", "created_at"],
            unique=False,
        )
        op.create_index("ix_sales_requests_type_status", "sales_requests", ["request_type", "status"], unique=False)

    if not _table_exists(inspector, "sales_approval_history"):
        op.create_table(
            "sales_approval_history",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("request_type", sa.String(length=30), nullable=False),
            sa.Column("type", sa.String(length=40), nullable=False),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("total_quantity", sa.Float(), nullable=False),
            sa.Column("requester_id", sa.String(length=36), nullable=False),
            sa.Column("requester_name", sa.String(length=120), nullable=False),
            sa.Column("requester_role", sa.String(length=50), nullable=False),
            sa.Column("approved_by", sa.String(length=36), nullable=False),
            sa.Column("approver_name", sa.String(length=120), nullable=False),
            sa.Column("approver_role", sa.String(length=50), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False),
            sa.Column("notes", sa.Text(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("shop_name", sa.String(length=120), nullable=False),
            sa.Column("is_dispatched", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_completed_by_fg", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_sales_approval_history_request_id",
            "sales_approval_history",
            ["request_id"],
            unique=False,
        )
        op.create_index(
            "ix_sales_approval_history_dispatched_approved_at",
            "sales_approval_history",
            ["is_dispatched", "approved_at"],
            unique=False,
        )

    if not _table_exists(inspector, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("type", sa.String(length=50), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=True),
            sa.Column("message", sa.String(length=255), nullable=False),
            sa.Column("data", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=10), nullable=False, server_default="unread"),
            _created_at(),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)
        op.create_index(
            "ix_notifications_user_status_created_at",
            "notifications",
            ["user_id", "status", "created_at"],
            unique=False,
        )

    if not _table_exists(inspector, "direct_showrooms"):
        op.create_table(
            "direct_showrooms",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("code", sa.String(length=30), nullable=False),
            sa.Column("location", sa.String(length=255), nullable=False),
            sa.Column("city", sa.String(length=100), nullable=False),
            sa.Column("contact_number", sa.String(length=30), nullable=False, server_default=""),
            sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("manager_id", sa.String(length=36), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("opening_hours", sa.JSON(), nullable=False),
            sa.Column("target_sales", sa.Numeric(14, 2), nullable=False, server_default="0"),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.String(length=36), nullable=False),
            _created_at(),
            _updated_at(),
            sa.ForeignKeyConstraint(["manager_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code", name="uq_direct_showrooms_code"),
        )
        op.create_index("ix_direct_showrooms_manager_id", "direct_showrooms", ["manager_id"], unique=False)
        op.create_index(
            "ix_direct_showrooms_status_created_at",
            "direct_showrooms",
            ["status", "created_at"],
            unique=False,
        )

    if not _table_exists(inspector, "fg_inventory"):
        op.create_table(
            "fg_inventory",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("product_id", sa.String(length=60), nullable=False),
            sa.Column("product_name", sa.String(length=120), nullable=False),
            sa.Column("batch_number", sa.String(length=60), nullable=False),
            sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
            sa.Column("unit", sa.String(length=20), nullable=False),
            sa.Column("quality_grade", sa.String(length=1), nullable=False, server_default="A"),
            sa.Column("expiry_date", sa.Date(), nullable=True),
            sa.Column("location", sa.String(length=30), nullable=False),
            sa.Column("release_code", sa.String(length=20), nullable=False),
            sa.Column("received_from", sa.String(length=50), nullable=False),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("product_id", "batch_number", name="uq_fg_inventory_product_batch"),
        )
        op.create_index("ix_fg_inventory_product_id", "fg_inventory", ["product_id"], unique=False)
        op.create_index("ix_fg_inventory_product_name", "fg_inventory", ["product_name"], unique=False)
        op.create_index("ix_fg_inventory_location", "fg_inventory", ["location"], unique=False)

    if not _table_exists(inspector, "fg_packaged_inventory"):
        op.create_table(
            "fg_packaged_inventory",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("product_id", sa.String(length=60), nullable=False),
            sa.Column("product_name", sa.String(length=120), nullable=False),
            sa.Column("variant_name", sa.String(length=60), nullable=False),
            sa.Column("variant_size", sa.String(length=20), nullable=False),
            sa.Column("variant_unit", sa.String(length=20), nullable=False),
            sa.Column("batch_number", sa.String(length=60), nullable=False),
            sa.Column("units_in_stock", sa.Integer(), nullable=False),
            sa.Column("quality_grade", sa.String(length=1), nullable=False, server_default="A"),
            sa.Column("expiry_date", sa.Date(), nullable=True),
            sa.Column("location", sa.String(length=30), nullable=False),
            sa.Column("release_code", sa.String(length=20), nullable=False),
            sa.Column("received_from", sa.String(length=50), nullable=False),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(
                "product_id",
                "variant_name",
                "batch_number",
                name="uq_fg_packaged_inventory_product_variant_batch",
            ),
        )
        op.create_index("ix_fg_packaged_inventory_product_id", "fg_packaged_inventory", ["product_id"], unique=False)
        op.create_index(
            "ix_fg_packaged_inventory_product_name",
            "fg_packaged_inventory",
            ["product_name"],
            unique=False,
        )
        op.create_index("ix_fg_packaged_inventory_location", "fg_packaged_inventory", ["location"], unique=False)

    if not _table_exists(inspector, "fg_stock_movements"):
        op.create_table(
            "fg_stock_movements",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("movement_type", sa.String(length=3), nullable=False),
            sa.Column("category", sa.String(length=10), nullable=False),
            sa.Column("inventory_id", sa.String(length=36), nullable=False),
            sa.Column("product_id", sa.String(length=60), nullable=False),
            sa.Column("product_name", sa.String(length=120), nullable=False),
            sa.Column("variant_name", sa.String(length=60), nullable=True),
            sa.Column("batch_number", sa.String(length=60), nullable=False),
            sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
            sa.Column("reason", sa.String(length=100), nullable=False),
            sa.Column("reference_id", sa.String(length=36), nullable=True),
            sa.Column("created_by", sa.String(length=36), nullable=True),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_fg_stock_movements_inventory_id", "fg_stock_movements", ["inventory_id"], unique=False)
        op.create_index("ix_fg_stock_movements_created_at", "fg_stock_movements", ["created_at"], unique=False)
        op.create_index(
            "ix_fg_stock_movements_category_type_created_at",
            "fg_stock_movements",
            ["category", "movement_type", "created_at"],
            unique=False,
        )

    if not _table_exists(inspector, "fg_storage_locations"):
        op.create_table(
            "fg_storage_locations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("code", sa.String(length=30), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("capacity", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("description", sa.String(length=255), nullable=True),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code", name="uq_fg_storage_locations_code"),
        )

    if not _table_exists(inspector, "fg_dispatches"):
        op.create_table(
            "fg_dispatches",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("history_id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("release_code", sa.String(length=20), nullable=False),
            sa.Column("recipient_type", sa.String(length=30), nullable=False),
            sa.Column("recipient_id", sa.String(length=36), nullable=False),
            sa.Column("recipient_name", sa.String(length=120), nullable=False),
            sa.Column("shop_name", sa.String(length=120), nullable=True),
            sa.Column("dispatched_by", sa.String(length=36), nullable=False),
            sa.Column("dispatched_by_name", sa.String(length=120), nullable=False),
            sa.Column("dispatched_by_role", sa.String(length=50), nullable=False),
            sa.Column("notes", sa.Text(), nullable=False),
            sa.Column("total_items", sa.Integer(), nullable=False),
            sa.Column("total_quantity", sa.Integer(), nullable=False),
            sa.Column("total_value", sa.Numeric(14, 2), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="dispatched"),
            sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.ForeignKeyConstraint(["history_id"], ["sales_approval_history.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_fg_dispatches_history_id", "fg_dispatches", ["history_id"], unique=True)
        op.create_index("ix_fg_dispatches_request_id", "fg_dispatches", ["request_id"], unique=False)
        op.create_index(
            "ix_fg_dispatches_recipient_type_dispatched_at",
            "fg_dispatches",
            ["recipient_type", "dispatched_at"],
            unique=False,
        )

    if not _table_exists(inspector, "fg_dispatch_lines"):
        op.create_table(
            "fg_dispatch_lines",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("dispatch_id", sa.String(length=36), nullable=False),
            sa.Column("item_id", sa.String(length=120), nullable=False),
            sa.Column("item_name", sa.String(length=120), nullable=False),
            sa.Column("approved_qty", sa.Integer(), nullable=False),
            sa.Column("dispatch_qty", sa.Integer(), nullable=False),
            sa.Column("batch_id", sa.String(length=36), nullable=False),
            sa.Column("batch_number", sa.String(length=60), nullable=False),
            sa.Column("location", sa.String(length=30), nullable=False),
            sa.Column("inventory_type", sa.String(length=10), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["dispatch_id"], ["fg_dispatches.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_fg_dispatch_lines_dispatch_id", "fg_dispatch_lines", ["dispatch_id"], unique=False)

    if not _table_exists(inspector, "fg_product_pricing"):
        op.create_table(
            "fg_product_pricing",
            sa.Column("product_key", sa.String(length=120), nullable=False),
            sa.Column("product_id", sa.String(length=60), nullable=False),
            sa.Column("product_name", sa.String(length=120), nullable=True),
            sa.Column("variant_name", sa.String(length=60), nullable=True),
            sa.Column("price", sa.Numeric(12, 2), nullable=False),
            sa.Column("currency", sa.String(length=3), nullable=False),
            sa.Column("price_type", sa.String(length=20), nullable=False),
            sa.Column("effective_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("change_reason", sa.String(length=255), nullable=True),
            sa.Column("updated_by", sa.String(length=36), nullable=True),
            sa.Column("updated_by_name", sa.String(length=120), nullable=True),
            _created_at(),
            _updated_at(),
            sa.PrimaryKeyConstraint("product_key"),
        )
        op.create_index("ix_fg_product_pricing_product_id", "fg_product_pricing", ["product_id"], unique=False)

    if not _table_exists(inspector, "fg_price_history"):
        op.create_table(
            "fg_price_history",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("product_key", sa.String(length=120), nullable=False),
            sa.Column("product_id", sa.String(length=60), nullable=False),
            sa.Column("product_name", sa.String(length=120), nullable=True),
            sa.Column("previous_price", sa.Numeric(12, 2), nullable=False),
            sa.Column("new_price", sa.Numeric(12, 2), nullable=False),
            sa.Column("currency", sa.String(length=3), nullable=False),
            sa.Column("price_type", sa.String(length=20), nullable=False),
            sa.Column("change_reason", sa.String(length=255), nullable=True),
            sa.Column("changed_by", sa.String(length=36), nullable=True),
            sa.Column("changed_by_name", sa.String(length=120), nullable=True),
            sa.Column("effective_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_fg_price_history_product_key", "fg_price_history", ["product_key"], unique=False)
        op.create_index(
            "ix_fg_price_history_product_key_recorded_at",
            "fg_price_history",
            ["product_key", "recorded_at"],
            unique=False,
        )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in (
        "fg_price_history",
        "fg_product_pricing",
        "fg_dispatch_lines",
        "fg_dispatches",
        "fg_storage_locations",
        "fg_stock_movements",
        "fg_packaged_inventory",
        "fg_inventory",
        "direct_showrooms",
        "notifications",
        "sales_approval_history",
        "sales_requests",
        "audit_logs",
        "users",
    ):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
