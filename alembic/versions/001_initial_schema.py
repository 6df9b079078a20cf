"""Initial schema — users, agents, orders, queue, rotation state, notifications.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    # Users (owning accounts of agents and customers)
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        _timestamp("created_at"),
    )

    # Agents
    op.create_table(
        "agents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36), sa.ForeignKey("users.id"), unique=True, nullable=False
        ),
        sa.Column(
            "availability_status", sa.String(10), nullable=False, server_default="OFFLINE"
        ),
        sa.Column("current_order_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_order_capacity", sa.Integer, nullable=False, server_default="5"),
        _timestamp("created_at"),
        sa.CheckConstraint("current_order_count >= 0", name="ck_agents_load_non_negative"),
        sa.CheckConstraint("max_order_capacity > 0", name="ck_agents_capacity_positive"),
        sa.CheckConstraint(
            "current_order_count <= max_order_capacity",
            name="ck_agents_load_within_capacity",
        ),
    )
    op.create_index("idx_agents_availability", "agents", ["availability_status"])

    # Orders
    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("order_number", sa.String(40), unique=True, nullable=False),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PLACED"),
        sa.Column("agent_id", sa.String(36), sa.ForeignKey("agents.id"), nullable=True),
        _timestamp("assigned_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_agent_status", "orders", ["agent_id", "status"])

    # Order queue
    op.create_table(
        "order_queue",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        _timestamp("queued_at"),
        _timestamp("processed_at", nullable=True),
    )
    op.create_index(
        "uq_order_queue_live_order",
        "order_queue",
        ["order_id"],
        unique=True,
        postgresql_where=sa.text("processed_at IS NULL"),
    )
    op.create_index(
        "idx_order_queue_drain", "order_queue", ["processed_at", "priority", "queued_at"]
    )

    # Round Robin State
    op.create_table(
        "round_robin_state",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("rr_key", sa.String(200), unique=True, nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="-1"),
        _timestamp("updated_at"),
    )
    op.execute(
        "INSERT INTO round_robin_state (rr_key, position) VALUES ('order-distribution', -1)"
    )

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "related_order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("created_at"),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("round_robin_state")
    op.drop_table("order_queue")
    op.drop_table("orders")
    op.drop_table("agents")
    op.drop_table("users")
