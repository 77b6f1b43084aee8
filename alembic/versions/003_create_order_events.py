"""003: create order_events table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE order_events (
            id            BIGSERIAL       PRIMARY KEY,
            event_type    VARCHAR(20)     NOT NULL,
            order_id      BIGINT          NOT NULL,
            pool          VARCHAR(128)    NOT NULL,
            owner         VARCHAR(128),
            fill_amount   NUMERIC(39, 0),
            occurred_at   BIGINT          NOT NULL,
            created_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_order_events_type CHECK (
                event_type IN ('ORDER_PLACED', 'ORDER_FILLED', 'ORDER_CANCELLED', 'ORDER_EXPIRED')
            ),
            CONSTRAINT ck_order_events_fill_amount CHECK (fill_amount IS NULL OR fill_amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_order_events_order ON order_events (order_id, id);")
    op.execute("CREATE INDEX idx_order_events_pool ON order_events (pool, occurred_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_events;")
