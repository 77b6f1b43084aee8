"""002: create order_fills table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE order_fills (
            order_id    BIGINT          NOT NULL REFERENCES encrypted_orders (id),
            sequence    INT             NOT NULL,
            size_ct     VARCHAR(96)     NOT NULL,
            price_ct    VARCHAR(96)     NOT NULL,
            filled_at   BIGINT          NOT NULL,
            PRIMARY KEY (order_id, sequence),
            CONSTRAINT ck_order_fills_sequence CHECK (sequence >= 1)
        );
    """)
    op.execute("COMMENT ON TABLE order_fills IS 'Append-only fill records, sizes and prices encrypted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_fills;")
