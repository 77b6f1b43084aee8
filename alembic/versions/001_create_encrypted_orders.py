"""001: create encrypted_orders table

Revision ID: 001
Revises: 
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE encrypted_orders (
            id                       BIGINT          PRIMARY KEY,
            owner                    VARCHAR(128)    NOT NULL,
            pool                     VARCHAR(128)    NOT NULL,
            status                   VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            fill_count               INT             NOT NULL DEFAULT 0,
            direction_ct             VARCHAR(96)     NOT NULL,
            trigger_price_ct         VARCHAR(96)     NOT NULL,
            order_size_ct            VARCHAR(96)     NOT NULL,
            remaining_size_ct        VARCHAR(96)     NOT NULL,
            min_fill_size_ct         VARCHAR(96)     NOT NULL,
            partial_fill_allowed_ct  VARCHAR(96)     NOT NULL,
            expiration_time_ct       VARCHAR(96)     NOT NULL,
            is_active_ct             VARCHAR(96)     NOT NULL,
            placed_at                BIGINT          NOT NULL,
            changed_at               BIGINT          NOT NULL,
            created_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_encrypted_orders_status CHECK (
                status IN ('PENDING', 'PARTIALLY_FILLED', 'FILLED', 'CANCELLED', 'EXPIRED')
            ),
            CONSTRAINT ck_encrypted_orders_fill_count CHECK (fill_count >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_encrypted_orders_owner ON encrypted_orders (owner, id DESC);")
    op.execute("""
        CREATE INDEX idx_encrypted_orders_pool_open
        ON encrypted_orders (pool, id)
        WHERE status IN ('PENDING', 'PARTIALLY_FILLED');
    """)
    op.execute("""
        CREATE TRIGGER trg_encrypted_orders_updated_at
            BEFORE UPDATE ON encrypted_orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE encrypted_orders IS "
        "'Confidential limit orders: public metadata plus ciphertext references only';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS encrypted_orders CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
