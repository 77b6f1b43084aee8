"""004: create decryption_tickets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE decryption_tickets (
            id            VARCHAR(32)     PRIMARY KEY,
            handle_ct     VARCHAR(96)     NOT NULL,
            requester     VARCHAR(128)    NOT NULL,
            order_id      BIGINT,
            field         VARCHAR(32),
            status        VARCHAR(20)     NOT NULL DEFAULT 'REQUESTED',
            requested_at  BIGINT          NOT NULL,
            completed_at  BIGINT,
            CONSTRAINT ck_decryption_tickets_status CHECK (
                status IN ('REQUESTED', 'FULFILLED', 'CONSUMED')
            ),
            CONSTRAINT ck_decryption_tickets_completed CHECK (
                (status = 'CONSUMED') = (completed_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_decryption_tickets_requester ON decryption_tickets (requester);")
    op.execute(
        "COMMENT ON TABLE decryption_tickets IS "
        "'Two-phase decryption ticket lifecycle; plaintexts are never stored';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS decryption_tickets;")
