# src/clo_order/infrastructure/db_models.py
"""SQLAlchemy ORM models for the audit trail (DDL reference only — queries use raw SQL).

Encrypted columns hold ciphertext references (``EUINT128:0x1a2b``), never
plaintexts. Timestamps written by the engine are unix seconds.
"""
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.clo_common.database import Base


class EncryptedOrderORM(Base):
    __tablename__ = "encrypted_orders"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    pool: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    fill_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    direction_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    trigger_price_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    order_size_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    remaining_size_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    min_fill_size_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    partial_fill_allowed_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    expiration_time_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    is_active_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    placed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    changed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class OrderFillORM(Base):
    __tablename__ = "order_fills"

    order_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True)
    size_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    price_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    filled_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class OrderEventORM(Base):
    __tablename__ = "order_events"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    order_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    pool: Mapped[str] = mapped_column(String(128), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fill_amount: Mapped[int | None] = mapped_column(Numeric(39, 0), nullable=True)
    occurred_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class DecryptionTicketORM(Base):
    """Ticket lifecycle only. Decrypted plaintexts are never written."""

    __tablename__ = "decryption_tickets"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    handle_ct: Mapped[str] = mapped_column(String(96), nullable=False)
    requester: Mapped[str] = mapped_column(String(128), nullable=False)
    order_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    field: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="REQUESTED")
    requested_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
