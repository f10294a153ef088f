"""SQLAlchemy Core table definitions for multisig custody.

Uniqueness enforced by the schema:
- signer: (account_address, signer_address)
- invite: (account_address, signer_address)
- signature: (tx_id, signer_address, attempt)
- rejection: (tx_id, signer_address)
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

ADDRESS = String(255)
TX_ID = String(66)

accounts = Table(
    "multisig_accounts",
    metadata,
    Column("address", ADDRESS, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("threshold", SmallInteger, nullable=False),
    Column("signer_count", SmallInteger, nullable=False),
    Column("config_blob", LargeBinary, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

signers = Table(
    "multisig_signers",
    metadata,
    Column(
        "account_address",
        ADDRESS,
        ForeignKey("multisig_accounts.address"),
        primary_key=True,
    ),
    Column("signer_address", ADDRESS, primary_key=True, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

invites = Table(
    "multisig_invites",
    metadata,
    Column(
        "account_address",
        ADDRESS,
        ForeignKey("multisig_accounts.address"),
        primary_key=True,
    ),
    Column("signer_address", ADDRESS, primary_key=True, index=True),
    Column("status", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

transactions = Table(
    "multisig_transactions",
    metadata,
    Column("tx_id", TX_ID, primary_key=True),
    Column(
        "account_address",
        ADDRESS,
        ForeignKey("multisig_accounts.address"),
        nullable=False,
        index=True,
    ),
    Column("payload", Text, nullable=False),
    Column("status", String(16), nullable=False, index=True),
    Column("attempt", Integer, nullable=False, default=1),
    Column("broadcast_claimed", Boolean, nullable=False, default=False),
    Column("claimed_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

signatures = Table(
    "multisig_signatures",
    metadata,
    Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
    Column("tx_id", TX_ID, ForeignKey("multisig_transactions.tx_id"), nullable=False),
    Column("signer_address", ADDRESS, nullable=False),
    Column("signature", LargeBinary, nullable=False),
    Column("attempt", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tx_id", "signer_address", "attempt", name="uq_signature_per_attempt"),
)

rejections = Table(
    "multisig_rejections",
    metadata,
    Column(
        "tx_id", TX_ID, ForeignKey("multisig_transactions.tx_id"), primary_key=True
    ),
    Column("signer_address", ADDRESS, primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

transaction_errors = Table(
    "multisig_transaction_errors",
    metadata,
    Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
    Column("tx_id", TX_ID, ForeignKey("multisig_transactions.tx_id"), nullable=False, index=True),
    Column("actor", ADDRESS, nullable=False),
    Column("message", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from drivers that drop it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
