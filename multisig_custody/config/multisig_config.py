"""Multisig custody settings.

Environment Variables:
- CKB_NETWORK: ``mainnet`` or ``testnet`` (default: testnet)
- CKB_RPC_URL: CKB node JSON-RPC endpoint (default: http://127.0.0.1:8114)
- CKB_RPC_TIMEOUT_SECONDS: Per-request timeout for node calls (default: 10.0)
- CKB_MULTISIG_CODE_HASH: 32-byte hex type hash of the multisig lock
  deployment (default: the network profile's)
- DATABASE_URL: PostgreSQL connection string; empty means no database
- SQLALCHEMY_ECHO: Echo SQL statements (default: false)
- ENVIRONMENT: ``production`` for JSON logs, anything else for console
- TRANSACTION_PAGE_LIMIT_MAX: Largest page a listing returns (default: 100)
- BROADCAST_CLAIM_LEASE_SECONDS: How long a broadcast claim blocks other
  writers before it counts as abandoned (default: 120.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from multisig_custody.domain.models.network import NetworkProfile, get_network

DEFAULT_RPC_URL = "http://127.0.0.1:8114"


def _get_str_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def normalize_database_url(url: str) -> str:
    """Convert a PostgreSQL URL to the asyncpg dialect.

    URLs that already name a driver (``sqlite+aiosqlite://``,
    ``postgresql+asyncpg://``) are returned unchanged.
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if "://" not in url:
        return f"postgresql+asyncpg://{url}"
    return url


def _parse_code_hash(value: str) -> bytes:
    text = value[2:] if value[:2].lower() == "0x" else value
    try:
        code_hash = bytes.fromhex(text)
    except ValueError:
        raise ValueError(f"CKB_MULTISIG_CODE_HASH is not hex: {value!r}") from None
    if len(code_hash) != 32:
        raise ValueError(
            f"CKB_MULTISIG_CODE_HASH must be 32 bytes, got {len(code_hash)}"
        )
    return code_hash


@dataclass(frozen=True)
class MultisigSettings:
    """Deployment settings for the custody service.

    Attributes:
        network: ``mainnet`` or ``testnet``.
        rpc_url: CKB node JSON-RPC endpoint.
        rpc_timeout_seconds: Upper bound for every node request.
        multisig_code_hash: Override for the multisig lock type hash, or
            None to use the network default.
        database_url: SQLAlchemy async URL, or empty for none.
        sqlalchemy_echo: Log every SQL statement.
        environment: Selects the log renderer.
        max_page_limit: Largest page size a listing returns.
        claim_lease_seconds: Lease on a broadcast claim; a claim older than
            this is taken to belong to a crashed process.
    """

    network: str = "testnet"
    rpc_url: str = DEFAULT_RPC_URL
    rpc_timeout_seconds: float = 10.0
    multisig_code_hash: bytes | None = None
    database_url: str = ""
    sqlalchemy_echo: bool = False
    environment: str = "development"
    max_page_limit: int = 100
    claim_lease_seconds: float = 120.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        get_network(self.network)
        if self.rpc_timeout_seconds <= 0:
            raise ValueError(
                f"rpc_timeout_seconds must be positive, got {self.rpc_timeout_seconds}"
            )
        if self.max_page_limit < 1:
            raise ValueError(
                f"max_page_limit must be at least 1, got {self.max_page_limit}"
            )
        if self.claim_lease_seconds <= 0:
            raise ValueError(
                f"claim_lease_seconds must be positive, got {self.claim_lease_seconds}"
            )
        if self.multisig_code_hash is not None and len(self.multisig_code_hash) != 32:
            raise ValueError("multisig_code_hash must be 32 bytes")

    @property
    def network_profile(self) -> NetworkProfile:
        """Network profile with the multisig override applied."""
        profile = get_network(self.network)
        if self.multisig_code_hash is not None:
            return profile.with_multisig_code_hash(self.multisig_code_hash)
        return profile

    @property
    def claim_lease(self) -> timedelta:
        return timedelta(seconds=self.claim_lease_seconds)

    @classmethod
    def from_environment(cls) -> MultisigSettings:
        """Create settings from environment variables with defaults.

        Numeric values that do not parse fall back to their defaults.

        Raises:
            ValueError: If the network is unknown or the code hash override
                is malformed.
        """
        code_hash = os.environ.get("CKB_MULTISIG_CODE_HASH", "").strip()
        database_url = _get_str_env("DATABASE_URL", "")
        return cls(
            network=_get_str_env("CKB_NETWORK", "testnet").lower(),
            rpc_url=_get_str_env("CKB_RPC_URL", DEFAULT_RPC_URL),
            rpc_timeout_seconds=_get_float_env("CKB_RPC_TIMEOUT_SECONDS", 10.0),
            multisig_code_hash=_parse_code_hash(code_hash) if code_hash else None,
            database_url=normalize_database_url(database_url) if database_url else "",
            sqlalchemy_echo=_get_bool_env("SQLALCHEMY_ECHO", False),
            environment=_get_str_env("ENVIRONMENT", "development").lower(),
            max_page_limit=_get_int_env("TRANSACTION_PAGE_LIMIT_MAX", 100),
            claim_lease_seconds=_get_float_env("BROADCAST_CLAIM_LEASE_SECONDS", 120.0),
        )


# Settings used by tests: in-memory SQLite and the testnet profile
TEST_MULTISIG_SETTINGS = MultisigSettings(
    network="testnet",
    database_url="sqlite+aiosqlite://",
    environment="test",
    max_page_limit=50,
)
