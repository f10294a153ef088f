"""Unit tests for MultisigSettings and its environment loading."""

from __future__ import annotations

import os
from datetime import timedelta
from unittest.mock import patch

import pytest

from multisig_custody.config.multisig_config import (
    DEFAULT_RPC_URL,
    TEST_MULTISIG_SETTINGS,
    MultisigSettings,
    normalize_database_url,
)
from multisig_custody.domain.models.network import LEGACY_MULTISIG_CODE_HASH

ENV_KEYS = (
    "CKB_NETWORK",
    "CKB_RPC_URL",
    "CKB_RPC_TIMEOUT_SECONDS",
    "CKB_MULTISIG_CODE_HASH",
    "DATABASE_URL",
    "SQLALCHEMY_ECHO",
    "ENVIRONMENT",
    "TRANSACTION_PAGE_LIMIT_MAX",
    "BROADCAST_CLAIM_LEASE_SECONDS",
)


def _clean_env(**values: str) -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    env.update(values)
    return env


class TestMultisigSettings:
    """Tests for the settings dataclass."""

    def test_defaults(self) -> None:
        settings = MultisigSettings()

        assert settings.network == "testnet"
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.database_url == ""
        assert settings.max_page_limit == 100
        assert settings.claim_lease == timedelta(minutes=2)
        assert settings.network_profile.hrp == "ckt"
        assert settings.network_profile.multisig_code_hash == LEGACY_MULTISIG_CODE_HASH

    def test_unknown_network_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown CKB network"):
            MultisigSettings(network="devnet")

    def test_non_positive_timeout_raises(self) -> None:
        with pytest.raises(ValueError, match="rpc_timeout_seconds"):
            MultisigSettings(rpc_timeout_seconds=0)

    def test_page_limit_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="max_page_limit"):
            MultisigSettings(max_page_limit=0)

    def test_claim_lease_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="claim_lease_seconds"):
            MultisigSettings(claim_lease_seconds=0)

    def test_code_hash_override_applied_to_profile(self) -> None:
        override = bytes.fromhex("ab" * 32)
        settings = MultisigSettings(network="mainnet", multisig_code_hash=override)

        profile = settings.network_profile

        assert profile.hrp == "ckb"
        assert profile.multisig_code_hash == override

    def test_test_settings_use_in_memory_sqlite(self) -> None:
        assert TEST_MULTISIG_SETTINGS.database_url.startswith("sqlite+aiosqlite")
        assert TEST_MULTISIG_SETTINGS.environment == "test"


class TestFromEnvironment:
    """Tests for MultisigSettings.from_environment."""

    def test_defaults_when_unset(self) -> None:
        with patch.dict(os.environ, _clean_env(), clear=True):
            settings = MultisigSettings.from_environment()

        assert settings == MultisigSettings()

    def test_reads_all_variables(self) -> None:
        env = _clean_env(
            CKB_NETWORK="MAINNET",
            CKB_RPC_URL="http://node:8114",
            CKB_RPC_TIMEOUT_SECONDS="2.5",
            CKB_MULTISIG_CODE_HASH="0x" + "cd" * 32,
            DATABASE_URL="postgresql://custody:secret@db/custody",
            SQLALCHEMY_ECHO="true",
            ENVIRONMENT="Production",
            TRANSACTION_PAGE_LIMIT_MAX="25",
            BROADCAST_CLAIM_LEASE_SECONDS="30",
        )
        with patch.dict(os.environ, env, clear=True):
            settings = MultisigSettings.from_environment()

        assert settings.network == "mainnet"
        assert settings.rpc_url == "http://node:8114"
        assert settings.rpc_timeout_seconds == 2.5
        assert settings.multisig_code_hash == bytes.fromhex("cd" * 32)
        assert settings.database_url == "postgresql+asyncpg://custody:secret@db/custody"
        assert settings.sqlalchemy_echo is True
        assert settings.environment == "production"
        assert settings.max_page_limit == 25
        assert settings.claim_lease == timedelta(seconds=30)

    def test_unparsable_numbers_fall_back(self) -> None:
        env = _clean_env(CKB_RPC_TIMEOUT_SECONDS="soon", TRANSACTION_PAGE_LIMIT_MAX="many")
        with patch.dict(os.environ, env, clear=True):
            settings = MultisigSettings.from_environment()

        assert settings.rpc_timeout_seconds == 10.0
        assert settings.max_page_limit == 100

    def test_unknown_network_raises(self) -> None:
        with patch.dict(os.environ, _clean_env(CKB_NETWORK="regtest"), clear=True):
            with pytest.raises(ValueError):
                MultisigSettings.from_environment()

    @pytest.mark.parametrize("value", ["0x1234", "not-hex"])
    def test_malformed_code_hash_raises(self, value: str) -> None:
        with patch.dict(os.environ, _clean_env(CKB_MULTISIG_CODE_HASH=value), clear=True):
            with pytest.raises(ValueError, match="CKB_MULTISIG_CODE_HASH"):
                MultisigSettings.from_environment()


class TestNormalizeDatabaseUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("sqlite+aiosqlite://", "sqlite+aiosqlite://"),
        ],
    )
    def test_normalizes(self, url: str, expected: str) -> None:
        assert normalize_database_url(url) == expected
