"""Configuration for the multisig custody service.

Available Configurations:
- MultisigSettings: network, CKB node, database and listing limits
"""

from multisig_custody.config.multisig_config import (
    TEST_MULTISIG_SETTINGS,
    MultisigSettings,
    normalize_database_url,
)

__all__ = [
    "MultisigSettings",
    "TEST_MULTISIG_SETTINGS",
    "normalize_database_url",
]
