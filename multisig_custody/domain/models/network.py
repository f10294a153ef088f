"""Network profiles: address prefix and system script code hashes."""

from __future__ import annotations

from dataclasses import dataclass, replace

# Type hash of the legacy secp256k1_blake160_multisig_all deployment.
LEGACY_MULTISIG_CODE_HASH = bytes.fromhex(
    "5c5069eb0857efc65e1bca0c07df34c31663b3622fd3876c876320fc9634e2a8"
)
# Type hash of secp256k1_blake160_sighash_all.
SIGHASH_CODE_HASH = bytes.fromhex(
    "9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8"
)


@dataclass(frozen=True)
class NetworkProfile:
    """Constants that differ between CKB networks.

    Attributes:
        name: ``mainnet`` or ``testnet``.
        hrp: Address human-readable prefix (``ckb`` / ``ckt``).
        multisig_code_hash: Type hash of the multisig lock deployment.
        sighash_code_hash: Type hash of the single-signature lock.
    """

    name: str
    hrp: str
    multisig_code_hash: bytes = LEGACY_MULTISIG_CODE_HASH
    sighash_code_hash: bytes = SIGHASH_CODE_HASH

    def __post_init__(self) -> None:
        if len(self.multisig_code_hash) != 32:
            raise ValueError("multisig_code_hash must be 32 bytes")
        if len(self.sighash_code_hash) != 32:
            raise ValueError("sighash_code_hash must be 32 bytes")

    def with_multisig_code_hash(self, code_hash: bytes) -> NetworkProfile:
        """Return a copy using a different multisig deployment."""
        return replace(self, multisig_code_hash=code_hash)


MAINNET = NetworkProfile(name="mainnet", hrp="ckb")
TESTNET = NetworkProfile(name="testnet", hrp="ckt")

NETWORKS: dict[str, NetworkProfile] = {
    MAINNET.name: MAINNET,
    TESTNET.name: TESTNET,
}


def get_network(name: str) -> NetworkProfile:
    """Look up a network profile by name.

    Raises:
        ValueError: If the name is not a known network.
    """
    try:
        return NETWORKS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown CKB network {name!r}; expected one of {sorted(NETWORKS)}"
        ) from None
