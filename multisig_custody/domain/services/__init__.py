"""Pure domain services: address derivation and witness encoding."""

from multisig_custody.domain.services.address_codec import AddressCodec, DerivedAccount
from multisig_custody.domain.services.witness_encoder import (
    encode_signatures,
    placeholder_lock,
)

__all__ = ["AddressCodec", "DerivedAccount", "encode_signatures", "placeholder_lock"]
