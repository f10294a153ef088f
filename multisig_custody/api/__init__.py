"""HTTP surface for the multisig custody service."""
