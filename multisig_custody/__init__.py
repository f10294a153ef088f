"""
Multisig Custody - M-of-N transaction coordination for Nervos CKB

A group of signer identities agrees on a threshold; transfers out of the
shared account collect partial signatures until the threshold is met and
are then broadcast to the chain.

Core guarantees:
- Account addresses are derived deterministically from the ordered signer set
- Partial signatures accumulate into one witness without double-counting
- Every proposal moves through a checked lifecycle
  (PENDING -> COMMITTED / REJECTED / FAILED)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
