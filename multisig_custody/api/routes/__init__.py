"""API routers."""

from multisig_custody.api.routes.health import router as health_router
from multisig_custody.api.routes.multisig_accounts import router as accounts_router
from multisig_custody.api.routes.multisig_transactions import (
    router as transactions_router,
)

__all__ = ["accounts_router", "health_router", "transactions_router"]
