"""FastAPI application entry point for the multisig custody service.

Run with ``uvicorn multisig_custody.api.main:app``; settings come from the
environment. Tests call ``create_app`` with a prepared container.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from structlog import get_logger

from multisig_custody import __version__
from multisig_custody.api.middleware.logging_middleware import LoggingMiddleware
from multisig_custody.api.middleware.problem_details import categorized_error_handler
from multisig_custody.api.routes import accounts_router, health_router, transactions_router
from multisig_custody.bootstrap.container import MultisigContainer, build_container
from multisig_custody.bootstrap.database import create_schema
from multisig_custody.bootstrap.logging import configure_structlog
from multisig_custody.config.multisig_config import MultisigSettings
from multisig_custody.domain.errors.base import CategorizedError

logger = get_logger()


def create_app(
    settings: MultisigSettings | None = None,
    container: MultisigContainer | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Defaults to ``MultisigSettings.from_environment()``.
        container: Pre-built services; closed on shutdown like one built here.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        resolved = container or build_container(settings or MultisigSettings.from_environment())
        configure_structlog(resolved.settings.environment)
        if resolved.engine is not None:
            await create_schema(resolved.engine)
        app.state.container = resolved
        logger.info("multisig_api_started", network=resolved.settings.network)
        try:
            yield
        finally:
            await resolved.close()
            logger.info("multisig_api_stopped")

    app = FastAPI(
        title="Multisig Custody API",
        description="M-of-N transaction coordination for Nervos CKB",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(CategorizedError, categorized_error_handler)
    app.include_router(health_router)
    app.include_router(accounts_router)
    app.include_router(transactions_router)
    return app


app = create_app()
