"""HTTP middleware and exception handlers."""

from multisig_custody.api.middleware.logging_middleware import LoggingMiddleware
from multisig_custody.api.middleware.problem_details import categorized_error_handler

__all__ = ["LoggingMiddleware", "categorized_error_handler"]
