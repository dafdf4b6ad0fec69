"""
Shared API
==========

Middleware, exception handlers and the ``{status, message, data}`` envelope.
"""

from sistec.shared.api.responses import envelope, ApiResponse

__all__ = ["envelope", "ApiResponse"]
