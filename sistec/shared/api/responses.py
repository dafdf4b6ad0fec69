"""
Response Envelope
=================

Every endpoint answers with the same body shape::

    {"status": 200, "message": "Chamado aprovado", "data": {...}}
"""

from typing import Any, Generic, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope schema, used for OpenAPI documentation."""
    status: int
    message: str
    data: Optional[T] = None


def envelope(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Build a JSONResponse wrapped in the standard envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_code,
            "message": message,
            "data": jsonable_encoder(data),
        },
    )
