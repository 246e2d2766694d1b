"""Uniform JSON response envelope."""

from datetime import datetime
from typing import Any, Optional

import pytz
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200,
    success: bool = True,
) -> JSONResponse:
    """Build a ``{success, message, data?, timestamp}`` response.

    Args:
        message: Human-readable message.
        data: Payload; omitted from the body when None.
        status_code: HTTP status code.
        success: Whether the operation succeeded.

    Returns:
        JSONResponse carrying the envelope.
    """
    body = {
        "success": success,
        "message": message,
        "timestamp": datetime.now(pytz.utc).isoformat(),
    }
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=body)
