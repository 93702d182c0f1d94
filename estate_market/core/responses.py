from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(
    data: Any = None,
    *,
    message: str = "OK",
    status_code: int = 200,
    meta: dict | None = None,
    success: bool = True,
) -> dict:
    body = {
        "success": success,
        "statusCode": status_code,
        "message": message,
        "data": data,
    }
    if meta is not None:
        body["meta"] = meta
    return body


def send_response(
    data: Any = None,
    *,
    message: str = "OK",
    status_code: int = 200,
    meta: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            envelope(data, message=message, status_code=status_code, meta=meta),
            by_alias=True,
        ),
    )


def send_error(
    message: str,
    *,
    status_code: int,
    errors: Any = None,
    stack: str | None = None,
) -> JSONResponse:
    body = envelope(None, message=message, status_code=status_code, success=False)
    if errors is not None:
        body["errors"] = errors
    if stack is not None:
        body["stack"] = stack
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
