from http import HTTPStatus
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .schemas import ErrorJSON, ResponseJSON

INTERNAL_ERROR = "Internal Server Error"


def status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def build_envelope(code: int, message: str = "", data: Any = None, error: Optional[ErrorJSON] = None) -> dict:
    """
    Fill in the envelope defaults: 2xx gets "SUCCESS" and no error object;
    anything else always carries an error object and defaults to "FAIL".
    """
    body = ResponseJSON(status=code, message=message, data=jsonable_encoder(data), error=error)
    if 200 <= code <= 299:
        if not body.message:
            body.message = "SUCCESS"
    else:
        if body.error is None:
            text = status_text(code)
            body.error = ErrorJSON(message=text, reason="", error_user_title=text, error_user_msg=text)
        if not body.error.error_user_title:
            body.error.error_user_title = status_text(code)
        if not body.error.error_user_msg:
            body.error.error_user_msg = body.error.error_user_title
        if not body.message:
            body.message = "FAIL"
    if body.error is None:
        return body.model_dump(exclude={"error"})
    return body.model_dump()


def write_response(
    code: int,
    message: str = "",
    data: Any = None,
    error: Optional[ErrorJSON] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=code, content=build_envelope(code, message, data, error), headers=headers)
