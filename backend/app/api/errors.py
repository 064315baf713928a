from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import Err, ErrorKind, OperationFailed, Result
from app.core.metrics import record_team_operation


def unwrap(result: Result, operation: str | None = None):
    """Return the value of an Ok result or raise the Err for the handler below."""
    if operation:
        record_team_operation(operation, result.kind.value if isinstance(result, Err) else "ok")
    if isinstance(result, Err):
        raise OperationFailed(result)
    return result.value


def error_response(error: Err) -> JSONResponse:
    response = JSONResponse(status_code=error.status_code, content=error.to_payload())
    response.headers["X-Error-Code"] = error.kind.value
    if error.kind == ErrorKind.UNAUTHORIZED:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


def handle_operation_failed(_request: Request, exc: OperationFailed) -> JSONResponse:
    return error_response(exc.error)


def handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Submitted values are left out; they may hold passwords or tokens.
    errors = [
        {"type": error["type"], "loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
        for error in exc.errors()
    ]
    return error_response(Err(ErrorKind.VALIDATION, details={"errors": errors}))
