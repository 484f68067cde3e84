from typing import Any
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from infrastructure.config import settings
from infrastructure.logging.logger import get_logger
from infrastructure.response import ResponseModel

logger = get_logger("exception_handler")


class BusinessException(Exception):
    """Expected domain failure (unknown vehicle, lot full, ...)."""
    def __init__(self, message: str, status_code: int = 400, code: int = 400, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.detail = detail


async def global_exception_handler(request: Request, exc: Exception):
    """Map exceptions to the response envelope."""
    if isinstance(exc, BusinessException):
        logger.warning(f"BusinessError: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=ResponseModel.fail(code=exc.code, message=exc.message, data=exc.detail)
        )

    if isinstance(exc, RequestValidationError):
        logger.error(f"ValidationError: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ResponseModel.fail(code=422, message="Invalid request parameters", data=exc.errors())
        )

    if isinstance(exc, ValueError):
        logger.warning(f"InvalidArgument: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ResponseModel.fail(code=400, message=str(exc))
        )

    if isinstance(exc, IntegrityError):
        logger.error(f"IntegrityError: {exc.orig if exc.orig is not None else exc}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ResponseModel.fail(code=409, message="Data conflict")
        )

    if isinstance(exc, SQLAlchemyError):
        logger.critical(f"DatabaseError: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ResponseModel.fail(code=500, message="Service temporarily unavailable")
        )

    logger.opt(exception=True).error(f"UncaughtException: {exc}")
    trace_id = getattr(request.state, "trace_id", "unknown")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ResponseModel.fail(
            code=500,
            message="System busy, please try again later",
            data={"trace_id": trace_id} if settings.DEBUG else None
        )
    )
