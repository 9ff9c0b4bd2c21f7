import logging
from contextlib import contextmanager

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blobsync.models.requests import ErrorResponse
from blobsync.shared import Logger
from blobsync.storage import CancelledError, KeyValidationError, StoreError

__all__ = ["error_envelope_handler", "store_error_handler"]

logger = Logger(__name__, level=logging.DEBUG).get_logger()


@contextmanager
def store_error_handler(status_code: int, detail: str, stacklevel=1):
    """Translate store failures raised in the block into HTTP errors.

    Invalid keys map to 400 and cancelled calls to 503; every other
    :class:`StoreError` becomes ``status_code`` with ``detail``.
    """
    # Go 3 levels up to escape @contextmanager methods and current function
    stack_level = 2 + stacklevel
    kw = {"stacklevel": stack_level}
    try:
        yield

    except KeyValidationError as e:
        logger.warning("Rejected key: %s", e, **kw)
        raise HTTPException(status_code=400, detail=f"Bad Request: {e}") from e

    except CancelledError as e:
        logger.warning("Store call cancelled: %s", e, **kw)
        raise HTTPException(
            status_code=503, detail="Service Unavailable: request cancelled"
        ) from e

    except StoreError as e:
        logger.error("Failed to process request: %s", e, **kw)
        raise HTTPException(status_code=status_code, detail=detail) from e


async def error_envelope_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render every HTTP error as ``{"action": "error", "reason": ...}``."""
    body = ErrorResponse(reason=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )
