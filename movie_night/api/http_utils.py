from functools import wraps
from http import HTTPStatus
import logging

from fastapi import HTTPException

logger = logging.getLogger(__name__)


def handle_runtime_errors(mapping: dict[str, HTTPStatus]):
    """
    Переводит RuntimeError с «текстовыми кодами» в HTTPException.
    Пример mapping: {"dispatcher_not_ready": 503}
    """
    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except RuntimeError as e:
                msg = str(e)
                for key, status in mapping.items():
                    if key in msg:
                        raise HTTPException(status_code=status, detail=key)
                # нераспознанное: 500
                logger.exception("unhandled_runtime_error")
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail="internal_error")
        return wrapper
    return decorator
