import logging
from functools import wraps

from fastapi import HTTPException, status
from pymongo.errors import PyMongoError

from common.errors import (
    ConfigurationError,
    ConstraintViolationError,
    DatabaseConnectionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def db_connection_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)

        except ValidationError as e:
            logger.info("Rejected write: %s", e)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=e.to_list(),
            )
        except ConstraintViolationError as e:
            logger.info("Rejected duplicate: %s", e)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"index": e.index, "key": e.key, "message": str(e)},
            )
        except (ConfigurationError, DatabaseConnectionError) as e:
            logger.error("MongoDB unavailable: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(e),
            )
        except PyMongoError as e:
            logger.error("MongoDB error: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"MongoDB operation failed: {e}",
            )

    return wrapper


def with_string_id(document: dict) -> dict:
    """Copy a MongoDB document with ``_id`` exposed as a string ``id``."""
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    if "event_id" in document:
        document["event_id"] = str(document["event_id"])
    return document
