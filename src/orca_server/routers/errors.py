"""Mapping of domain errors to HTTP errors."""

import logging

from fastapi import HTTPException, status

from orca_server.errors import (
    ExecutionNotFoundError,
    PlanNotFoundError,
    PlanValidationError,
    StageError,
    StepIndexError,
)

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """Convert an exception raised by a service into an HTTPException.

    Args:
        error: The exception raised while handling the request
        action: Short description of the failed action, used in logs

    Returns:
        HTTPException carrying the domain message as detail
    """
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, (PlanNotFoundError, ExecutionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))

    if isinstance(error, StageError):
        logger.warning(f"Failed to {action}: {error}")
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))

    if isinstance(error, (StepIndexError, PlanValidationError, ValueError)):
        logger.warning(f"Failed to {action}: {error}")
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    logger.error(f"Failed to {action}: {error}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )
