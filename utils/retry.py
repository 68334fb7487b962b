import logging
from typing import Callable, Tuple, TypeVar

from google.api_core import exceptions as gexc

from services.errors import UnexpectedError

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Firestore errors that are worth a second attempt
TRANSIENT_ERRORS: Tuple[type, ...] = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.InternalServerError,
    gexc.Aborted,
    gexc.TooManyRequests,
)


def retry_once(
    operation: Callable[[], T],
    *,
    description: str = "storage operation",
    exceptions: Tuple[type, ...] = TRANSIENT_ERRORS,
) -> T:
    """
    Run `operation`, retrying a single time on a transient storage error.

    A second transient failure, or any other Google API error apart from
    NotFound, is raised as UnexpectedError.
    """
    try:
        return operation()
    except exceptions as e:
        logger.warning("%s failed (%s), retrying once", description, e)
    except gexc.NotFound:
        raise
    except gexc.GoogleAPICallError as e:
        logger.error("%s failed: %s", description, e)
        raise UnexpectedError(f"{description} failed") from e

    try:
        return operation()
    except gexc.NotFound:
        raise
    except gexc.GoogleAPICallError as e:
        logger.error("%s failed after retry: %s", description, e)
        raise UnexpectedError(f"{description} failed") from e
