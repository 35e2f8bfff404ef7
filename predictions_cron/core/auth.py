"""
Shared-secret authentication for cron triggers.

Cron callers send ``Authorization: Bearer <CRON_SECRET>``. When no secret
is configured the check is skipped entirely; that is an operational
choice for local development, and it is logged loudly in production.
"""
import hmac
from typing import Optional

from predictions_cron.core.exceptions import UnauthorizedError
from predictions_cron.core.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def expected_authorization(secret: str) -> str:
    """Header value a caller must present for ``secret``."""
    return f"{BEARER_PREFIX}{secret}"


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    """
    Check an Authorization header value against the cron secret.

    Args:
        authorization: Raw header value (may be None)
        secret: Configured secret, None when auth is disabled

    Returns:
        True if the request may proceed
    """
    if not secret:
        return True

    if not authorization:
        return False

    # Constant-time comparison to prevent timing attacks
    return hmac.compare_digest(
        authorization.encode("utf-8"),
        expected_authorization(secret).encode("utf-8")
    )


def verify_cron_secret(
    authorization: Optional[str],
    secret: Optional[str],
    production: bool = False,
) -> None:
    """
    Raise UnauthorizedError unless the trigger carries the cron secret.

    Args:
        authorization: Raw Authorization header value
        secret: Configured secret (None disables the check)
        production: Whether the service runs in production
    """
    if not secret:
        if production:
            logger.warning("CRON_SECRET not configured in production - cron endpoint is unauthenticated")
        else:
            logger.debug("CRON_SECRET not configured - skipping cron authorization")
        return

    if not is_authorized(authorization, secret):
        logger.warning(
            "Rejected cron trigger with invalid credentials",
            extra={"credential_present": authorization is not None},
        )
        raise UnauthorizedError()
