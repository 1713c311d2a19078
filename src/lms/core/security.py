"""
Token Verification

Bearer tokens are issued by the external identity provider (Supabase Auth)
and signed with a shared secret. This module only verifies them.
"""

import logging
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from lms.core.config import settings

logger = logging.getLogger(__name__)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Verify a JWT and return its claims.

    Args:
        token: Encoded JWT string (without the "Bearer " prefix)

    Returns:
        The decoded claims, or None if the signature, expiry or audience
        check fails.
    """
    options = {"verify_aud": settings.supabase_jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.supabase_jwt_audience,
            options=options,
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        return None
