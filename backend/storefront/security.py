"""
Storefront Backend — Token Verification
=========================================

What:  Verifies HS256 bearer tokens and extracts the admin claim.
Who:   Used by `require_admin` in storefront.dependencies; tokens are
       issued by the account service, `create_access_token` exists for
       tooling and tests.

Token claims:
    sub:       user identifier
    is_admin:  true for accounts allowed to use the admin routes
    exp:       expiry (seconds since epoch)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from storefront.config import Settings
from storefront.exceptions import AuthenticationError


def create_access_token(
    data: Dict[str, Any],
    config: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT carrying `data` plus an expiry."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Settings) -> Dict[str, Any]:
    """
    Verify signature and expiry, return the claims.

    Raises:
        AuthenticationError for any invalid or expired token.
    """
    try:
        return jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(context={"reason": str(e)})
