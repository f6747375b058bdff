"""
Storefront Backend — Shared API Dependencies
==============================================

What:  FastAPI dependencies resolving the services and settings that
       create_app() stored on `app.state`, and the admin gate.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.config import Settings
from storefront.exceptions import AuthenticationError, PermissionDeniedError
from storefront.security import decode_access_token
from storefront.services.category_service import CategoryService
from storefront.services.product_service import ProductService

# auto_error=False: a missing header becomes our AuthenticationError (401)
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Allow the request only for a valid bearer token with `is_admin: true`.

    Returns:
        The token claims.
    Raises:
        AuthenticationError (401): no token, or token invalid/expired
        PermissionDeniedError (403): valid token without the admin claim
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(message="Not authenticated")

    claims = decode_access_token(credentials.credentials, config)
    if claims.get("is_admin") is not True:
        raise PermissionDeniedError(context={"sub": claims.get("sub")})
    return claims
