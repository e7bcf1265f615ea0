"""API authentication using identity-provider bearer tokens"""
import logging
from dataclasses import dataclass, field
from typing import Optional
import httpx
from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from journal_api.config import settings
from journal_api.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

USERINFO_TIMEOUT = 5.0


@dataclass
class AuthenticatedUser:
    """Verified identity for one request"""
    user_id: str
    roles: list[str] = field(default_factory=list)


def _roles_from_claims(claims: dict) -> list[str]:
    roles = claims.get("cognito:groups") or claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return [str(role) for role in roles]


async def verify_token(token: str) -> AuthenticatedUser:
    """
    Resolve a bearer token to a user

    Dev tokens from AUTH_DEV_TOKENS are accepted as-is; anything else is
    checked against the identity provider's userinfo endpoint.

    Raises:
        AuthenticationError: If the token is rejected or cannot be verified
    """
    dev_user = settings.dev_tokens.get(token)
    if dev_user:
        logger.debug(f"Dev token accepted for user {dev_user}")
        return AuthenticatedUser(user_id=dev_user, roles=["dev"])

    if not settings.identity_userinfo_url:
        raise AuthenticationError("No identity provider configured - rejecting token")

    try:
        async with httpx.AsyncClient(timeout=USERINFO_TIMEOUT) as client:
            response = await client.get(
                settings.identity_userinfo_url,
                headers={"Authorization": f"Bearer {token}"}
            )
    except httpx.HTTPError as e:
        raise AuthenticationError("Identity provider unreachable", cause=e)

    if response.status_code != 200:
        raise AuthenticationError(f"Identity provider rejected token ({response.status_code})")

    try:
        claims = response.json()
    except ValueError as e:
        raise AuthenticationError("Identity provider returned malformed claims", cause=e)
    if not isinstance(claims, dict):
        raise AuthenticationError("Identity provider returned malformed claims")

    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Identity provider returned no subject")

    return AuthenticatedUser(user_id=user_id, roles=_roles_from_claims(claims))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> AuthenticatedUser:
    """
    FastAPI dependency yielding the authenticated user

    Raises:
        AuthenticationError: If the Authorization header is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return await verify_token(credentials.credentials)
