"""Auth dependencies for the AI endpoints.

Stub implementation of the external auth provider: the bearer token carries
the user id and, optionally, the active organization id. Real session
validation belongs to the identity provider and is out of scope here.
"""

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.ai.context import QueryContext
from backend.app.ai.permissions import AuthSession, resolve_context
from backend.app.db.engine import get_session
from backend.app.db.memberships import SqlMembershipReader, get_user

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def parse_bearer_token(authorization: str | None) -> tuple[str, str | None]:
    """Split `Bearer <user_id>[:<active_org_id>]` into its parts.

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization:
        raise _unauthorized("Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Invalid authorization header format")

    token = authorization[7:].strip()  # Strip "Bearer "
    user_id, _, active_org_id = token.partition(":")
    if not user_id:
        raise _unauthorized("Invalid token format (expected user_id[:org_id])")

    return user_id, active_org_id or None


async def get_auth_session(
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_session),
) -> AuthSession:
    """Verify the bearer token and load the caller's user row.

    Raises:
        HTTPException: 401 if the token is invalid or the user is unknown
    """
    user_id, active_org_id = parse_bearer_token(authorization)

    user = await get_user(db, user_id)
    if user is None:
        raise _unauthorized("Unknown user")

    return AuthSession(
        user_id=user.id,
        user_name=user.name,
        role=user.role,
        active_org_id=active_org_id,
    )


async def get_query_context(
    auth: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_session),
) -> QueryContext:
    """Resolve the caller's query scope for this request.

    Raises:
        HTTPException: 401 if no usable scope exists
    """
    context = await resolve_context(auth, SqlMembershipReader(db))
    if context is None:
        logger.warning(f"No query scope for user_id={auth.user_id}")
        raise _unauthorized("No organization access")
    return context
