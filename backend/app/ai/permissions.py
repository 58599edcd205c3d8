"""Scope resolution: authenticated session -> QueryContext.

The session and membership data belong to the auth provider; this module only
reads them. Authorization failure is an expected outcome here, so
`resolve_context` returns None instead of raising.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from backend.app.ai.context import QueryContext, QueryScope

logger = logging.getLogger(__name__)

SUPERADMIN_ROLE = "superadmin"


@dataclass(frozen=True)
class AuthSession:
    """Verified session handle as exposed by the auth provider."""

    user_id: str
    user_name: str | None
    role: str | None
    active_org_id: str | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN_ROLE


class MembershipReader(Protocol):
    """Read-only accessor for organization memberships."""

    async def list_org_ids(self, user_id: str) -> list[str]:
        """Organization ids the user belongs to, oldest membership first."""
        ...


async def resolve_context(
    session: AuthSession, memberships: MembershipReader
) -> QueryContext | None:
    """Build the query context for a verified session.

    Superadmins get global scope. Everyone else is restricted to the
    organizations they are a member of; the active organization, when set,
    must be one of them and is listed first.

    Returns:
        QueryContext, or None when no usable scope exists
    """
    if session.is_superadmin:
        return QueryContext(
            scope=QueryScope.GLOBAL,
            allowed_org_ids=None,
            can_compare_orgs=True,
            caller_id=session.user_id,
            caller_display_name=session.user_name,
            active_org_id=session.active_org_id,
        )

    org_ids = await memberships.list_org_ids(session.user_id)
    if not org_ids:
        logger.info("No organization membership for user_id=%s", session.user_id)
        return None

    active_org_id = session.active_org_id
    if active_org_id is not None:
        if active_org_id not in org_ids:
            logger.warning(
                "Active organization %s is not a membership of user_id=%s",
                active_org_id,
                session.user_id,
            )
            return None
        org_ids = [active_org_id, *(o for o in org_ids if o != active_org_id)]

    return QueryContext(
        scope=QueryScope.ORG,
        allowed_org_ids=tuple(org_ids),
        can_compare_orgs=False,
        caller_id=session.user_id,
        caller_display_name=session.user_name,
        active_org_id=active_org_id,
    )


def can_access_org(context: QueryContext, org_id: str) -> bool:
    """Whether the caller may read data of `org_id`."""
    if context.allowed_org_ids is None:
        return True
    return org_id in context.allowed_org_ids


def can_query_cross_org(context: QueryContext) -> bool:
    """Whether the caller may run templates spanning several organizations."""
    return context.is_global and context.can_compare_orgs
