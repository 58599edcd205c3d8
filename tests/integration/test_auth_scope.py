"""Integration tests for the auth seam and membership lookups."""

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.ai.context import QueryScope
from backend.app.api.auth import get_auth_session, get_query_context
from backend.app.db.memberships import SqlMembershipReader, get_user
from tests.factories import ALICE, CAROL, NOBODY, ORG_A, ORG_B, ROOT

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_membership_reader_orders_by_membership_age(db_session: AsyncSession) -> None:
    reader = SqlMembershipReader(db_session)

    assert await reader.list_org_ids(CAROL) == [ORG_A, ORG_B]
    assert await reader.list_org_ids(ALICE) == [ORG_A]
    assert await reader.list_org_ids(NOBODY) == []


@pytest.mark.asyncio
async def test_get_user(db_session: AsyncSession) -> None:
    user = await get_user(db_session, ROOT)

    assert user is not None
    assert user.role == "superadmin"
    assert await get_user(db_session, "missing") is None


@pytest.mark.asyncio
async def test_auth_session_loads_user(db_session: AsyncSession) -> None:
    auth = await get_auth_session(authorization=f"Bearer {ALICE}:{ORG_A}", db=db_session)

    assert auth.user_id == ALICE
    assert auth.user_name == "Alice"
    assert auth.role == "user"
    assert auth.active_org_id == ORG_A


@pytest.mark.asyncio
async def test_unknown_user_is_unauthorized(db_session: AsyncSession) -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_auth_session(authorization="Bearer ghost", db=db_session)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_query_context_for_member(db_session: AsyncSession) -> None:
    auth = await get_auth_session(authorization=f"Bearer {CAROL}:{ORG_B}", db=db_session)

    ctx = await get_query_context(auth=auth, db=db_session)

    assert ctx.scope == QueryScope.ORG
    assert ctx.allowed_org_ids == (ORG_B, ORG_A)


@pytest.mark.asyncio
async def test_query_context_for_superadmin(db_session: AsyncSession) -> None:
    auth = await get_auth_session(authorization=f"Bearer {ROOT}", db=db_session)

    ctx = await get_query_context(auth=auth, db=db_session)

    assert ctx.scope == QueryScope.GLOBAL
    assert ctx.can_compare_orgs is True


@pytest.mark.asyncio
async def test_user_without_membership_is_unauthorized(db_session: AsyncSession) -> None:
    auth = await get_auth_session(authorization=f"Bearer {NOBODY}", db=db_session)

    with pytest.raises(HTTPException) as exc_info:
        await get_query_context(auth=auth, db=db_session)

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_active_org_outside_membership_is_unauthorized(db_session: AsyncSession) -> None:
    auth = await get_auth_session(authorization=f"Bearer {ALICE}:{ORG_B}", db=db_session)

    with pytest.raises(HTTPException) as exc_info:
        await get_query_context(auth=auth, db=db_session)

    assert exc_info.value.status_code == 401
