"""Membership and user lookups backing the auth seam."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Member, User


class SqlMembershipReader:
    """SQL implementation of MembershipReader."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_org_ids(self, user_id: str) -> list[str]:
        """Organization ids the user belongs to, oldest membership first."""
        result = await self._session.execute(
            select(Member.organization_id)
            .where(Member.user_id == user_id)
            .order_by(Member.created_at.asc(), Member.organization_id.asc())
        )
        return list(result.scalars().all())


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    """Load a user row by id."""
    return await session.get(User, user_id)
