"""Per-request query context for AI data access."""

from dataclasses import dataclass
from enum import Enum


class QueryScope(str, Enum):
    """Breadth of organizations a caller may query."""

    ORG = "org"
    GLOBAL = "global"


@dataclass(frozen=True)
class QueryContext:
    """What the current caller may read.

    Built fresh for every request from the live session and membership state.
    `allowed_org_ids` is None for global scope, meaning unrestricted.
    """

    scope: QueryScope
    allowed_org_ids: tuple[str, ...] | None
    can_compare_orgs: bool
    caller_id: str
    caller_display_name: str | None = None
    active_org_id: str | None = None

    def __post_init__(self) -> None:
        if self.scope is QueryScope.ORG:
            if not self.allowed_org_ids:
                raise ValueError("org scope requires at least one allowed organization")
            if self.can_compare_orgs:
                raise ValueError("org scope cannot compare organizations")
        elif not self.can_compare_orgs:
            raise ValueError("global scope must allow organization comparison")

    @property
    def is_global(self) -> bool:
        return self.scope is QueryScope.GLOBAL

    def default_org_id(self) -> str | None:
        """Organization used when a template call omits `orgId`."""
        if self.active_org_id:
            return self.active_org_id
        if self.allowed_org_ids:
            return self.allowed_org_ids[0]
        return None
