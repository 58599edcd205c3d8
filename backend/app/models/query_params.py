"""Parameter records for the AI query templates.

One model per template. Field names are snake_case in Python and camelCase on
the wire (`orgId`, `itemId`, `startDate`, ...), which is what both the direct
query endpoint and the chat model send. Unknown keys are ignored.
"""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

Identifier = Annotated[str, Field(min_length=1, max_length=200)]
Limit = Annotated[int, Field(ge=1, le=MAX_LIMIT)]


class TemplateParams(BaseModel):
    """Base for all template parameter records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class OrgParams(TemplateParams):
    """Parameters scoped to a single organization."""

    org_id: Identifier


class OrgDateRangeParams(OrgParams):
    """Organization plus an inclusive date range."""

    start_date: date
    end_date: date

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure endDate >= startDate."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("endDate must be on or after startDate")
        return v


class CurrentPriceParams(OrgParams):
    item_id: Identifier


class PriceAtDateParams(OrgParams):
    item_id: Identifier
    as_of: date = Field(..., alias="date")


class PriceHistoryParams(OrgParams):
    item_id: Identifier
    start_date: date


class TopPriceChangesParams(OrgParams):
    start_date: date
    limit: Limit = DEFAULT_LIMIT


class MonthlyExpensesParams(OrgDateRangeParams):
    pass


class ExpensesByCategoryParams(OrgDateRangeParams):
    pass


class TopVendorsParams(OrgDateRangeParams):
    limit: Limit = DEFAULT_LIMIT


class SearchItemsParams(OrgParams):
    search_term: Annotated[str, Field(min_length=1, max_length=100)]


class RecurringTemplatesParams(OrgParams):
    pass


class RecurringExpenseHistoryParams(OrgDateRangeParams):
    template_id: Identifier


class CrossOrgItemPricesParams(TemplateParams):
    item_name: Annotated[str, Field(min_length=1, max_length=100)]


class CrossOrgSpendingParams(TemplateParams):
    start_date: date
    end_date: date

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure endDate >= startDate."""
        if "start_date" in info.data and v < info.data["start_date"]:
            raise ValueError("endDate must be on or after startDate")
        return v
