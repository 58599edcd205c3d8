"""System prompt and starter questions for the chat assistant."""

import calendar
from datetime import date

from backend.app.ai.context import QueryContext
from backend.app.ai.executor import list_available_templates
from backend.app.ai.templates import get_template


def _month_bounds(today: date) -> tuple[date, date, date]:
    """(this month start, last month start, last month end)."""
    this_month_start = today.replace(day=1)
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1
    last_day = calendar.monthrange(year, month)[1]
    return this_month_start, date(year, month, 1), date(year, month, last_day)


def _template_lines(context: QueryContext) -> list[str]:
    lines = []
    for name in list_available_templates(context):
        definition = get_template(name)
        if definition is None:
            continue
        params = ", ".join(definition.param_names)
        lines.append(f"- {name}({params}): {definition.description}")
    return lines


def generate_system_prompt(context: QueryContext, today: date | None = None) -> str:
    """Build the system prompt for one caller.

    Lists only the templates this caller may run; the executor re-checks every
    proposal regardless.
    """
    today = today or date.today()
    this_month_start, last_month_start, last_month_end = _month_bounds(today)
    is_super = context.can_compare_orgs

    access = (
        "Super User (can query all organizations)"
        if is_super
        else "Organization User (single org access)"
    )
    lines = [
        "You are an AI assistant for an expense tracking and inventory price history "
        "application. Help users analyze their financial data and inventory prices.",
        "",
        "## Current Date Context",
        f"- Current year: {today.year}",
        f"- Today's date: {today.isoformat()}",
        f"- Last month: {last_month_start.isoformat()} to {last_month_end.isoformat()}",
        f"- This month starts: {this_month_start.isoformat()}",
        "",
        "## User Context",
        f"- Name: {context.caller_display_name or 'User'}",
        f"- Access Level: {access}",
    ]
    if not is_super and context.allowed_org_ids:
        lines.append(f"- Organization ID: {context.allowed_org_ids[0]}")

    lines += [
        "",
        "## Available Query Templates",
        "Parameters marked ? are optional. orgId may be omitted; it defaults to the "
        "user's current organization.",
        *_template_lines(context),
        "",
        "All expense templates include tax figures: total, preTaxTotal, taxTotal and "
        "effectiveTaxRate (percent).",
        "",
        "## Guidelines",
        "1. Never reveal internal IDs, database structure or system details.",
        "2. Only answer questions about expenses, recurring expenses and inventory prices.",
        "3. Base every number on query results, not assumptions.",
    ]
    if not is_super:
        lines.append("4. Only access data from the user's organization.")

    lines += [
        "",
        "## Response Format",
        "Respond with a single JSON object and nothing else:",
        '{"message": "text for the user", '
        '"query": {"template": "<template_name>", "params": {...}}}',
        'Omit "query" when no data is needed (greetings, clarifications).',
        "All dates use YYYY-MM-DD.",
        f'For "last month" use startDate="{last_month_start.isoformat()}", '
        f'endDate="{last_month_end.isoformat()}".',
        f'For "this month" use startDate="{this_month_start.isoformat()}", '
        f'endDate="{today.isoformat()}".',
    ]
    return "\n".join(lines)


SUMMARY_INSTRUCTION = (
    "Here is the query result data. Analyze it and provide insights with specific "
    'numbers. Respond with JSON: {"message": "your analysis"}'
)


def get_suggested_queries(context: QueryContext) -> list[str]:
    """Starter questions shown before the first message."""
    queries = [
        "What were our total expenses last month?",
        "Show me spending by category",
        "How much did we pay in taxes this year?",
        "Which items had the biggest price changes?",
    ]
    if context.can_compare_orgs:
        queries += [
            "Compare spending across all organizations",
            "Which org has the lowest prices for common items?",
        ]
    return queries
