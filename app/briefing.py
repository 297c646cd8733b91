from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import google.generativeai as genai

from models import Employee, Shift
from settings import get_settings

logger = logging.getLogger(__name__)

EMPTY_DAY_MESSAGE = "No staff are scheduled to work today. The restaurant might be closed."
NO_DETAILS_MESSAGE = "No staff with timed shifts are scheduled for today."
DISABLED_MESSAGE = "AI briefing is disabled. Set GOOGLE_API_KEY to enable it."
FAILURE_MESSAGE = "Sorry, I couldn't generate a briefing right now. Let's have a great day!"

PROMPT_TEMPLATE = """You are the manager of an Italian restaurant.
Generate a short, friendly, and motivational daily briefing for the team based on today's roster.
Keep it concise and positive. Mention the staff working today and any special statuses like days off.

Today's Roster:
{details}

Briefing:
"""


def describe_shifts(shifts: Iterable[Shift], employees: Iterable[Employee]) -> List[str]:
    directory: Dict[int, Employee] = {employee.id: employee for employee in employees}
    lines: List[str] = []
    for shift in shifts:
        names = [directory[value].name for value in shift.employee_ids if value in directory]
        if not names:
            continue
        who = ", ".join(names)
        if shift.is_timed:
            notes = f" ({shift.notes})" if shift.notes else ""
            lines.append(f"- {who} from {shift.start_time} to {shift.end_time}{notes}.")
        elif shift.notes:
            lines.append(f"- {who} is on: {shift.notes}.")
    return lines


def build_model(api_key: Optional[str] = None) -> Optional[Any]:
    """Return a configured Gemini model, or ``None`` when no API key is set."""
    settings = get_settings()
    api_key = api_key or settings.google_api_key
    if not api_key:
        return None
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(settings.roster_briefing_model)


def generate_daily_briefing(
    shifts: Iterable[Shift],
    employees: Iterable[Employee],
    *,
    model: Optional[Any] = None,
) -> str:
    shifts = list(shifts)
    if not shifts:
        return EMPTY_DAY_MESSAGE
    details = describe_shifts(shifts, employees)
    if not details:
        return NO_DETAILS_MESSAGE
    model = model or build_model()
    if model is None:
        return DISABLED_MESSAGE
    prompt = PROMPT_TEMPLATE.format(details="\n".join(details))
    try:
        response = model.generate_content(prompt)
        return response.text.strip()
    except Exception as exc:  # noqa: BLE001
        logger.error("Error generating daily briefing: %s", exc)
        return FAILURE_MESSAGE
