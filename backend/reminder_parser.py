"""
Weekly Rhythm - Natural-Language Reminder Parser
Turns "remind me to pack my gym bag 30 minutes before Gym Session" into a
structured reminder through an OpenAI-compatible model.
"""

import json
from typing import List, Optional

from pydantic import ValidationError

from ai_client import AIClient, get_ai_client
from errors import ReminderParseError, ReminderValidationError
from logger import get_logger
from models import ParsedReminder

logger = get_logger(__name__)

REPHRASE_HINT = (
    "I had trouble understanding that. Could you try rephrasing? "
    "e.g., 'Remind me to pack my gym bag 30 minutes before Gym Session'"
)

SYSTEM_PROMPT = """You are a helpful scheduling assistant. Parse the user's natural language request to create a structured reminder object.
- "anchor_title" MUST be an exact match from the provided list of available anchor titles.
- Calculate "offset_minutes" from the request ("10 minutes before" is -10, "at the start" is 0, "5 minutes after" is 5).
- Extract the core reminder "message".
- Create a simple "why", like "Because you asked to be reminded."

Return a single JSON object with exactly these keys: anchor_title (string), offset_minutes (integer), message (string), why (string)."""


def build_messages(text: str, anchor_titles: List[str]) -> List[dict]:
    user_prompt = f"""Available Anchor Titles:
{', '.join(anchor_titles)}

User Request:
"{text}\""""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def parse_reminder(text: str, anchor_titles: List[str], client: Optional[AIClient] = None) -> ParsedReminder:
    """
    Parse a reminder request against the known anchor titles.

    Raises:
        ReminderValidationError: the model picked a title that is not in anchor_titles
        ReminderParseError: the request failed or the response was unusable
    """
    if not text or not text.strip():
        raise ReminderParseError(REPHRASE_HINT)

    titles = list(dict.fromkeys(anchor_titles))
    client = client or get_ai_client()

    try:
        response = client.chat(build_messages(text, titles), json_mode=True)
        payload = json.loads((response.get("content") or "").strip())
        parsed = ParsedReminder.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Unusable parser response: {e}")
        raise ReminderParseError(REPHRASE_HINT) from e
    except Exception as e:
        logger.error(f"Error parsing reminder: {e}")
        raise ReminderParseError(REPHRASE_HINT) from e

    if parsed.anchor_title not in titles:
        raise ReminderValidationError(
            f'Could not find an anchor named "{parsed.anchor_title}". Please check the name.'
        )

    return parsed
