"""Smart suggestions: likely next recipients and amounts.

Best effort. Gemini is asked first; when it is not configured, fails, or
answers with something unusable, the frequency fallback is returned instead.
There is no retry.
"""

import json
import re
from typing import Any

import httpx
from beanie import PydanticObjectId

from app.core.config import get_settings
from app.core.exceptions import InvalidAmountError
from app.core.logging import get_logger
from app.core.money import format_minor_units, to_minor_units
from app.models.transaction_record import STATUS_ADD_MONEY, TransactionRecord

log = get_logger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
MAX_SUGGESTIONS = 2

PROMPT = """You are a smart assistant for a payment app. Given the user's past transactions (as JSON), suggest the top 2 most likely recipients and amounts for their next transfers.
Respond with a JSON array of objects: [{{"recipient": "recipient_username", "amount": "123.45"}}, ...]
Transactions: {transactions}
"""


def frequency_suggestions(
    account_id: PydanticObjectId,
    records: list[TransactionRecord],
    parties: dict[PydanticObjectId, dict],
    limit: int = MAX_SUGGESTIONS,
) -> list[dict[str, str]]:
    """Most frequent outgoing recipients, with their average amount."""
    stats: dict[str, list[int]] = {}
    for r in records:
        if r.status == STATUS_ADD_MONEY or r.source_id != account_id or r.destination_id == account_id:
            continue
        party = parties.get(r.destination_id)
        if not party or not party.get("username"):
            continue
        entry = stats.setdefault(party["username"], [0, 0])
        entry[0] += 1
        entry[1] += r.amount
    # sorted() is stable: equal counts keep history order (newest first)
    ranked = sorted(stats.items(), key=lambda kv: kv[1][0], reverse=True)[:limit]
    return [
        {"recipient": name, "amount": format_minor_units(round(total / count))}
        for name, (count, total) in ranked
    ]


def parse_model_answer(text: str) -> list[dict[str, str]]:
    """Pull the first JSON array out of the model's text; keep well-formed items only."""
    match = re.search(r"\[.*\]", text or "", re.S)
    if not match:
        return []
    try:
        items = json.loads(match.group(0))
    except ValueError:
        return []
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("recipient"), str):
            continue
        try:
            minor = to_minor_units(item.get("amount"))
        except InvalidAmountError:
            continue
        out.append({"recipient": item["recipient"], "amount": format_minor_units(minor)})
    return out[:MAX_SUGGESTIONS]


async def _ask_gemini(history: list[dict[str, Any]]) -> list[dict[str, str]]:
    settings = get_settings()
    prompt = PROMPT.format(transactions=json.dumps(history, default=str))
    async with httpx.AsyncClient(timeout=settings.suggestion_timeout_seconds) as client:
        resp = await client.post(
            GEMINI_URL.format(model=settings.gemini_model),
            params={"key": settings.gemini_api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        resp.raise_for_status()
        data = resp.json()
    text = data["candidates"][0]["content"]["parts"][0]["text"]
    return parse_model_answer(text)


async def suggest(
    account_id: PydanticObjectId,
    records: list[TransactionRecord],
    parties: dict[PydanticObjectId, dict],
    history: list[dict[str, Any]],
) -> tuple[list[dict[str, str]], str]:
    """Return (suggestions, source) where source is "ai" or "frequency"."""
    if get_settings().gemini_api_key and history:
        try:
            suggestions = await _ask_gemini(history)
            if suggestions:
                return suggestions, "ai"
            log.warning("suggestion_ai_fallback", reason="empty_or_unparseable")
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            log.warning("suggestion_ai_fallback", reason=type(e).__name__, error=str(e))
    return frequency_suggestions(account_id, records, parties), "frequency"
