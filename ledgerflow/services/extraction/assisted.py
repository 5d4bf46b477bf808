"""
Assisted transaction extraction through an OpenAI-compatible endpoint.

The model receives a window of statement text and answers with a JSON
array of {date, description, amount} objects.
"""
import json
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_WINDOW_START = [
    re.compile(r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"),
    re.compile(r"transaction", re.IGNORECASE),
]


class AssistedExtractor(ABC):
    """Capability that reads transaction lines out of statement text."""

    @abstractmethod
    async def extract_transactions(self, window: str) -> List[Any]:
        """
        Return the raw transaction objects found in the window.

        Raises:
            ValueError: If the reply holds no JSON array.
        """


def relevant_transaction_window(text: str, max_chars: int = 20000) -> str:
    """
    Cut the part of a statement that holds transactions.

    Starts five lines before the first date-like or "transaction" line
    within the first 100 lines and keeps everything after it, so that
    multi-page statements are not cut short.
    """
    lines = text.split("\n")
    start = 0
    for index, line in enumerate(lines[:100]):
        if any(pattern.search(line) for pattern in _WINDOW_START):
            start = max(0, index - 5)
            break
    return "\n".join(lines[start:])[:max_chars]


class OpenRouterExtractor(AssistedExtractor):
    """AssistedExtractor backed by an OpenRouter chat model."""

    MAX_TOKENS = 8000
    TEMPERATURE = 0

    PROMPT = """Extract all transactions from this bank statement. Return ONLY a JSON array, no explanation.

Format: [{{"date":"YYYY-MM-DD","description":"text","amount":-45.67}}]

CRITICAL RULES for amount sign:
- If transaction is in "Money out", "Debit", "Withdrawal", "Purchase" column: NEGATIVE amount (e.g., -87.00)
- If transaction is in "Money in", "Credit", "Deposit", "Payment received" column: POSITIVE amount (e.g., 4768.00)
- If only one amount column: negative for expenses/purchases, positive for income/deposits/transfers in
- Parse dates to YYYY-MM-DD format
- Keep description concise (main merchant/transaction name)
- Return [] if no transactions found

Statement:
{statement}"""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "openai/gpt-4o-mini",
        timeout: float = 25.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        # Fail fast: callers fall back to pattern extraction
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        logger.info("assisted_extractor_initialized", model=model)

    async def extract_transactions(self, window: str) -> List[Any]:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": self.PROMPT.format(statement=window)}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("Empty reply from assist model")
        return parse_assist_reply(content)


def parse_assist_reply(content: str) -> List[Any]:
    """
    Pull the JSON array out of a model reply that may carry extra prose.

    Raises:
        ValueError: If no array is present or it does not decode.
    """
    match = _JSON_ARRAY.search(content)
    if not match:
        raise ValueError("No JSON array found in assist reply")
    items = json.loads(match.group(0))
    if not isinstance(items, list):
        raise ValueError("Assist reply is not a JSON array")
    return items
