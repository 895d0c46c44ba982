"""
AI Agents for Pocket Ledger

DESIGN DECISION: The assistant is a TRANSCRIBER. It turns a sentence such
as "Paid 50 for groceries from Main Bank" into a TransactionDraft that
pre-fills the entry form.

CRITICAL BOUNDARIES:
- CAN: Pick a transaction type, amount, date and category
- CAN: Match account names mentioned in the text to account ids
- CANNOT: Record anything. The draft goes through the same form,
  validation and human confirmation as manual input
- CANNOT: Invent accounts. Unknown names are left blank

The model output is untrusted. Every field is parsed leniently into the
draft and a bad value just leaves that field empty.
"""

import json
from datetime import datetime
from typing import Any, Optional

import google.generativeai as genai
import structlog

from pocket_ledger.config import GeminiSettings, get_settings
from pocket_ledger.models.category import PREDEFINED_CATEGORIES, Category
from pocket_ledger.models.ledger import Account, TransactionDraft, utc_now


GENERIC_FAILURE_MESSAGE = "Failed to process. Please try again."

logger = structlog.get_logger(__name__)


class AssistantError(Exception):
    """
    Raised when the assistant cannot produce a draft.

    The message is always safe to show to the user; the underlying error,
    if any, is kept in `cause` for logging.
    """

    def __init__(
        self,
        message: str = GENERIC_FAILURE_MESSAGE,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.cause = cause


def build_system_prompt(
    accounts: list[Account],
    categories: list[Category],
    now: datetime,
) -> str:
    """Instructions plus the current accounts and categories."""
    account_refs = json.dumps([{"id": a.id, "name": a.name} for a in accounts])
    category_refs = json.dumps([{"id": c.id, "name": c.name} for c in categories])

    return f"""You are a financial data entry assistant.
Your task is to parse the user's natural language input into a JSON object representing a financial transaction.

Current Context:
- Date: {now.isoformat()}
- Accounts: {account_refs}
- Categories: {category_refs}

Output Rules:
- Return ONLY a JSON object. No Markdown formatting.
- Fields: type (INCOME, EXPENSE, TRANSFER, STOCK_BUY, STOCK_SELL), amount, date, notes, sourceAccountId, destinationAccountId, categoryId, categoryName, stockSymbol, stockQuantity, stockPrice.
- Infer 'sourceAccountId' and 'destinationAccountId' based on the transaction type and account names provided.
  - For EXPENSE: Source is the paying account.
  - For INCOME: Destination is the receiving account.
  - For TRANSFER: Source and Destination are both accounts.
  - For STOCK_BUY: Source is the funding account.
  - For STOCK_SELL: Destination receives the proceeds.
- If an account is mentioned by name, try to match it to an ID. If fuzzy match fails, leave ID blank.
- If a category matches, use categoryId. If not, use categoryName for a custom category.
- Use the date format YYYY-MM-DD. Omit the date if none is mentioned."""


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first {...} block in a model response.

    Raises:
        ValueError: If there is no JSON object in the text
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in response")

    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class TransactionEntryAgent:
    """
    AI agent behind the "Auto-Fill Transaction" assistant.

    Uses the fast model by default and the configured reasoning model
    when deep thinking is requested.

    BOUNDARIES:
    - NEVER writes state
    - NEVER retries; the user can simply submit again
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
        thinking_model: Any = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model
        self._thinking_model = thinking_model
        if model is None or thinking_model is None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        generation_config = {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_tokens,
            "response_mime_type": "application/json",
        }
        if self._model is None:
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config=generation_config,
            )
        if self._thinking_model is None:
            self._thinking_model = genai.GenerativeModel(
                model_name=self._settings.thinking_model_name,
                generation_config=generation_config,
            )

    async def parse_transaction(
        self,
        text: str,
        accounts: list[Account],
        deep_thinking: bool = False,
        now: Optional[datetime] = None,
    ) -> TransactionDraft:
        """
        Turn a natural language description into a transaction draft.

        Args:
            text: What the user typed
            accounts: Current accounts, for name-to-id matching
            deep_thinking: Use the slower reasoning model
            now: Reference time given to the model for relative dates

        Returns:
            TransactionDraft with whatever fields could be read

        Raises:
            AssistantError: On empty input, empty or unparseable output,
                or any SDK failure
        """
        if not text or not text.strip():
            raise AssistantError("Please describe the transaction first.")

        prompt = build_system_prompt(
            accounts,
            PREDEFINED_CATEGORIES,
            now or utc_now(),
        )
        model = self._thinking_model if deep_thinking else self._model

        try:
            response = await model.generate_content_async(
                [prompt, f"User input: {text.strip()}"]
            )
            raw = (response.text or "").strip()
            if not raw:
                raise ValueError("No data returned")

            draft = TransactionDraft.model_validate(extract_json_object(raw))
        except Exception as e:
            logger.warning(
                "assistant_parse_failed",
                error=str(e),
                deep_thinking=deep_thinking,
            )
            raise AssistantError(GENERIC_FAILURE_MESSAGE, cause=e) from e

        return draft
