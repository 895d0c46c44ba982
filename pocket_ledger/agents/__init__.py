"""AI Agents package."""

from pocket_ledger.agents.ai_agents import (
    GENERIC_FAILURE_MESSAGE,
    AssistantError,
    TransactionEntryAgent,
    build_system_prompt,
    extract_json_object,
)

__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "AssistantError",
    "TransactionEntryAgent",
    "build_system_prompt",
    "extract_json_object",
]
