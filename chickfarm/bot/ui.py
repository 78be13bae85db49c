from __future__ import annotations

from chickfarm.core.money import fmt_usdt
from chickfarm.services.game import OpResult
from chickfarm.services.rewards.kinds import describe, from_dict

ERROR_TEXT = {
    "not_found": "Not found.",
    "insufficient_funds": "Not enough USDT on your balance.",
    "insufficient_resources": "Not enough resources.",
    "already_claimed": "Already claimed.",
    "no_boxes_available": "You have no mystery boxes to open.",
    "no_spins_available": "No spins left today. Come back tomorrow!",
    "invalid_configuration": "This item is not available.",
    "conflict": "Busy right now, please try again.",
    "cooldown_active": "This chicken is still resting.",
    "invalid_transition": "This request was already processed.",
    "duplicate_transaction": "This transaction hash was already used.",
    "invalid_input": "Invalid input.",
}

CHICKEN_EMOJI = {"baby": "🐣", "regular": "🐔", "golden": "🌟"}

NOT_REGISTERED = "Press /start first."


def error_text(result: OpResult) -> str:
    base = ERROR_TEXT.get(result.error or "", "Something went wrong.")
    if result.error in ("cooldown_active", "insufficient_resources") and result.message:
        return f"{base}\n{result.message}"
    return base


def reward_text(reward_type: str | None, details: dict | None) -> str:
    if not reward_type:
        return "🎁 sealed"
    return describe(from_dict(reward_type, details))


def usdt(cents: int) -> str:
    return fmt_usdt(cents)
