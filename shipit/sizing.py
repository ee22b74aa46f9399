"""Token counting and prompt risk tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

ENCODING_NAME = "o200k_base"


@dataclass(frozen=True)
class TokenTier:
    upper_bound: Optional[int]
    emoji: Optional[str]
    label: str
    hint: Optional[str] = None
    description: Optional[str] = None
    requires_confirmation: bool = False


# Ordered, contiguous bands; the last one is unbounded.
TOKEN_TIERS: Tuple[TokenTier, ...] = (
    TokenTier(5000, "🟢", "looking fresh", hint="instant response"),
    TokenTier(15000, "🟡", "totally fine", hint="1-2 seconds"),
    TokenTier(50000, "🟠", "still good", hint="3-5 seconds"),
    TokenTier(
        100000,
        "🔴",
        "yikes territory",
        hint="may hit rate limits",
        description="This will take 10+ seconds and cost significantly more.",
        requires_confirmation=True,
    ),
    TokenTier(
        None,
        None,
        "an absolute unit 💀",
        description="This exceeds most API limits and will be very expensive.",
        requires_confirmation=True,
    ),
)


@dataclass(frozen=True)
class RiskEstimate:
    token_count: int
    tier: TokenTier

    @property
    def tier_label(self) -> str:
        return self.tier.label

    @property
    def requires_confirmation(self) -> bool:
        return self.tier.requires_confirmation


def categorize_token_count(token_count: int) -> TokenTier:
    if token_count < 0:
        raise ValueError("token_count must be non-negative")
    for tier in TOKEN_TIERS:
        if tier.upper_bound is None or token_count < tier.upper_bound:
            return tier
    return TOKEN_TIERS[-1]


@lru_cache(maxsize=1)
def _get_encoding():
    import tiktoken

    return tiktoken.get_encoding(ENCODING_NAME)


def count_tokens(text: str) -> int:
    return len(_get_encoding().encode(text, disallowed_special=()))


def estimate_risk(prompt: str) -> RiskEstimate:
    """Count tokens in the exact prompt text and classify them."""
    count = count_tokens(prompt)
    tier = categorize_token_count(count)
    logger.debug("prompt tokens=%d tier=%s", count, tier.label)
    return RiskEstimate(token_count=count, tier=tier)


def categorize_changes_count(changes_count: int) -> str:
    if changes_count < 10:
        return "Nice!"
    if changes_count < 50:
        return "Solid!"
    if changes_count < 100:
        return "We cookin'!"
    return "Better buy your reviewers coffee!"
