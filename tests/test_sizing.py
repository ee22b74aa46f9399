import pytest

from shipit import sizing
from shipit.sizing import (
    TOKEN_TIERS,
    categorize_changes_count,
    categorize_token_count,
    estimate_risk,
)


@pytest.mark.parametrize(
    "count, label, confirm",
    [
        (0, "looking fresh", False),
        (4999, "looking fresh", False),
        (5000, "totally fine", False),
        (14999, "totally fine", False),
        (15000, "still good", False),
        (49999, "still good", False),
        (50000, "yikes territory", True),
        (99999, "yikes territory", True),
        (100000, "an absolute unit 💀", True),
        (10**9, "an absolute unit 💀", True),
    ],
)
def test_tier_boundaries(count, label, confirm):
    tier = categorize_token_count(count)
    assert tier.label == label
    assert tier.requires_confirmation is confirm


def test_tiers_are_monotonic_and_exhaustive():
    order = {tier: index for index, tier in enumerate(TOKEN_TIERS)}
    previous = 0
    for count in range(0, 120001, 250):
        index = order[categorize_token_count(count)]
        assert index >= previous
        previous = index
    assert previous == len(TOKEN_TIERS) - 1


def test_only_top_two_tiers_need_confirmation():
    assert [t.requires_confirmation for t in TOKEN_TIERS] == [
        False,
        False,
        False,
        True,
        True,
    ]


def test_negative_counts_rejected():
    with pytest.raises(ValueError):
        categorize_token_count(-1)


def test_estimate_risk_counts_exact_prompt():
    estimate = estimate_risk("one two three")

    assert estimate.token_count == 3
    assert estimate.tier_label == "looking fresh"
    assert not estimate.requires_confirmation


def test_estimate_risk_large_prompt_requires_confirmation(monkeypatch):
    monkeypatch.setattr(sizing, "count_tokens", lambda text: 60000)

    estimate = estimate_risk("whatever")

    assert estimate.requires_confirmation
    assert estimate.tier.description.startswith("This will take 10+ seconds")


@pytest.mark.parametrize(
    "count, text",
    [(0, "Nice!"), (9, "Nice!"), (10, "Solid!"), (50, "We cookin'!"), (100, "Better buy your reviewers coffee!")],
)
def test_categorize_changes_count(count, text):
    assert categorize_changes_count(count) == text
