"""
Loyalty program configuration fallbacks.
"""

import pytest

from apps.promotions.config import (
    DEFAULT_REDEEM_OPTIONS,
    get_redeem_options,
    get_tier_thresholds,
)
from apps.promotions.loyalty import LoyaltyService
from apps.promotions.models import LoyaltyTier


def test_redeem_options_drop_invalid_entries(settings):
    settings.LOYALTY_REDEEM_OPTIONS = {"200": "15", 300: 150, -5: 10, "x": 1}

    assert get_redeem_options() == {200: 15}


def test_redeem_options_fall_back_when_nothing_valid(settings):
    settings.LOYALTY_REDEEM_OPTIONS = {0: 0}

    assert get_redeem_options() == DEFAULT_REDEEM_OPTIONS


def test_partial_tier_override(settings):
    settings.LOYALTY_TIER_THRESHOLDS = {"GOLD": 1500, "PLATINUM": "lots"}

    thresholds = get_tier_thresholds()

    assert thresholds[LoyaltyTier.GOLD] == 1500
    assert thresholds[LoyaltyTier.SILVER] == 750
    assert thresholds[LoyaltyTier.PLATINUM] == 5000


@pytest.mark.django_db
def test_summary_for_fixture_user(user):
    summary = LoyaltyService.summary(user)

    assert summary.account.user == user
    assert summary.account.tier == LoyaltyTier.BRONZE
