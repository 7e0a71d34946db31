# ridebid/core/pricing/__init__.py
"""
Pricing Advisor: подсказка цены ставки.
"""

from ridebid.core.pricing.demand import DemandStrategy, KeywordDemandStrategy
from ridebid.core.pricing.models import BidSuggestion
from ridebid.core.pricing.service import PricingAdvisor, round_half_up

__all__ = [
    "BidSuggestion",
    "DemandStrategy",
    "KeywordDemandStrategy",
    "PricingAdvisor",
    "round_half_up",
]
