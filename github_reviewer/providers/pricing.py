"""
Pricing calculations.

Turns token usage into a monetary cost using the per-1K-token rates of the
configured pricing table.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from github_reviewer.config import ModelPricing

PricingTable = Mapping[str, ModelPricing]


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by a provider for one completion."""
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def freeze_pricing(pricing: Optional[Mapping[str, ModelPricing]]) -> PricingTable:
    """Read-only copy of a pricing table, taken once at provider construction."""
    return MappingProxyType(dict(pricing or {}))


def calculate_cost(pricing: PricingTable, model: str, usage: TokenUsage) -> Optional[float]:
    """
    Cost of one completion, or None when the model has no pricing entry.

    cost = input_tokens / 1000 * input_rate + output_tokens / 1000 * output_rate
    """
    rates = pricing.get(model)
    if rates is None:
        return None

    input_cost = (usage.input_tokens / 1000) * rates.input_cost_per_1k_tokens
    output_cost = (usage.output_tokens / 1000) * rates.output_cost_per_1k_tokens
    return input_cost + output_cost
