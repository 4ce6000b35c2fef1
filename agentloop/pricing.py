"""Per-model token pricing in USD per 1M tokens.

From https://openai.com/api/pricing/. Model ids may alias to a specific
dated snapshot on the service side.
"""

from __future__ import annotations

from dataclasses import dataclass

from agentloop.errors import ConfigurationError


@dataclass(frozen=True)
class ModelPricing:
    """USD per 1M tokens."""

    input_tokens: float
    output_tokens: float
    cached_input_tokens: float | None = None


DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4o": ModelPricing(input_tokens=2.5, output_tokens=10.0, cached_input_tokens=1.25),
    "gpt-4o-mini": ModelPricing(input_tokens=0.15, output_tokens=0.6, cached_input_tokens=0.075),
    "o1": ModelPricing(input_tokens=15.0, output_tokens=60.0, cached_input_tokens=7.5),
    "o1-mini": ModelPricing(input_tokens=3.0, output_tokens=12.0, cached_input_tokens=1.5),
    "gpt-3.5-turbo": ModelPricing(input_tokens=3.0, output_tokens=6.0),
    "gpt-4": ModelPricing(input_tokens=30.0, output_tokens=60.0),
    "gpt-4-turbo": ModelPricing(input_tokens=10.0, output_tokens=30.0),
}

BATCH_PRICING: dict[str, ModelPricing] = {
    "gpt-4o": ModelPricing(input_tokens=1.25, output_tokens=5.0),
    "gpt-4o-mini": ModelPricing(input_tokens=0.075, output_tokens=0.3),
}


def lookup(model: str, table: dict[str, ModelPricing] | None = None) -> ModelPricing:
    """Return pricing for a model id, raising ConfigurationError if unknown."""
    table = DEFAULT_PRICING if table is None else table
    try:
        return table[model]
    except KeyError:
        raise ConfigurationError(
            f"No pricing for model '{model}'. Known: {sorted(table)}"
        ) from None


def batch_lookup(model: str) -> ModelPricing | None:
    """Batch API pricing, or None when the model has no batch discount."""
    return BATCH_PRICING.get(model)
