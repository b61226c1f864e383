"""Static price table for the extraction models, in USD per million tokens."""

from typing import NamedTuple

from docimport.core.models import ModelInfo


class ModelPrice(NamedTuple):
    """Provider and per-million-token prices of one model."""

    provider: str
    input: float
    output: float


PRICE_TABLE: dict[str, ModelPrice] = {
    "gemini-3.0-flash": ModelPrice("gemini", 0.10, 0.40),
    "gemini-3.0-pro": ModelPrice("gemini", 1.25, 5.00),
    "gemini-2.5-pro": ModelPrice("gemini", 1.25, 5.00),
    "gemini-2.5-flash": ModelPrice("gemini", 0.075, 0.30),
    "gemini-2.0-flash": ModelPrice("gemini", 0.10, 0.40),
    "meta-llama/llama-4-scout-17b-16e-instruct": ModelPrice("groq", 0.11, 0.34),
    "meta-llama/llama-4-maverick-17b-128e-instruct": ModelPrice("groq", 0.20, 0.60),
}

DEFAULT_PRICE = ModelPrice("gemini", 0.10, 0.40)


def price_for(model: str) -> ModelPrice:
    """Return the price of a model, falling back to the default tier for unknown ids."""
    return PRICE_TABLE.get(model, DEFAULT_PRICE)


def estimate_cost(model: str, tokens_input: int, tokens_output: int) -> float:
    """Estimate the USD cost of a call from its token counts."""
    price = price_for(model)
    return (tokens_input * price.input + tokens_output * price.output) / 1_000_000


def available_models() -> list[ModelInfo]:
    """List the models offered for extraction."""
    return [
        ModelInfo(id=model, provider=price.provider, input_price=price.input, output_price=price.output)
        for model, price in PRICE_TABLE.items()
    ]
