"""Static per-token pricing used for cost estimates.

Rates are USD per token. Costs are estimated from the *total* token count using
the mean of the input and output rates, since provider responses are normalized
to a single ``tokens_used`` figure.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TokenRate:
    input: float
    output: float

    @property
    def average(self) -> float:
        return (self.input + self.output) / 2


MODEL_RATES: dict[str, TokenRate] = {
    "gpt-4": TokenRate(input=0.00003, output=0.00006),
    "gpt-4o": TokenRate(input=0.0000025, output=0.00001),
    "gpt-4o-mini": TokenRate(input=0.00000015, output=0.0000006),
    "gpt-3.5-turbo": TokenRate(input=0.0000015, output=0.000002),
    "claude-3-opus": TokenRate(input=0.000015, output=0.000075),
    "claude-3-sonnet": TokenRate(input=0.000003, output=0.000015),
    "claude-3-5-sonnet": TokenRate(input=0.000003, output=0.000015),
    "claude-3-haiku": TokenRate(input=0.00000025, output=0.00000125),
}


def lookup_rate(model_id: str, rates: dict[str, TokenRate] | None = None) -> TokenRate | None:
    """Find the rate for a model id.

    Exact ids win; otherwise the longest table key that prefixes the id is used,
    so dated snapshots like ``claude-3-sonnet-20240229`` resolve to their family.
    """
    table = MODEL_RATES if rates is None else rates
    normalized = model_id.strip().lower()
    if normalized in table:
        return table[normalized]

    candidates = [key for key in table if normalized.startswith(key)]
    if not candidates:
        return None
    return table[max(candidates, key=len)]


def estimate_cost(
    model_id: str, tokens_used: int, rates: dict[str, TokenRate] | None = None
) -> float | None:
    """Return ``tokens_used * average rate``, or None for an unknown model."""
    rate = lookup_rate(model_id, rates)
    if rate is None:
        return None
    return tokens_used * rate.average
