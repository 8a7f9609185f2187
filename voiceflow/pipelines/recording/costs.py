"""User-facing cost estimates for provider usage."""

from __future__ import annotations

from voiceflow.config.settings import CostConfig, settings


def transcription_cost(duration_seconds: float, config: CostConfig | None = None) -> float:
    """Per-minute-of-audio transcription price."""

    config = config or settings.costs
    return max(duration_seconds, 0.0) / 60.0 * config.transcription_per_minute


def generation_cost(tokens_used: int | None, config: CostConfig | None = None) -> float:
    """Token price with usage split between input and output by a fixed share."""

    if not tokens_used:
        return 0.0
    config = config or settings.costs
    input_tokens = tokens_used * config.generation_input_share
    output_tokens = tokens_used - input_tokens
    return (
        input_tokens / 1000.0 * config.generation_input_per_1k_tokens
        + output_tokens / 1000.0 * config.generation_output_per_1k_tokens
    )


def estimate_recording_cost(duration_seconds: float, config: CostConfig | None = None) -> float:
    """Up-front estimate before processing: ~150 tokens per spoken minute."""

    config = config or settings.costs
    input_tokens = duration_seconds / 60.0 * 150
    output_tokens = input_tokens * 0.8
    gpt_cost = (
        input_tokens / 1000.0 * config.generation_input_per_1k_tokens
        + output_tokens / 1000.0 * config.generation_output_per_1k_tokens
    )
    return transcription_cost(duration_seconds, config) + gpt_cost


__all__ = ["estimate_recording_cost", "generation_cost", "transcription_cost"]
