"""Enhancement stage: restyle the raw transcript with the generation model."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from voiceflow.config.settings import CostConfig
from voiceflow.services.llm_client import LlmCompletion, LlmInvocationError

from .costs import generation_cost
from .errors import ErrorCategory, StageError, StageErrorKind
from .styles import TRANSLATION_INSTRUCTION, StyleDirective, StyleValidationError
from .types import EnhancementResult, QualityReport, TranslationResult

logger = logging.getLogger("voiceflow.services.recording_pipeline")

FILLER_WORDS = re.compile(r"\b(um|uh|like|you know|basically)\b", re.IGNORECASE)


class GenerationProvider(Protocol):
    async def complete(self, system_instruction: str, user_text: str) -> LlmCompletion:
        ...


def validate_enhancement_quality(
    original: str,
    enhanced: str,
    threshold: int = 70,
) -> QualityReport:
    """Score the rewrite against the input; low scores only raise warnings."""

    issues: list[str] = []
    score = 100

    if original.strip() == enhanced.strip():
        issues.append("Enhancement is identical to original")
        score -= 50

    if len(enhanced) < len(original) * 0.3:
        issues.append("Enhancement is significantly shorter than original")
        score -= 20

    if not re.search(r"[.!?]", enhanced):
        issues.append("Enhancement lacks proper punctuation")
        score -= 15

    if FILLER_WORDS.search(enhanced):
        issues.append("Enhancement still contains filler words")
        score -= 10

    return QualityReport(score=max(0, score), issues=tuple(issues), threshold=threshold)


async def enhance_transcript(
    provider: GenerationProvider,
    transcript: str,
    directive: StyleDirective,
    *,
    is_premium: bool,
    cost_config: Optional[CostConfig] = None,
    quality_threshold: int = 70,
) -> EnhancementResult:
    """Run one generation call; provider failures come back as ``DEGRADED``."""

    if not transcript or not transcript.strip():
        return EnhancementResult(
            error=StageError(kind=StageErrorKind.VALIDATION, message="Transcript is empty")
        )

    try:
        directive.ensure_allowed(is_premium)
    except StyleValidationError as exc:
        return EnhancementResult(
            error=StageError(
                kind=StageErrorKind.VALIDATION,
                message=str(exc),
                category=ErrorCategory.PREMIUM_REQUIRED,
            )
        )

    try:
        completion = await provider.complete(
            directive.system_instruction,
            f"Transcript:\n{transcript}",
        )
    except LlmInvocationError as exc:
        logger.warning("Enhancement call failed style=%s: %s", directive.style.value, exc)
        return EnhancementResult(error=StageError.from_exception(StageErrorKind.DEGRADED, exc))
    except Exception as exc:
        logger.exception("Unexpected enhancement failure style=%s", directive.style.value)
        return EnhancementResult(error=StageError.from_exception(StageErrorKind.DEGRADED, exc))

    enhanced = (completion.text or "").strip()
    if not enhanced:
        return EnhancementResult(
            error=StageError(
                kind=StageErrorKind.DEGRADED,
                message="Enhancement produced empty result",
            )
        )

    quality = validate_enhancement_quality(transcript, enhanced, quality_threshold)
    if not quality.acceptable:
        logger.warning(
            "Enhancement quality below threshold score=%s issues=%s",
            quality.score,
            ", ".join(quality.issues),
        )

    return EnhancementResult(
        enhanced_text=enhanced,
        style=directive.style,
        tokens_used=completion.tokens_used,
        cost_estimate=generation_cost(completion.tokens_used, cost_config),
        quality=quality,
    )


async def translate_text(
    provider: GenerationProvider,
    text: str,
    target_language: str,
    *,
    cost_config: Optional[CostConfig] = None,
) -> TranslationResult:
    if not text or not text.strip():
        return TranslationResult(
            error=StageError(kind=StageErrorKind.VALIDATION, message="Text to translate is empty")
        )
    if not target_language or not target_language.strip():
        return TranslationResult(
            error=StageError(kind=StageErrorKind.VALIDATION, message="Target language is required")
        )

    try:
        completion = await provider.complete(
            TRANSLATION_INSTRUCTION.format(language=target_language),
            text,
        )
    except LlmInvocationError as exc:
        return TranslationResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))
    except Exception as exc:
        logger.exception("Unexpected translation failure target=%s", target_language)
        return TranslationResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))

    translated = (completion.text or "").strip()
    if not translated:
        return TranslationResult(
            error=StageError(kind=StageErrorKind.FATAL, message="Translation produced empty result")
        )

    return TranslationResult(
        translated_text=translated,
        target_language=target_language,
        tokens_used=completion.tokens_used,
        cost_estimate=generation_cost(completion.tokens_used, cost_config),
    )


async def batch_enhance(
    provider: GenerationProvider,
    transcripts: Sequence[tuple[str, str]],
    directive: StyleDirective,
    *,
    is_premium: bool,
    cost_config: Optional[CostConfig] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[tuple[str, EnhancementResult]]:
    """Enhance ``(id, text)`` pairs one after another.

    Calls are spaced by ``pause_seconds`` to stay under provider rate limits.
    A failed item is returned with its error and does not stop the batch.
    """

    results: list[tuple[str, EnhancementResult]] = []
    total = len(transcripts)
    for index, (item_id, text) in enumerate(transcripts, start=1):
        result = await enhance_transcript(
            provider, text, directive, is_premium=is_premium, cost_config=cost_config
        )
        results.append((item_id, result))
        if on_progress is not None:
            on_progress(index, total)
        if index < total and pause_seconds > 0:
            await sleep(pause_seconds)
    return results


__all__ = [
    "FILLER_WORDS",
    "GenerationProvider",
    "batch_enhance",
    "enhance_transcript",
    "translate_text",
    "validate_enhancement_quality",
]
