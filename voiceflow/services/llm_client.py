"""Thin Bedrock client wrapper for text-generation calls."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from voiceflow.config.settings import settings
from voiceflow.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the Bedrock invocation fails."""


@dataclass(frozen=True)
class LlmCompletion:
    text: str
    tokens_used: int | None = None


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode the BEDROCK_API_KEY secret into access/secret key components."""

    if not secret_value:
        return None

    try:
        decoded_bytes = base64.b64decode(secret_value.strip())
    except (binascii.Error, ValueError):
        decoded_bytes = secret_value.encode("utf-8", "ignore")

    filtered = "".join(chr(b) for b in decoded_bytes if 31 < b < 127)
    if ":" not in filtered:
        return None
    access_key, secret_key = filtered.split(":", 1)
    return access_key, secret_key


class BedrockLlmClient:
    """Invoke Amazon Bedrock models with standard configuration."""

    def __init__(self, *, client: Any | None = None, model_id: str | None = None) -> None:
        self._model_id = model_id or settings.bedrock.model_id

        if client is not None:
            self._client = client
            return

        api_key_tuple = None
        if settings.bedrock.api_key:
            api_key_tuple = _decode_bedrock_api_key(
                settings.bedrock.api_key.get_secret_value()
            )

        self._client = create_boto3_client(
            "bedrock-runtime",
            region_name=settings.bedrock.region,
            credentials=api_key_tuple,
            read_timeout=settings.bedrock.read_timeout_seconds,
        )

    async def complete(
        self,
        system_instruction: str,
        user_text: str,
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LlmCompletion:
        """Run a Bedrock ``converse`` call and return the aggregate text output."""

        inference_cfg = {
            "maxTokens": max_tokens or settings.bedrock.max_tokens,
            "temperature": (
                temperature
                if temperature is not None
                else settings.bedrock.temperature
            ),
            "topP": settings.bedrock.top_p,
        }

        def _call() -> LlmCompletion:
            response = self._client.converse(
                modelId=self._model_id,
                system=[{"text": system_instruction}],
                messages=[{"role": "user", "content": [{"text": user_text}]}],
                inferenceConfig=inference_cfg,
            )
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            usage = response.get("usage") or {}
            return LlmCompletion(
                text="\n".join(texts).strip(),
                tokens_used=usage.get("totalTokens"),
            )

        try:
            return await run_in_threadpool(_call)
        except (BotoCoreError, ClientError) as exc:
            raise LlmInvocationError(str(exc)) from exc


@lru_cache(maxsize=1)
def get_llm_client() -> BedrockLlmClient:
    return BedrockLlmClient()


__all__ = ["BedrockLlmClient", "LlmCompletion", "LlmInvocationError", "get_llm_client"]
