"""Google Gemini client shared by the chat and session metadata services."""

import asyncio
import logging
import re
from typing import Any

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
)


logger = logging.getLogger(__name__)

# Counseling transcripts talk about self-harm by nature; only block the worst.
SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
}

_FINISH_REASON_SAFETY = 3


class GeminiClient:
    """Thin async wrapper around ``google.generativeai``.

    Exposes the two capabilities the application needs: one-shot
    ``generate_content`` and multi-turn ``chat``. Every call is bounded by
    ``settings.ai_request_timeout`` and retried on rate limit / quota errors.
    """

    # Class-level semaphore caps concurrent Gemini calls per process
    _rate_limit_semaphore: asyncio.Semaphore | None = None

    def __init__(self, api_key: str | None = None, model_name: str | None = None):
        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise AIConfigurationError("Gemini API key not configured")

        try:
            genai.configure(api_key=api_key)
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {str(e)}")
            raise AIConfigurationError(f"Failed to initialize AI service: {str(e)}") from e

        self.model_name = model_name or settings.gemini_model
        self.timeout = settings.ai_request_timeout

    @classmethod
    def _get_semaphore(cls) -> asyncio.Semaphore:
        if cls._rate_limit_semaphore is None:
            cls._rate_limit_semaphore = asyncio.Semaphore(settings.ai_requests_per_minute)
        return cls._rate_limit_semaphore

    def _build_model(
        self,
        temperature: float,
        json_mode: bool = False,
        system_instruction: str | None = None,
    ):
        return genai.GenerativeModel(
            model_name=self.model_name,
            safety_settings=SAFETY_SETTINGS,
            system_instruction=system_instruction,
            generation_config=genai.types.GenerationConfig(
                candidate_count=1,
                max_output_tokens=settings.gemini_max_tokens,
                temperature=temperature,
                response_mime_type="application/json" if json_mode else None,
            ),
        )

    async def generate_content(
        self,
        prompt: str,
        temperature: float | None = None,
        json_mode: bool = True,
    ) -> str:
        """Run a single prompt and return the response text."""
        model = self._build_model(
            temperature=settings.meta_temperature if temperature is None else temperature,
            json_mode=json_mode,
        )
        return await self._call_with_timeout(model.generate_content_async, prompt)

    async def chat(
        self,
        history: list[dict[str, str]],
        message: str,
        system_instruction: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """Continue a conversation.

        Args:
            history: Prior turns as ``{"role": "user"|"model", "content": str}``.
            message: The new user message.
            system_instruction: Mentor instruction block for this call.
            temperature: Overrides ``settings.chat_temperature``.
        """
        model = self._build_model(
            temperature=settings.chat_temperature if temperature is None else temperature,
            system_instruction=system_instruction,
        )
        session = model.start_chat(
            history=[
                {"role": item["role"], "parts": [item["content"]]}
                for item in history
                if item.get("role") in ("user", "model")
            ]
        )
        return await self._call_with_timeout(session.send_message_async, message)

    async def _call_with_timeout(self, call, payload: Any) -> str:
        try:
            return await asyncio.wait_for(self._generate_with_retry(call, payload), timeout=self.timeout)
        except TimeoutError:
            logger.warning(f"Gemini call exceeded {self.timeout}s timeout")
            raise AITimeoutError("AI request timed out") from None

    @retry(
        retry=retry_if_exception_type(
            (AIRateLimitError, AIQuotaExceededError, AIServiceUnavailableError)
        ),
        stop=stop_after_attempt(settings.ai_max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.ai_retry_backoff_factor,
            min=settings.ai_retry_min_wait,
            max=settings.ai_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _generate_with_retry(self, call, payload: Any) -> str:
        async with self._get_semaphore():
            try:
                response = await call(payload)
            except Exception as e:
                raise self._map_error(e) from e
            return self._extract_text(response)

    def _extract_text(self, response) -> str:
        if not response:
            raise AIServiceError("Empty response from AI service")

        candidates = getattr(response, "candidates", None)
        if candidates:
            finish_reason = getattr(candidates[0], "finish_reason", None)
            if finish_reason == _FINISH_REASON_SAFETY:
                logger.error("Gemini response blocked by safety filters")
                raise AIContentFilterError()

        try:
            text = response.text
        except (ValueError, IndexError) as e:
            # .text raises when the candidate has no parts
            raise AIServiceError("AI returned empty content") from e

        if not text or not text.strip():
            raise AIServiceError("AI returned empty text response")
        return text

    def _map_error(self, error: Exception) -> AIServiceError:
        if isinstance(error, AIServiceError):
            return error

        full_error_msg = str(error)
        error_msg = full_error_msg.lower()
        retry_delay = self._extract_retry_delay(full_error_msg)

        # Check quota first, as it often includes "429"
        if "quota" in error_msg:
            logger.error(f"Quota exceeded. Retry after {retry_delay}s")
            return AIQuotaExceededError(
                f"API quota exceeded. Please try again in {retry_delay} seconds",
                details={"retry_after": retry_delay},
            )
        if "429" in full_error_msg or ("rate" in error_msg and "limit" in error_msg):
            logger.warning(f"Rate limit hit. Retry after {retry_delay}s")
            return AIRateLimitError(
                f"Rate limit exceeded. Retry after {retry_delay} seconds",
                retry_after=retry_delay,
            )
        if "safety" in error_msg or "blocked" in error_msg:
            return AIContentFilterError()
        if "503" in full_error_msg or "unavailable" in error_msg:
            logger.warning(f"Gemini unavailable: {full_error_msg}")
            return AIServiceUnavailableError()

        logger.error(f"Gemini API call failed: {full_error_msg}")
        return AIServiceError(f"AI generation failed: {full_error_msg}")

    @staticmethod
    def _extract_retry_delay(error_message: str) -> int:
        # Pattern: "Please retry in 32.984803332s"
        match = re.search(r"retry in (\d+(?:\.\d+)?)s", error_message)
        if match:
            return int(float(match.group(1))) + 1
        return settings.ai_retry_min_wait
