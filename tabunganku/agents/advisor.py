"""
Savings Advisor Agent

DESIGN DECISION: We use Gemini to answer free-form questions about the
school's savings, but the model only ever sees the bounded LedgerSummary.

CRITICAL BOUNDARIES:
- CAN: Explain totals, trends and top savers found in the summary
- CAN: Encourage saving habits
- CANNOT: See the full roster or the full transaction history
- CANNOT: Change anything in the ledger
- CANNOT: Break the app. Failures turn into a polite apology text.

FAILURE HANDLING:
- Every attempt is bounded by a timeout
- One retry at most (configurable down to zero)
- Cancellation is never swallowed
- No ledger lock is held while waiting: the summary is built first
"""

import asyncio
import json
from typing import Any, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from tabunganku.config import GeminiSettings, get_settings
from tabunganku.exceptions import AdvisoryUnavailableError, ValidationError
from tabunganku.models.summary import LedgerSummary


FALLBACK_NO_ANSWER = "Maaf, saya tidak dapat menganalisis data saat ini."
FALLBACK_ERROR = (
    "Maaf, terjadi kesalahan saat menghubungi asisten pintar. "
    "Pastikan API Key valid."
)

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_MAX_RETRIES = 1


class AdvisoryResponse(BaseModel):
    """
    What the chat panel displays.

    `degraded` is True whenever the text is a fallback rather than
    a real answer from the model.
    """

    text: str
    degraded: bool = False
    attempts: int = Field(default=0, ge=0)
    error: Optional[str] = None


class SavingsAdvisorAgent:
    """
    AI agent for the savings advisory chat.

    RESPONSIBILITIES:
    - Turn (summary, question) into a prompt
    - Call Gemini with timeout and a single retry
    - Hand back displayable text, or a fallback

    BOUNDARIES:
    - NEVER reads the ledger store directly
    - NEVER raises for model failures from ask()
    """

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_wait_seconds: float = 1.0,
    ):
        """
        Args:
            model: Anything with an async generate_content_async(prompt).
                   If None, a Gemini model is configured from settings.
            settings: Gemini settings; loaded from the environment if needed.
            timeout_seconds: Per-attempt timeout override.
            max_retries: Retry override, clamped to 0..1.
            retry_wait_seconds: Pause before the retry.
        """
        if model is None:
            settings = settings or get_settings().gemini
            model = self._configure_genai(settings)
        self._model = model

        if timeout_seconds is None:
            timeout_seconds = settings.timeout_seconds if settings else DEFAULT_TIMEOUT_SECONDS
        if max_retries is None:
            max_retries = settings.max_retries if settings else DEFAULT_MAX_RETRIES

        self._timeout = timeout_seconds
        self._max_retries = max(0, min(max_retries, 1))
        self._retry_wait = retry_wait_seconds

    @staticmethod
    def _configure_genai(settings: GeminiSettings):
        """Configure Google Generative AI."""
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            }
        )

    @property
    def max_attempts(self) -> int:
        return 1 + self._max_retries

    def build_prompt(self, question: str, summary: LedgerSummary) -> str:
        """Embed the summary context and the user's question."""
        context = json.dumps(summary.to_context(), ensure_ascii=False)

        return f"""You are an intelligent financial assistant for a school savings application called "TabunganKu".

Here is the current school financial data context (JSON):
{context}

User Query: "{question}"

Please answer the user's query based on the data provided.
- Be encouraging and educational about saving money.
- If asked about specific students in the "topSavers" list, mention them.
- Provide insights on trends if asked.
- Use ONLY the data above. If it does not answer the question, say so.
- Keep the answer concise (under 150 words) and formatted nicely.
- Use Indonesian language (Bahasa Indonesia)."""

    async def _generate_once(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._model.generate_content_async(prompt),
            timeout=self._timeout,
        )
        # .text raises ValueError when the candidate was blocked
        return (response.text or "").strip()

    async def generate(self, prompt: str) -> tuple[str, int]:
        """
        Call the model, retrying once.

        Returns:
            (text, attempts) - text may be empty

        Raises:
            AdvisoryUnavailableError: If every attempt failed or timed out
        """
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self._retry_wait),
                retry=retry_if_exception_type(Exception),
                reraise=True,
            ):
                with attempt:
                    attempts += 1
                    text = await self._generate_once(prompt)
        except Exception as e:
            reason = str(e) or type(e).__name__
            raise AdvisoryUnavailableError(
                f"Advisor failed after {attempts} attempt(s): {reason}"
            ) from e
        return text, attempts

    async def ask(self, question: str, summary: LedgerSummary) -> AdvisoryResponse:
        """
        Answer a question about the summarized ledger.

        Model failures become a degraded response with fallback text.

        Raises:
            ValidationError: If the question is blank
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Pertanyaan tidak boleh kosong.")

        try:
            text, attempts = await self.generate(self.build_prompt(question, summary))
        except AdvisoryUnavailableError as e:
            return AdvisoryResponse(
                text=FALLBACK_ERROR,
                degraded=True,
                attempts=self.max_attempts,
                error=e.message,
            )

        if not text:
            return AdvisoryResponse(text=FALLBACK_NO_ANSWER, degraded=True, attempts=attempts)
        return AdvisoryResponse(text=text, attempts=attempts)
