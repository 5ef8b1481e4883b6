"""
Financial Advice Service
========================
Asks an LLM for actionable insights on a financial summary.

Advice is read-only: whatever happens here, financial data is never
touched. Every failure (missing key, provider error, empty answer)
turns into the configured failure message; nothing is raised to the
caller.
"""

import logging
import time
from typing import Any, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from prometheus_client import Counter, Histogram

from config import Config


logger = logging.getLogger(__name__)


DEFAULT_FAILURE_MESSAGE = "Maaf, gagal menganalisis data saat ini."

ADVICE_PROMPT = (
    "As a professional financial consultant for a restaurant, analyze this "
    "financial data and provide 3 actionable insights in {language}: {summary}"
)


advice_requests = Counter(
    'advice_requests_total',
    'Financial advice requests',
    ['provider', 'result']
)
advice_duration = Histogram(
    'advice_request_duration_seconds',
    'Financial advice LLM latency',
    ['provider']
)


class FinancialAdvisor:
    """LLM-backed financial advisor ('openai' or 'claude')."""

    def __init__(
        self,
        provider: str = "openai",
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        language: str = "Indonesian",
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
        enabled: bool = True,
        client: Any = None
    ):
        if provider not in ("openai", "claude"):
            raise ValueError(f"Unknown LLM provider: {provider}. Use 'claude' or 'openai'")

        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.language = language
        self.failure_message = failure_message
        self.enabled = enabled

        # Lazy-loaded unless injected
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> 'FinancialAdvisor':
        advice = config.advice
        return cls(
            provider=advice.llm_provider,
            api_key=advice.llm_api_key,
            model=advice.llm_model,
            max_tokens=advice.max_tokens,
            temperature=advice.temperature,
            language=advice.language,
            failure_message=advice.failure_message,
            enabled=config.features.enable_advice
        )

    def _get_client(self):
        """Get or create the provider client."""
        if self._client is None:
            if not self.api_key:
                raise RuntimeError(f"No API key configured for {self.provider}")

            if self.provider == "claude":
                self._client = AsyncAnthropic(api_key=self.api_key)
            else:
                self._client = AsyncOpenAI(api_key=self.api_key)

        return self._client

    def build_prompt(self, summary: str) -> str:
        return ADVICE_PROMPT.format(language=self.language, summary=summary)

    async def _complete(self, prompt: str) -> str:
        client = self._get_client()

        if self.provider == "claude":
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}]
            )
            return response.content[0].text

        response = await client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}]
        )
        return response.choices[0].message.content

    async def get_advice(self, summary: str) -> str:
        """
        Get advisory text for a financial summary.

        Args:
            summary: Plain-text figures (sales, expenses, profit, breakdown)

        Returns:
            Advice text, or the failure message
        """
        if not self.enabled:
            advice_requests.labels(provider=self.provider, result="disabled").inc()
            logger.info("Financial advice disabled")
            return self.failure_message

        start_time = time.time()

        try:
            text = await self._complete(self.build_prompt(summary))

            if not text or not text.strip():
                raise RuntimeError("Empty advice response")

            duration = time.time() - start_time
            advice_duration.labels(provider=self.provider).observe(duration)
            advice_requests.labels(provider=self.provider, result="success").inc()

            logger.info(f"Advice received: {len(text)} chars in {duration:.3f}s (model: {self.model})")

            return text.strip()

        except Exception as e:
            advice_requests.labels(provider=self.provider, result="error").inc()
            logger.error(f"Financial advice error ({self.provider}): {str(e)}")
            return self.failure_message
