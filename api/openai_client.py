import time

import openai

from models.unified_response import TokenUsage, UnifiedResponse
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """
    OpenAI chat-completions client returning UnifiedResponse.

    Used by the pipeline for conversation replies, answer synthesis, intent
    classification and result rephrasing.
    """

    provider_name = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The name of the model to use (default: gpt-4o-mini)
            **kwargs: timeout (seconds) for the underlying SDK client
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.client = openai.OpenAI(api_key=api_key, timeout=kwargs.get("timeout", 60.0))
        self.model_name = model_name

    def get_completion(
        self, prompt: str, *, system_prompt: str | None = None, **kwargs
    ) -> UnifiedResponse:
        """
        Get a completion from the OpenAI API.

        Args:
            prompt: The user prompt
            system_prompt: Optional system message prepended to the conversation
            **kwargs: Additional parameters:
                - model: Override the default model for this call
                - temperature: Controls randomness (0.0 to 2.0)
                - max_tokens: Maximum number of tokens to generate

        Returns:
            UnifiedResponse: Normalized response object

        IMPORTANT: Never raises exceptions - returns UnifiedResponse with error instead
        """
        request_id = self._generate_request_id()
        start_time = time.time()

        model = kwargs.get("model", self.model_name)
        temperature = kwargs.get("temperature", 0.7)
        max_tokens = kwargs.get("max_tokens", 1024)

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self._build_messages(prompt, system_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
            )

            latency_ms = self._measure_latency(start_time)
            text = response.choices[0].message.content or ""

            usage = getattr(response, "usage", None)
            token_usage = TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            )

            finish_reason = self._normalize_finish_reason(
                response.choices[0].finish_reason if response.choices else None
            )

            logger.info(
                "OpenAI completion successful",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": model,
                        "latency_ms": latency_ms,
                        "tokens": token_usage.total_tokens,
                    }
                },
            )

            return UnifiedResponse(
                request_id=request_id,
                text=text,
                provider=self.provider_name,
                model=model,
                latency_ms=latency_ms,
                token_usage=token_usage,
                finish_reason=finish_reason,
            )

        except Exception as e:
            latency_ms = self._measure_latency(start_time)
            error = self._normalize_error(e)

            logger.error(
                f"OpenAI completion failed: {error.code}",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": model,
                        "error_code": error.code,
                        "error_message": error.message,
                        "retryable": error.retryable,
                    }
                },
            )

            return self._create_error_response(
                request_id=request_id, error=error, latency_ms=latency_ms, model=model
            )
