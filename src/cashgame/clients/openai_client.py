"""OpenAI client used as the till analyst's reasoning collaborator."""

from dataclasses import dataclass
from typing import Any

import openai
import structlog

from cashgame.config import get_settings
from cashgame.errors import UpstreamUnconfiguredError

logger = structlog.get_logger(__name__)


@dataclass
class OpenAIResponse:
    """Response from OpenAI API."""

    content: str
    stop_reason: str
    usage: dict[str, int]


class OpenAIClient:
    """Client for OpenAI chat completions in JSON mode.

    Also supports OpenAI-compatible APIs via a custom base_url. The SDK
    client is created on first use so that a missing key surfaces as a
    configuration error at call time, not at construction.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        settings_key = (
            settings.openai_api_key.get_secret_value() if settings.analyst_configured else None
        )
        self._api_key = api_key or settings_key
        self._base_url = base_url or settings.openai_base_url
        self._model = model or settings.analyst_model
        self._max_tokens = max_tokens or settings.analyst_max_tokens
        self._temperature = (
            temperature if temperature is not None else settings.analyst_temperature
        )

        self._client: openai.AsyncOpenAI | None = None
        client_name = "openai_compatible" if self._base_url else "openai"
        self._logger = logger.bind(client=client_name, model=self._model)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        """Get or create the SDK client."""
        if not self._api_key:
            raise UpstreamUnconfiguredError(
                "AI analysis is not configured. Please contact support."
            )
        if self._client is None:
            client_kwargs: dict[str, Any] = {"api_key": self._api_key}
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client

    def _parse_response(
        self, response: openai.types.chat.ChatCompletion
    ) -> OpenAIResponse:
        """Parse OpenAI response into our format."""
        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""

        stop_reason_map = {
            "stop": "end_turn",
            "length": "max_tokens",
            "content_filter": "content_filter",
        }
        finish_reason = choice.finish_reason if choice else None
        stop_reason = stop_reason_map.get(finish_reason or "stop", "end_turn")

        return OpenAIResponse(
            content=content,
            stop_reason=stop_reason,
            usage={
                "input_tokens": response.usage.prompt_tokens if response.usage else 0,
                "output_tokens": response.usage.completion_tokens if response.usage else 0,
            },
        )

    async def complete_json(self, system_prompt: str, user_prompt: str) -> OpenAIResponse:
        """Ask for a single JSON object answer.

        Args:
            system_prompt: Instructions describing the expected JSON shape.
            user_prompt: The facts to reason about.

        Returns:
            OpenAIResponse whose content should be a JSON object.
        """
        client = self._get_client()

        self._logger.debug(
            "generating_response",
            prompt_chars=len(system_prompt) + len(user_prompt),
        )

        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed
