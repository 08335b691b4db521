import logging
import re
from typing import Any

import openai
from openai import AsyncOpenAI

from app.config import Settings
from app.models.analysis import AnalysisRequest, AnalysisResult
from app.models.image import EncodedPayload
from app.services.prompts import EMBRYO_ANALYSIS_INSTRUCTIONS, AnalysisInstructions
from app.utils.exceptions import (
    ConfigurationError,
    EmptyResponse,
    ModelError,
    NetworkError,
)

logger = logging.getLogger(__name__)

_SECRET_RE = re.compile(r"sk-[A-Za-z0-9_-]+")


def mask_secrets(text: str) -> str:
    """Mask API keys and tokens before an error message is logged or stored."""
    return _SECRET_RE.sub("sk-***", text)


def _build_api_options(model: str, temperature: float) -> dict:
    """Build model-specific request options."""
    if model.startswith("o"):
        # o-series reasoning models (o1, o3, o4-mini, etc.)
        # - no temperature support
        # - use max_completion_tokens instead of max_tokens
        return {"max_completion_tokens": 4096}
    # gpt-series models (gpt-4-turbo, gpt-4o, gpt-4o-mini, etc.)
    return {"max_tokens": 2048, "temperature": temperature}


class AnalysisClient:
    """Builds the embryo analysis request and performs the single model call.

    The OpenAI client is injected so that the credential never lives in
    module scope and tests can pass any object exposing
    ``chat.completions.create`` as a coroutine.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4-turbo",
        temperature: float = 0.7,
        instructions: AnalysisInstructions = EMBRYO_ANALYSIS_INSTRUCTIONS,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.temperature = temperature
        self.instructions = instructions
        self._system_prompt = instructions.render()

    def build_request(self, payload: EncodedPayload, generation: int = 0) -> AnalysisRequest:
        messages = [
            {"role": "system", "content": self._system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.instructions.user_label},
                    {"type": "image_url", "image_url": {"url": payload.data_uri}},
                ],
            },
        ]
        return AnalysisRequest(
            generation=generation,
            model=self.model,
            messages=messages,
            options=_build_api_options(self.model, self.temperature),
        )

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Issue one chat completion call. No retry: errors surface once."""
        logger.info(
            "Calling OpenAI model=%s generation=%d instructions=v%s",
            request.model, request.generation, self.instructions.version,
        )
        try:
            response = await self.client.chat.completions.create(**request.to_api_kwargs())
        except openai.APIConnectionError as e:
            raise NetworkError(mask_secrets(str(e)), request.generation) from e
        except openai.APIStatusError as e:
            raise ModelError(
                mask_secrets(f"HTTP {e.status_code}: {e.message}"), request.generation
            ) from e
        except openai.APIError as e:
            raise ModelError(mask_secrets(str(e)), request.generation) from e

        text = _first_choice_text(response)
        if not text.strip():
            raise EmptyResponse("Model returned no content", request.generation)

        logger.info("OpenAI response: %d chars for generation %d", len(text), request.generation)
        return AnalysisResult(
            generation=request.generation,
            markdown=text.strip(),
            model=getattr(response, "model", None) or request.model,
        )


def _first_choice_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return (getattr(message, "content", None) or "") if message is not None else ""


def create_analysis_client(settings: Settings) -> AnalysisClient:
    """Build the production client, failing fast when no credential is set."""
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY not configured, cannot analyze images")
        raise ConfigurationError(
            "The analysis service is not configured: set OPENAI_API_KEY."
        )

    kwargs: dict = {
        "api_key": settings.openai_api_key,
        "timeout": settings.openai_timeout_seconds,
        "max_retries": 0,
    }
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url

    return AnalysisClient(
        AsyncOpenAI(**kwargs),
        model=settings.openai_model,
        temperature=settings.openai_temperature,
    )
