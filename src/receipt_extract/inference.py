"""Vision backend calls with model fallback, using pydantic-ai."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from anthropic import AsyncAnthropic
from pydantic_ai import Agent, BinaryContent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.settings import ModelSettings

from receipt_extract.config import check_api_key
from receipt_extract.errors import (
    BackendError,
    BackendFault,
    BackendUnavailableError,
    ConfigurationError,
)
from receipt_extract.prompt import PROMPT_VERSION

if TYPE_CHECKING:
    from receipt_extract.config import ExtractionConfig
    from receipt_extract.models import ExtractionRequest

logger = logging.getLogger(__name__)

AgentFactory = Callable[[str, "ExtractionConfig", AsyncAnthropic], Agent[None, str]]


def create_agent(
    model_name: str, config: ExtractionConfig, anthropic_client: AsyncAnthropic
) -> Agent[None, str]:
    """Create a plain-text pydantic-ai Agent for one Anthropic model.

    Names may be bare or carry an ``anthropic:`` prefix; other providers
    raise ConfigurationError. The caller owns ``anthropic_client`` and
    closes it.
    """
    provider_name, _, bare_name = model_name.rpartition(":")
    if provider_name not in ("", "anthropic"):
        msg = f"Unsupported model provider {provider_name!r} in {model_name!r}"
        raise ConfigurationError(msg)
    model = AnthropicModel(
        bare_name, provider=AnthropicProvider(anthropic_client=anthropic_client)
    )
    return Agent(
        model,
        output_type=str,
        model_settings=ModelSettings(max_tokens=config.max_tokens),
    )


def is_model_unavailable(exc: BaseException) -> bool:
    """Whether ``exc`` means the model does not exist for this credential."""
    if not isinstance(exc, ModelHTTPError):
        return False
    if exc.status_code == 404:
        return True
    return _error_type(exc.body) == "not_found_error"


def _error_type(body: object) -> str | None:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        body = error
    value = body.get("type")
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class Trying:
    """About to call ``models[index]``."""

    index: int
    last_unavailable: BaseException | None = None


@dataclass(frozen=True)
class Succeeded:
    model: str
    reply: str


@dataclass(frozen=True)
class Failed:
    error: BackendError


AttemptState = Trying | Succeeded | Failed


class InferenceClient:
    """Send extraction requests, falling back through the configured models.

    Only "model unavailable" errors move on to the next model. Every other
    error ends the chain immediately.
    """

    def __init__(
        self,
        config: ExtractionConfig,
        *,
        agent_factory: AgentFactory = create_agent,
    ) -> None:
        self.config = config
        self.agent_factory = agent_factory

    async def infer(self, request: ExtractionRequest) -> str:
        """Return the raw text reply for ``request``.

        One Anthropic client, with SDK retries disabled, serves every
        attempt and is closed before returning.
        """
        check_api_key(self.config.api_key)
        if not self.config.models:
            msg = "No backend models configured"
            raise ConfigurationError(msg)

        logger.info("Extracting with prompt v%s", PROMPT_VERSION)
        prompt = _to_user_content(request)
        anthropic_client = AsyncAnthropic(api_key=self.config.api_key, max_retries=0)
        try:
            state: AttemptState = Trying(index=0)
            while isinstance(state, Trying):
                state = await self._step(state, prompt, anthropic_client)
        finally:
            await anthropic_client.close()

        if isinstance(state, Failed):
            raise state.error
        logger.info("Extraction reply received from %s", state.model)
        return state.reply

    async def _step(
        self, state: Trying, prompt: list[Any], anthropic_client: AsyncAnthropic
    ) -> AttemptState:
        """Run one attempt and return the next state."""
        models = self.config.models
        if state.index >= len(models):
            msg = f"No available model among: {', '.join(models)}"
            error = BackendUnavailableError(msg)
            error.__cause__ = state.last_unavailable
            return Failed(error)

        model_name = models[state.index]
        logger.info(
            "Trying model %s (%d/%d)", model_name, state.index + 1, len(models)
        )
        try:
            agent = self.agent_factory(model_name, self.config, anthropic_client)
        except ConfigurationError:
            raise
        except Exception as exc:
            msg = f"Cannot create agent for model {model_name}: {exc}"
            raise ConfigurationError(msg) from exc

        try:
            result = await agent.run(prompt)
        except Exception as exc:
            if is_model_unavailable(exc):
                logger.warning("Model %s unavailable: %s", model_name, exc)
                return Trying(index=state.index + 1, last_unavailable=exc)
            logger.error("Backend call to %s failed: %s", model_name, exc)
            fault = BackendFault(f"Backend call to {model_name} failed: {exc}")
            fault.__cause__ = exc
            return Failed(fault)

        return Succeeded(model=model_name, reply=str(result.output))


def _to_user_content(request: ExtractionRequest) -> list[Any]:
    """Translate content blocks into pydantic-ai user content, in order."""
    content: list[Any] = [
        BinaryContent(data=block.data, media_type=block.media_type)
        for block in request.media
    ]
    content.append(request.instruction.text)
    return content
