"""LLM gateway for Anthropic Claude models."""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Optional

import anthropic
from anthropic import AsyncAnthropic

from vibeproxy.constants import DEFAULT_MAX_TOKENS, MODEL_CAPABILITIES, SUPPORTED_MODELS
from vibeproxy.errors import UpstreamError

if TYPE_CHECKING:
    from vibeproxy.config import Config

logger = logging.getLogger(__name__)

FINISH_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
}


@dataclass
class ModelDescriptor:
    """Descriptor for an LLM model."""

    provider: Literal["anthropic"]
    name: str
    max_output_tokens: int
    n_ctx: int = 200000


class LLM:
    """Anthropic Claude gateway.

    Every call is independent: no retries, no streaming, no conversation state.
    """

    def __init__(
        self,
        descriptor: ModelDescriptor,
        api_key: Optional[str],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: Optional[AsyncAnthropic] = None,
    ):
        """Initialize LLM client.

        Args:
            descriptor: Model descriptor
            api_key: Anthropic API key
            max_tokens: Token ceiling for single-prompt completions
            client: Optional pre-built Anthropic client
        """
        self.descriptor = descriptor
        self.max_tokens = max_tokens

        if descriptor.provider != "anthropic":
            raise ValueError(f"Only Anthropic models are supported. Got: {descriptor.provider}")

        self.client = client or AsyncAnthropic(api_key=api_key, max_retries=0)

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> dict[str, str]:
        """Send a prompt as the sole user turn.

        Args:
            prompt: Prompt text
            max_tokens: Optional token ceiling override

        Returns:
            Dict with 'role' and 'content'

        Raises:
            UpstreamError: If the API call fails
        """
        response = await self._create(
            model=self.descriptor.name,
            max_tokens=max_tokens or self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return {"role": "assistant", "content": self.extract_text(response)}

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """Forward a multi-message conversation to the API.

        System turns inside ``messages`` are folded into the system prompt.

        Args:
            messages: Messages with 'role' and 'content'
            system: Optional system prompt
            model: Optional model alias or upstream model name
            max_tokens: Optional token ceiling override

        Returns:
            Raw Anthropic message object
        """
        system_parts = [system] if system else []
        chat_messages = []
        for m in messages:
            if m["role"] == "system":
                system_parts.append(m["content"])
            else:
                chat_messages.append({"role": m["role"], "content": m["content"]})

        kwargs: dict[str, Any] = {
            "model": self.resolve_model_name(model) if model else self.descriptor.name,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": chat_messages,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        return await self._create(**kwargs)

    async def _create(self, **kwargs: Any) -> Any:
        """Call messages.create, translating client errors to UpstreamError."""
        logger.debug("Calling Anthropic model %s", kwargs.get("model"))
        try:
            return await self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            logger.error("Anthropic API error %s: %s", e.status_code, e.message)
            raise UpstreamError("anthropic", e.status_code, e.response.text) from e
        except anthropic.APIError as e:
            logger.error("Anthropic request failed: %s", e)
            raise UpstreamError("anthropic", None, str(e)) from e

    @staticmethod
    def extract_text(response: Any) -> str:
        """Concatenate the text blocks of a response."""
        return "".join(block.text for block in response.content if block.type == "text")

    @classmethod
    def to_openai_completion(cls, response: Any) -> dict[str, Any]:
        """Normalize an Anthropic message to an OpenAI chat completion.

        Args:
            response: Anthropic message object

        Returns:
            OpenAI-compatible completion dict
        """
        prompt_tokens = response.usage.input_tokens
        completion_tokens = response.usage.output_tokens

        return {
            "id": response.id,
            "object": "chat.completion",
            "created": int(time.time()),
            "model": response.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": cls.extract_text(response)},
                    "finish_reason": FINISH_REASONS.get(response.stop_reason, "stop"),
                }
            ],
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }

    @classmethod
    def parse_model_string(cls, model_str: str) -> ModelDescriptor:
        """Parse model string into ModelDescriptor.

        Args:
            model_str: Model string (e.g., "anthropic:claude-sonnet-4-5")

        Returns:
            ModelDescriptor

        Raises:
            ValueError: If model string is invalid
        """
        if model_str not in SUPPORTED_MODELS:
            raise ValueError(
                f"Unsupported model: {model_str}. "
                f"Supported: {', '.join(SUPPORTED_MODELS.keys())}"
            )

        model_config = SUPPORTED_MODELS[model_str]
        return ModelDescriptor(
            provider=model_config["provider"],
            name=model_config["name"],
            max_output_tokens=model_config["max_output_tokens"],
            n_ctx=model_config["n_ctx"],
        )

    @classmethod
    def from_config(cls, config: "Config") -> "LLM":
        """Build the gateway from configuration.

        Model strings that are not known aliases are used as upstream names.
        """
        if config.default_model in SUPPORTED_MODELS:
            descriptor = cls.parse_model_string(config.default_model)
        else:
            descriptor = ModelDescriptor(
                provider="anthropic",
                name=config.default_model,
                max_output_tokens=config.max_tokens,
            )
        return cls(descriptor, config.anthropic_api_key, max_tokens=config.max_tokens)

    @classmethod
    def resolve_model_name(cls, model: str) -> str:
        """Map a model alias to its upstream name; unknown names pass through."""
        if model in SUPPORTED_MODELS:
            return SUPPORTED_MODELS[model]["name"]
        return model

    @classmethod
    def list_models(cls) -> list[str]:
        """List all supported model strings.

        Returns:
            List of model strings
        """
        return list(SUPPORTED_MODELS.keys())

    @classmethod
    def describe_models(cls) -> dict[str, dict[str, Any]]:
        """Describe every supported model alias with its limits and capabilities."""
        described = {}
        for alias in cls.list_models():
            descriptor = cls.parse_model_string(alias)
            described[alias] = {
                "name": descriptor.name,
                "n_ctx": descriptor.n_ctx,
                "max_output_tokens": descriptor.max_output_tokens,
                **MODEL_CAPABILITIES,
            }
        return described
