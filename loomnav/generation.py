"""Reference generator talking to hosted chat-completion APIs over ``httpx``.

OpenAI-compatible providers return ``n`` choices from one request; Anthropic
is asked once per candidate. Every completion is appended to the forest under
the generation context with ``source="model"`` metadata.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence
from typing import Any

import httpx
from loguru import logger

from .errors import GenerationError, InvariantError, ValidationError
from .nodes import GenerateOptions, Message, NodeMetadata, NodeSnapshot, RootConfig
from .protocols import ForestProtocol
from .runtime.config import ProviderSettings

MODEL_SOURCE = "model"
REQUEST_TIMEOUT_SECONDS = 120.0
ANTHROPIC_VERSION = "2023-06-01"

SUPPORTED_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "openrouter")
DEFAULT_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}
API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def parse_model_string(model_string: str) -> tuple[str, str]:
    """Split ``provider/model``; the model id itself may contain ``/``."""
    provider, sep, model = model_string.strip().partition("/")
    if not sep or not provider or not model:
        raise ValidationError(
            'Invalid model format. Expected "provider/model" '
            '(e.g., "anthropic/claude-3-5-sonnet-latest").'
        )
    if provider not in SUPPORTED_PROVIDERS:
        raise ValidationError(
            f'Unsupported provider "{provider}". Supported providers: {", ".join(SUPPORTED_PROVIDERS)}.'
        )
    return provider, model


def _wire_messages(messages: Sequence[Message]) -> list[dict[str, str]]:
    return [{"role": message.role, "content": message.content} for message in messages]


class HttpGenerator:
    def __init__(
        self,
        forest: ForestProtocol,
        provider_settings: Callable[[str], ProviderSettings],
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.forest = forest
        self._provider_settings = provider_settings
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _endpoint(self, provider: str) -> tuple[str, str]:
        settings = self._provider_settings(provider)
        api_key = settings.api_key or os.environ.get(API_KEY_ENV_VARS[provider])
        if not api_key:
            raise GenerationError(
                f"No API key for {provider}: set {API_KEY_ENV_VARS[provider]} "
                f"or providers.{provider}.api_key in the config file."
            )
        base_url = (settings.base_url or DEFAULT_BASE_URLS[provider]).rstrip("/")
        return base_url, api_key

    async def _post(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(url, headers=headers, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip()[:300]
            raise GenerationError(
                f"{url} returned HTTP {exc.response.status_code}: {detail}"
            ) from exc
        except httpx.RequestError as exc:
            raise GenerationError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError(f"Invalid JSON from {url}") from exc

    async def _complete_openai(
        self,
        config: RootConfig,
        messages: Sequence[Message],
        options: GenerateOptions,
    ) -> list[str]:
        base_url, api_key = self._endpoint(config.provider)
        wire = _wire_messages(messages)
        if config.system_prompt:
            wire.insert(0, {"role": "system", "content": config.system_prompt})
        data = await self._post(
            f"{base_url}/chat/completions",
            {"Authorization": f"Bearer {api_key}"},
            {
                "model": config.model,
                "messages": wire,
                "n": options.n,
                "temperature": options.temperature,
                "max_tokens": options.max_tokens,
            },
        )
        try:
            return [choice["message"]["content"] or "" for choice in data["choices"]]
        except (KeyError, TypeError) as exc:
            raise GenerationError("Unexpected chat completion response shape") from exc

    async def _complete_anthropic(
        self,
        config: RootConfig,
        messages: Sequence[Message],
        options: GenerateOptions,
    ) -> list[str]:
        base_url, api_key = self._endpoint(config.provider)
        body: dict[str, Any] = {
            "model": config.model,
            "messages": _wire_messages(messages),
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        if config.system_prompt:
            body["system"] = config.system_prompt
        headers = {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}

        async def one() -> str:
            data = await self._post(f"{base_url}/messages", headers, body)
            try:
                return "".join(
                    block.get("text", "") for block in data["content"] if block.get("type") == "text"
                )
            except (KeyError, TypeError, AttributeError) as exc:
                raise GenerationError("Unexpected messages response shape") from exc

        return list(await asyncio.gather(*(one() for _ in range(options.n))))

    async def generate(
        self,
        root: NodeSnapshot,
        messages: Sequence[Message],
        options: GenerateOptions,
    ) -> list[NodeSnapshot]:
        config = root.config
        if config is None:
            raise InvariantError(f"Root {root.id} has no model configuration")
        if config.provider == "anthropic":
            texts = await self._complete_anthropic(config, messages, options)
        else:
            texts = await self._complete_openai(config, messages, options)
        logger.info("{}/{} returned {} completion(s)", config.provider, config.model, len(texts))

        nodes: dict[str, NodeSnapshot] = {}
        for text in texts:
            node = await self.forest.append(
                root.id,
                [*messages, Message(role="assistant", content=text)],
                NodeMetadata(source=MODEL_SOURCE),
            )
            nodes.setdefault(node.id, node)
        return list(nodes.values())
