"""Translation provider abstractions."""

from __future__ import annotations

import json
import os
import sys
from abc import ABC, abstractmethod
from typing import Any, Mapping

from .errors import (
    ServiceError,
    TranslationProviderConfigurationError,
)


class TranslationProvider(ABC):
    """Abstract adapter for translation providers."""

    name = "provider"

    @abstractmethod
    def translate(
        self,
        text: str,
        *,
        instructions: str | None = None,
        source_language: str | None,
        target_language: str,
        model: str | None = None,
    ) -> str:
        """Translate ``text`` and return the translation only."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    name = "echo"

    def translate(
        self,
        text: str,
        *,
        instructions: str | None = None,
        source_language: str | None,
        target_language: str,
        model: str | None = None,
    ) -> str:
        return text


class OpenAITranslationProvider(TranslationProvider):
    """Translation provider that uses OpenAI models through the Responses API."""

    DEFAULT_MODEL = "gpt-5-mini"
    name = "openai"

    def __init__(
        self,
        *,
        debug: bool = False,
        timeout: float | None = None,
        kind: str | None = None,
        credentials: Mapping[str, str | None] | None = None,
    ) -> None:
        self.debug = debug
        self.timeout = timeout
        self.credentials = dict(credentials or {})
        provider_value = kind or self._setting("LLM_PROVIDER") or "openai"
        normalized = provider_value.strip().lower()
        if normalized in {"azure_open_ai", "azure-openai"}:
            normalized = "azure_openai"
        if normalized not in {"openai", "azure_openai"}:
            normalized = "openai"

        self.provider_kind = normalized
        self._client, self._default_model = self._build_client()

    def _setting(self, name: str) -> str | None:
        return self.credentials.get(name) or os.getenv(name)

    def _build_client(self) -> tuple[Any, str]:
        if self.provider_kind == "azure_openai":
            return self._build_azure_client()

        return self._build_openai_client()

    def _client_options(self) -> dict[str, Any]:
        return {"timeout": self.timeout} if self.timeout else {}

    def _build_openai_client(self) -> tuple[Any, str]:
        api_key = self._setting("OPENAI_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        from openai import OpenAI

        return OpenAI(api_key=api_key, **self._client_options()), self.DEFAULT_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        api_key = self._setting("AZURE_OPENAI_API_KEY")
        endpoint = self._setting("AZURE_OPENAI_ENDPOINT")
        api_version = self._setting("AZURE_OPENAI_API_VERSION")
        deployment_name = self._setting("AZURE_OPENAI_DEPLOYMENT_NAME")

        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": api_key,
                "AZURE_OPENAI_ENDPOINT": endpoint,
                "AZURE_OPENAI_API_VERSION": api_version,
                "AZURE_OPENAI_DEPLOYMENT_NAME": deployment_name,
            }.items()
            if not value
        ]
        if missing:
            raise TranslationProviderConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        from openai import AzureOpenAI

        client = AzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint,
            **self._client_options(),
        )
        return client, deployment_name  # type: ignore[return-value]

    def build_system_prompt(
        self,
        *,
        instructions: str | None,
        source_language: str | None,
        target_language: str,
    ) -> str:
        source_hint = f" from {source_language}" if source_language else ""
        prompt = (
            "You are a professional translator. Translate the following text"
            f"{source_hint} into natural and fluent {target_language}. "
            "Do not include any other explanations or supplementary text other "
            "than the translated text. Do not wrap the answer in markdown code fences."
        )
        if instructions:
            prompt = f"{prompt}\n\n{instructions}"
        return prompt

    def translate(
        self,
        text: str,
        *,
        instructions: str | None = None,
        source_language: str | None,
        target_language: str,
        model: str | None = None,
    ) -> str:
        if not text.strip():
            return ""

        system_prompt = self.build_system_prompt(
            instructions=instructions,
            source_language=source_language,
            target_language=target_language,
        )
        self._log_debug("provider.request.system_prompt", system_prompt)
        self._log_debug("provider.request.text", text)

        translated = self._invoke_model(
            system_prompt=system_prompt,
            text=text,
            model=model or self._default_model,
        )
        self._log_debug("provider.response.text", translated)
        return translated

    def _invoke_model(self, *, system_prompt: str, text: str, model: str) -> str:
        """Call the OpenAI Responses API and return the translated text."""

        try:
            response = self._client.responses.create(
                model=model,
                input=[
                    {
                        "role": "system",
                        "content": [
                            {"type": "input_text", "text": system_prompt},
                        ],
                    },
                    {
                        "role": "user",
                        "content": [{"type": "input_text", "text": text}],
                    },
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise ServiceError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))
        return self._extract_text(response)

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not getattr(self, "debug", False):
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[folio][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        for attr in ("model_dump_json", "model_dump"):
            candidate = getattr(response, attr, None)
            if candidate:
                try:
                    data = candidate()
                    if isinstance(data, str):
                        return json.loads(data)
                    return data
                except Exception:
                    continue
        return str(response)

    def _extract_text(self, response: Any) -> str:
        """Pull the output text out of a Responses API result."""

        output_text = getattr(response, "output_text", None)
        if hasattr(output_text, "value"):
            output_text = output_text.value
        if output_text:
            return strip_code_fence(str(output_text))

        parts: list[str] = []
        for item in getattr(response, "output", None) or []:
            for part in getattr(item, "content", None) or []:
                text_value = getattr(part, "text", None)
                if hasattr(text_value, "value"):
                    text_value = text_value.value
                if text_value:
                    parts.append(str(text_value))
        if parts:
            return strip_code_fence("".join(parts))

        raise ServiceError("Text not found in translation response or format is incorrect.")


class LegacyOpenAITranslationProvider(OpenAITranslationProvider):
    """Translation provider that uses the Chat Completions API for compatibility."""

    name = "legacy-openai"

    def _invoke_model(self, *, system_prompt: str, text: str, model: str) -> str:
        """Call the Chat Completions API and return the translated text."""

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=0,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": text},
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise ServiceError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message is not None else None
            if isinstance(content, list):
                content = "".join(
                    str(part.get("text", "")) if isinstance(part, dict) else str(getattr(part, "text", ""))
                    for part in content
                )
            if content:
                return strip_code_fence(str(content))

        raise ServiceError("Text not found in translation response or format is incorrect.")


def strip_code_fence(text: str) -> str:
    """Remove a leading/trailing markdown code fence if present."""

    stripped = text.strip()
    if not stripped.startswith("```"):
        return text

    # Drop opening fence and optional language hint.
    first_newline = stripped.find("\n")
    if first_newline == -1:
        return text
    body = stripped[first_newline + 1 :]
    closing_index = body.rfind("```")
    if closing_index != -1:
        body = body[:closing_index]
    return body.strip()


def build_provider(
    name: str | None,
    *,
    debug: bool = False,
    timeout: float | None = None,
    credentials: Mapping[str, str | None] | None = None,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "openai").strip().lower()
    options = {"debug": debug, "timeout": timeout, "credentials": credentials}
    if normalized in {"azure_openai", "azure-openai", "azure"}:
        return OpenAITranslationProvider(kind="azure_openai", **options)
    if normalized in {"openai", "gpt", "default"}:
        return OpenAITranslationProvider(**options)
    if normalized in {"legacy-openai", "legacy_openai", "legacy", "openai-legacy"}:
        return LegacyOpenAITranslationProvider(**options)
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
