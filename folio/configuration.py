"""Layered configuration for Folio.

Sources, lowest precedence first: ``Folio`` YAML files found by prepper's
discovery rules, a ``.env`` file in the working directory, then the process
environment. Command line flags override the result in ``folio.cli``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import TranslationProviderConfigurationError

APP_NAME = "Folio"

CREDENTIAL_FREE_PROVIDERS = {"echo", "noop", "mock"}
AZURE_ALIASES = {"azure", "azure_openai", "azure_open_ai", "azureopenai"}

REQUIRED_CREDENTIALS = {
    "openai": ("OPENAI_API_KEY",),
    "azure_openai": (
        "AZURE_OPENAI_API_KEY",
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_API_VERSION",
        "AZURE_OPENAI_DEPLOYMENT_NAME",
    ),
}


class FolioConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    LLM_PROVIDER: Literal["azure_openai", "openai"] = Field(
        default="openai",
        description="Large language model provider selection.",
    )
    OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None)
    AZURE_OPENAI_API_VERSION: str | None = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: str | None = Field(default=None)
    FOLIO_MODEL: str | None = Field(
        default=None,
        description="Provider-specific model identifier.",
    )
    FOLIO_TARGET_LANGUAGE: str = Field(
        default="Korean",
        description="Language the archive text is translated into.",
    )
    FOLIO_SOURCE_LANGUAGE: str | None = Field(default=None)
    FOLIO_ELIGIBLE_TAGS: str = Field(
        default="p",
        description="Comma-separated element names whose direct text is translated.",
    )
    FOLIO_MARKUP_EXTENSIONS: str = Field(
        default=".html,.xhtml,.htm",
        description="Comma-separated member name suffixes treated as markup.",
    )
    FOLIO_MAX_RETRIES: int = Field(default=0)
    FOLIO_REQUEST_TIMEOUT: float | None = Field(default=None)
    FOLIO_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_provider(data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("LLM_PROVIDER"), str):
            normalized = data["LLM_PROVIDER"].strip().lower().replace("-", "_")
            data["LLM_PROVIDER"] = (
                "azure_openai" if normalized in AZURE_ALIASES else "openai"
            )
        return data


def split_list_setting(value: str | None) -> list[str]:
    """Split a comma- or whitespace-separated setting into clean items."""

    if not value:
        return []
    return value.replace(",", " ").split()


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    provenance = ProvenanceRecorder()
    try:
        combined: dict[str, Any] = {}
        for source, layer, values in _iter_layers(base_dir):
            merge_layer(combined, values, provenance=provenance, source=source, layer=layer)
        model = FolioConfig.validate(combined, provenance=provenance)
    except IoError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration schema error: {exc}"
        ) from exc
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _describe_validation_errors(exc.to_dict())
        ) from exc

    return ConfigInstance(
        model=model,
        provenance=provenance,
        env_prefix=None,
        schema_cls=FolioConfig,
    )


def _iter_layers(app_dir: Path) -> Iterable[tuple[str, str, Mapping[str, Any]]]:
    """Yield ``(source, layer, values)`` in increasing precedence."""

    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        yield _path_to_source(label, "yaml", path), "file", parsed

    known = set(FolioConfig.__field_infos__)
    dotenv_path = app_dir / ".env"
    environments = []
    if dotenv_path.exists():
        environments.append((".env", dotenv_values(dotenv_path)))
    environments.append(("process", dict(os.environ)))

    for prefix, values in environments:
        for key in sorted(known.intersection(values)):
            if values[key] is not None:
                yield f"env:{prefix}:{key}", "env", {key: values[key]}


def _describe_validation_errors(entries: Iterable[Mapping[str, Any]]) -> str:
    lines = ["Configuration validation errors detected:"]
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        line = f"- {location}: {message}" if location else f"- {message}"
        lines.append(f"{line} (source: {source})" if source else line)
    return "\n".join(lines)


def validate_provider_settings(settings: FolioConfig, provider: str | None = None) -> None:
    """Check that the credentials for the selected provider are present.

    Runs before any archive member is touched; a missing credential ends the
    run.
    """

    selected = (provider or settings.LLM_PROVIDER).strip().lower().replace("-", "_")
    if selected in CREDENTIAL_FREE_PROVIDERS:
        return
    kind = "azure_openai" if selected in AZURE_ALIASES else settings.LLM_PROVIDER

    missing = [name for name in REQUIRED_CREDENTIALS[kind] if not getattr(settings, name)]
    if missing:
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n"
            f"- The following settings must be provided when LLM_PROVIDER is '{kind}': "
            f"{', '.join(missing)}."
        )


def provider_credentials(settings: FolioConfig) -> dict[str, str | None]:
    """Credentials handed to the provider, whichever layer they came from."""

    names = ["LLM_PROVIDER", *REQUIRED_CREDENTIALS["openai"], *REQUIRED_CREDENTIALS["azure_openai"]]
    return {name: getattr(settings, name) for name in names}


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> FolioConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()
