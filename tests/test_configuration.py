"""Tests for configuration helpers that do not touch the filesystem."""

from types import SimpleNamespace

import pytest

from folio.configuration import (
    provider_credentials,
    split_list_setting,
    validate_provider_settings,
)
from folio.errors import TranslationProviderConfigurationError


def settings_with(**values):
    defaults = dict(
        LLM_PROVIDER="openai",
        OPENAI_API_KEY=None,
        AZURE_OPENAI_API_KEY=None,
        AZURE_OPENAI_ENDPOINT=None,
        AZURE_OPENAI_API_VERSION=None,
        AZURE_OPENAI_DEPLOYMENT_NAME=None,
    )
    defaults.update(values)
    return SimpleNamespace(**defaults)


def test_split_list_setting():
    assert split_list_setting(".html, .xhtml .htm") == [".html", ".xhtml", ".htm"]
    assert split_list_setting("") == []
    assert split_list_setting(None) == []


def test_missing_openai_key_is_fatal():
    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        validate_provider_settings(settings_with())
    assert "OPENAI_API_KEY" in str(excinfo.value)


def test_echo_provider_needs_no_credentials():
    validate_provider_settings(settings_with(), "echo")


def test_azure_requires_all_settings():
    settings = settings_with(AZURE_OPENAI_API_KEY="key", AZURE_OPENAI_ENDPOINT="https://x")

    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        validate_provider_settings(settings, "azure-openai")

    message = str(excinfo.value)
    assert "AZURE_OPENAI_API_VERSION" in message
    assert "AZURE_OPENAI_DEPLOYMENT_NAME" in message
    assert "AZURE_OPENAI_ENDPOINT" not in message


def test_configured_provider_kind_applies_to_generic_name():
    settings = settings_with(LLM_PROVIDER="azure_openai", OPENAI_API_KEY="sk-test")

    with pytest.raises(TranslationProviderConfigurationError):
        validate_provider_settings(settings, "openai")


def test_provider_credentials_collects_every_key():
    credentials = provider_credentials(settings_with(OPENAI_API_KEY="sk-test"))

    assert credentials["OPENAI_API_KEY"] == "sk-test"
    assert credentials["LLM_PROVIDER"] == "openai"
    assert "AZURE_OPENAI_DEPLOYMENT_NAME" in credentials
