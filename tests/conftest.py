"""
Pytest configuration and fixtures for all tests.

Provides archive builders and scripted translation backends shared by the
unit and pipeline tests.
"""

import sys
import zipfile
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from folio.errors import ServiceError
from folio.providers import TranslationProvider


class ScriptedProvider(TranslationProvider):
    """Translation provider that answers from a script and records requests.

    ``responses`` maps request text to response text; anything else is
    answered by ``default`` (a callable) or echoed back. An entry whose value
    is an exception instance is raised instead.
    """

    name = "scripted"

    def __init__(self, responses=None, default=None):
        self.responses = dict(responses or {})
        self.default = default
        self.calls = []

    def translate(
        self,
        text,
        *,
        instructions=None,
        source_language,
        target_language,
        model=None,
    ):
        self.calls.append(
            {
                "text": text,
                "instructions": instructions,
                "target_language": target_language,
            }
        )
        response = self.responses.get(text)
        if response is None and self.default is not None:
            response = self.default(text)
        if response is None:
            response = text
        if isinstance(response, Exception):
            raise response
        return response


class FlakyProvider(ScriptedProvider):
    """Fails the first ``failures`` requests with a ServiceError."""

    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures

    def translate(self, text, **kwargs):
        if self.failures > 0:
            self.failures -= 1
            self.calls.append({"text": text, "failed": True})
            raise ServiceError("503 Service Unavailable")
        return super().translate(text, **kwargs)


@pytest.fixture
def make_archive(tmp_path):
    """Build a ZIP archive from ``(name, payload[, compress_type])`` entries."""

    def _make(entries, name="book.epub"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            for entry in entries:
                member, payload = entry[0], entry[1]
                compress_type = entry[2] if len(entry) > 2 else zipfile.ZIP_DEFLATED
                archive.writestr(member, payload, compress_type=compress_type)
        return path

    return _make


@pytest.fixture
def read_archive():
    """Return an ordered ``{name: payload}`` mapping for an archive."""

    def _read(path):
        with zipfile.ZipFile(path) as archive:
            return {info.filename: archive.read(info) for info in archive.infolist()}

    return _read


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def flaky_provider():
    return FlakyProvider


@pytest.fixture
def sample_page():
    """Sample HTML member with two translatable paragraphs."""
    return b"<p>Hi</p><p>  Bye  </p>"


@pytest.fixture
def sample_xhtml():
    """Sample XHTML chapter as found inside an EPUB."""
    return (
        b'<?xml version="1.0" encoding="utf-8"?>\n'
        b"<!DOCTYPE html>\n"
        b'<html xmlns="http://www.w3.org/1999/xhtml">\n'
        b"<head><title>Chapter 1</title></head>\n"
        b"<body>\n"
        b"  <h1>Chapter 1</h1>\n"
        b"  <p>\n    The first paragraph.\n  </p>\n"
        b"  <p>A <em>second</em> paragraph.</p>\n"
        b"</body>\n"
        b"</html>\n"
    )
