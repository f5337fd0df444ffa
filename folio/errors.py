"""Error definitions for the Folio archive translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises per-member failures for reporting."""

    FILE_IO = auto()
    PARSE = auto()
    TRANSLATION = auto()
    ALIGNMENT = auto()
    RENDER = auto()
    OTHER = auto()


class FolioError(Exception):
    """Base exception for all custom errors."""


class OverwriteRefusedError(FolioError):
    """Raised when attempting to overwrite an output without consent."""


class ArchiveOpenError(FolioError):
    """Raised when the source archive cannot be read at all."""


class TranslationProviderConfigurationError(FolioError):
    """Raised when the translation provider is misconfigured."""


class MemberIOError(FolioError):
    """Raised when a single archive member cannot be read or written."""


class ParseError(FolioError):
    """Raised when a markup member cannot be parsed."""


class RenderError(FolioError):
    """Raised when a mutated markup tree cannot be serialized."""


class ServiceError(FolioError):
    """Raised when the translation backend fails or rejects a request."""


class AlignmentError(FolioError):
    """Raised when the translated segment count differs from the fragment count."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"The number of original ({expected}) and translated ({actual}) "
            "text chunks do not match."
        )
        self.expected = expected
        self.actual = actual


CATEGORY_BY_ERROR: dict[type[FolioError], ErrorCategory] = {
    MemberIOError: ErrorCategory.FILE_IO,
    ParseError: ErrorCategory.PARSE,
    ServiceError: ErrorCategory.TRANSLATION,
    AlignmentError: ErrorCategory.ALIGNMENT,
    RenderError: ErrorCategory.RENDER,
}


def categorise(error: BaseException) -> ErrorCategory:
    """Map an exception onto its reporting category."""

    for error_type, category in CATEGORY_BY_ERROR.items():
        if isinstance(error, error_type):
            return category
    return ErrorCategory.OTHER


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    member: Optional[str] = None
    details: Optional[str] = None
