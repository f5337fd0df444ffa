"""Core data structures for the Folio translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

WHITESPACE = " \t\n\r"

TEXT_SLOT = "text"
TAIL_SLOT = "tail"


@dataclass
class TextFragment:
    """A text node that is a direct child of a translation-eligible element.

    The node is addressed as ``(element, slot)``: ``slot == "text"`` is the
    text before the element's first child, ``slot == "tail"`` is the text
    following ``element`` inside its parent.
    """

    index: int
    element: Any
    slot: str
    original_text: str

    @property
    def text(self) -> str:
        return self.original_text.strip(WHITESPACE)

    @property
    def leading_whitespace(self) -> str:
        stripped = self.original_text.lstrip(WHITESPACE)
        return self.original_text[: len(self.original_text) - len(stripped)]

    @property
    def trailing_whitespace(self) -> str:
        stripped = self.original_text.rstrip(WHITESPACE)
        return self.original_text[len(stripped):]


@dataclass
class Batch:
    """Fragment texts sent in one request and the split translated response."""

    sources: List[str]
    delimiter: str
    translations: List[str] = field(default_factory=list)

    @property
    def request_text(self) -> str:
        return self.delimiter.join(self.sources)

    @property
    def is_aligned(self) -> bool:
        return len(self.sources) == len(self.translations)


class MemberStatus(Enum):
    """What was written for an archive member."""

    TRANSLATED = "translated"
    UNCHANGED = "unchanged"
    COPIED = "copied"
    FALLBACK = "fallback"
    CANCELLED = "cancelled"


@dataclass
class MemberOutcome:
    """Result of transforming a single archive member."""

    name: str
    payload: bytes
    status: MemberStatus
    fragment_count: int = 0
    error: Optional[Exception] = None

    @property
    def is_fallback(self) -> bool:
        return self.status is MemberStatus.FALLBACK
