"""Batch alignment: one translation request per member, split and verified."""

from __future__ import annotations

from typing import Callable, List, Sequence

from .errors import AlignmentError
from .structures import WHITESPACE, Batch, TextFragment

DEFAULT_DELIMITER = "\n---\n"

TranslateFn = Callable[[str, str], str]


def build_instructions(delimiter: str) -> str:
    """Tell the backend how to treat the segment delimiter."""

    marker = delimiter.strip(WHITESPACE)
    return (
        f"The text consists of segments separated by lines containing only '{marker}'. "
        f"Translate each segment independently and keep every '{marker}' line "
        "exactly as it appears, so the response has the same number of segments "
        "in the same order. Do not merge, split, or drop segments."
    )


def split_response(response: str, delimiter: str) -> List[str]:
    """Split a translated response and trim each segment."""

    return [segment.strip(WHITESPACE) for segment in response.split(delimiter)]


class BatchAligner:
    """Joins fragments into one request and aligns the response positionally."""

    def __init__(self, delimiter: str = DEFAULT_DELIMITER) -> None:
        if not delimiter:
            raise ValueError("The batch delimiter must not be empty.")
        self.delimiter = delimiter
        self.instructions = build_instructions(delimiter)

    def align(
        self,
        fragments: Sequence[TextFragment],
        translate_fn: TranslateFn,
    ) -> Batch:
        """Translate all fragments in one call.

        Returns an aligned batch whose ``translations`` match ``fragments`` by
        position. Raises ``AlignmentError`` when the counts differ; errors
        from ``translate_fn`` propagate unchanged.
        """

        batch = Batch(sources=[fragment.text for fragment in fragments], delimiter=self.delimiter)
        if not batch.sources:
            return batch

        response = translate_fn(batch.request_text, self.instructions)
        batch.translations = split_response(response, self.delimiter)

        if not batch.is_aligned:
            raise AlignmentError(len(batch.sources), len(batch.translations))
        return batch
