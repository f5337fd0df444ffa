"""Fragment extraction and reinsertion over parsed markup trees."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Sequence, Tuple

from .errors import RenderError
from .markup import MarkupTree, local_name
from .structures import TAIL_SLOT, TEXT_SLOT, WHITESPACE, TextFragment

DEFAULT_ELIGIBLE_TAGS = ("p",)


class FragmentExtractor:
    """Collects translatable text nodes in document order."""

    def __init__(self, eligible_tags: Iterable[str] = DEFAULT_ELIGIBLE_TAGS) -> None:
        self.eligible_tags = frozenset(
            tag.strip().lower() for tag in eligible_tags if tag and tag.strip()
        )

    def is_eligible(self, element: Any) -> bool:
        return local_name(element) in self.eligible_tags

    def extract(self, tree: MarkupTree) -> List[TextFragment]:
        fragments: List[TextFragment] = []
        for element, slot in self._walk(tree.root):
            raw = getattr(element, slot)
            if not raw or not raw.strip(WHITESPACE):
                continue
            fragments.append(
                TextFragment(
                    index=len(fragments),
                    element=element,
                    slot=slot,
                    original_text=raw,
                )
            )
        return fragments

    # --- Internal helpers -------------------------------------------------

    def _walk(self, root: Any) -> Iterator[Tuple[Any, str]]:
        """Yield text-node handles of eligible elements in document order.

        An explicit stack keeps deeply nested documents clear of the
        recursion limit. Each entry is either an element still to be
        entered or a pending ``tail`` handle to emit once the element's
        subtree is done.
        """

        stack: List[Tuple[Any, str | None]] = [(root, None)]
        while stack:
            element, pending_slot = stack.pop()
            if pending_slot is not None:
                yield element, pending_slot
                continue

            eligible = self.is_eligible(element)
            if eligible:
                yield element, TEXT_SLOT

            for child in reversed(list(element)):
                if eligible:
                    stack.append((child, TAIL_SLOT))
                stack.append((child, None))


def reinject(fragments: Sequence[TextFragment], translations: Sequence[str]) -> None:
    """Write translations back into their nodes, keeping whitespace runs."""

    if len(fragments) != len(translations):
        raise ValueError(
            f"Cannot reinject {len(translations)} translations into "
            f"{len(fragments)} fragments."
        )

    for fragment, translated in zip(fragments, translations):
        try:
            setattr(
                fragment.element,
                fragment.slot,
                fragment.leading_whitespace + translated + fragment.trailing_whitespace,
            )
        except ValueError as exc:
            # lxml rejects NUL and most C0 control characters.
            raise RenderError(
                f"Translation of fragment {fragment.index} cannot be stored in markup: {exc}"
            ) from exc
