"""High-level orchestration for archive translation."""

from __future__ import annotations

import pathlib
import threading
import time
import zipfile
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Sequence

from .alignment import BatchAligner, TranslateFn
from .archive import ArchiveReader, ArchiveWriter
from .errors import (
    AlignmentError,
    FolioError,
    MemberIOError,
    OverwriteRefusedError,
    ParseError,
    RenderError,
    ServiceError,
)
from .fragments import DEFAULT_ELIGIBLE_TAGS, FragmentExtractor, reinject
from .markup import parse_markup, render_markup
from .policy import ErrorPolicy
from .providers import TranslationProvider, build_provider
from .structures import MemberOutcome, MemberStatus

DEFAULT_MARKUP_EXTENSIONS = (".html", ".xhtml", ".htm")


class CancellationToken:
    """Cooperative stop signal, checked between archive members."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def normalise_extensions(extensions: Iterable[str]) -> tuple[str, ...]:
    """Lower-case extensions and make sure each starts with a dot."""

    normalised: List[str] = []
    for extension in extensions:
        cleaned = extension.strip().lower()
        if not cleaned:
            continue
        if not cleaned.startswith("."):
            cleaned = f".{cleaned}"
        normalised.append(cleaned)
    return tuple(normalised)


def is_markup_member(name: str, extensions: Sequence[str]) -> bool:
    return name.lower().endswith(tuple(extensions))


def transform_markup(
    name: str,
    payload: bytes,
    *,
    extractor: FragmentExtractor,
    aligner: BatchAligner,
    translate_fn: TranslateFn,
) -> MemberOutcome:
    """Translate one markup member without performing I/O or reporting.

    Every failure resolves to the original ``payload`` with status
    ``FALLBACK`` and the error attached.
    """

    try:
        tree = parse_markup(payload, name=name)
    except ParseError as exc:
        return MemberOutcome(name, payload, MemberStatus.FALLBACK, error=exc)

    fragments = extractor.extract(tree)
    if not fragments:
        return MemberOutcome(name, payload, MemberStatus.UNCHANGED)

    try:
        batch = aligner.align(fragments, translate_fn)
    except (ServiceError, AlignmentError) as exc:
        return MemberOutcome(
            name,
            payload,
            MemberStatus.FALLBACK,
            fragment_count=len(fragments),
            error=exc,
        )

    try:
        reinject(fragments, batch.translations)
        rendered = render_markup(tree)
    except RenderError as exc:
        return MemberOutcome(
            name,
            payload,
            MemberStatus.FALLBACK,
            fragment_count=len(fragments),
            error=exc,
        )

    return MemberOutcome(
        name,
        rendered,
        MemberStatus.TRANSLATED,
        fragment_count=len(fragments),
    )


@dataclass
class TranslationSummary:
    """Report returned after processing an archive."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    total_members: int
    translated_members: int
    unchanged_members: int
    copied_members: int
    fallback_members: int
    skipped_members: int
    cancelled_members: int
    total_fragments: int
    translation_calls: int
    provider_name: str
    model: str | None
    target_language: str
    source_language: str | None
    elapsed_seconds: float
    cancelled: bool = False
    error_messages: List[str] = field(default_factory=list)

    @property
    def total_errors(self) -> int:
        return len(self.error_messages)


class TranslationRunner:
    """Coordinates member routing, translation, and archive assembly."""

    def __init__(
        self,
        *,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        target_language: str,
        source_language: str | None = None,
        provider_name: str | None = None,
        model: str | None = None,
        eligible_tags: Iterable[str] = DEFAULT_ELIGIBLE_TAGS,
        markup_extensions: Iterable[str] = DEFAULT_MARKUP_EXTENSIONS,
        max_retries: int = 0,
        request_timeout: float | None = None,
        provider_credentials: Mapping[str, str | None] | None = None,
        verbose: bool = False,
        provider_debug: bool = False,
        provider: TranslationProvider | None = None,
        cancel_token: CancellationToken | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.input_path = input_path
        self.output_path = output_path
        self.target_language = target_language
        self.source_language = source_language
        self.provider_name = provider_name
        self.model = model
        self.eligible_tags = tuple(eligible_tags)
        self.markup_extensions = normalise_extensions(markup_extensions)
        self.request_timeout = request_timeout
        self.provider_credentials = provider_credentials
        self.verbose = verbose
        self.provider_debug = provider_debug
        self.provider = provider
        self.cancel_token = cancel_token or CancellationToken()
        self.sleep = sleep

        self.error_policy = ErrorPolicy()
        self.max_retries = max(0, max_retries)
        self.retry_backoff = [1, 4, 9]
        self.translation_calls = 0

    def run(self) -> TranslationSummary:
        start_time = time.time()

        provider = self.provider or build_provider(
            self.provider_name,
            debug=self.provider_debug,
            timeout=self.request_timeout,
            credentials=self.provider_credentials,
        )
        translate_fn = self._bind_provider(provider)
        extractor = FragmentExtractor(self.eligible_tags)
        aligner = BatchAligner()

        counts: Dict[MemberStatus, int] = {status: 0 for status in MemberStatus}
        skipped_members = 0
        total_fragments = 0

        with ArchiveReader(self.input_path) as reader:
            members = reader.members()
            if self.verbose:
                print(
                    f"Translating {len(members)} members "
                    f"({self.input_path} -> {self.output_path})..."
                )
            with ArchiveWriter(self.output_path) as writer:
                for info in members:
                    outcome = self._process_member(
                        reader=reader,
                        writer=writer,
                        info=info,
                        extractor=extractor,
                        aligner=aligner,
                        translate_fn=translate_fn,
                    )
                    if outcome is None:
                        skipped_members += 1
                        continue
                    counts[outcome.status] += 1
                    if outcome.status is MemberStatus.TRANSLATED:
                        total_fragments += outcome.fragment_count

        elapsed = time.time() - start_time
        return TranslationSummary(
            input_path=self.input_path,
            output_path=self.output_path,
            total_members=len(members),
            translated_members=counts[MemberStatus.TRANSLATED],
            unchanged_members=counts[MemberStatus.UNCHANGED],
            copied_members=counts[MemberStatus.COPIED],
            fallback_members=counts[MemberStatus.FALLBACK],
            skipped_members=skipped_members,
            cancelled_members=counts[MemberStatus.CANCELLED],
            total_fragments=total_fragments,
            translation_calls=self.translation_calls,
            provider_name=getattr(provider, "name", None) or self.provider_name or "openai",
            model=self.model,
            target_language=self.target_language,
            source_language=self.source_language,
            elapsed_seconds=elapsed,
            cancelled=self.cancel_token.cancelled,
            error_messages=self.error_policy.messages(),
        )

    def _process_member(
        self,
        *,
        reader: ArchiveReader,
        writer: ArchiveWriter,
        info: zipfile.ZipInfo,
        extractor: FragmentExtractor,
        aligner: BatchAligner,
        translate_fn: TranslateFn,
    ) -> MemberOutcome | None:
        name = info.filename
        try:
            payload = reader.read_member(info)
        except MemberIOError as exc:
            self.error_policy.handle_exception(name, exc, action="Skipping this member.")
            return None

        if self.cancel_token.cancelled:
            outcome = MemberOutcome(name, payload, MemberStatus.CANCELLED)
        elif info.is_dir() or not is_markup_member(name, self.markup_extensions):
            outcome = MemberOutcome(name, payload, MemberStatus.COPIED)
        else:
            if self.verbose:
                print(f"  ⚙️ Processing for translation: {name}")
            outcome = transform_markup(
                name,
                payload,
                extractor=extractor,
                aligner=aligner,
                translate_fn=translate_fn,
            )
            if outcome.is_fallback and outcome.error is not None:
                self.error_policy.handle_exception(name, outcome.error, action="Keeping original.")
            elif self.verbose:
                print(
                    f"    {outcome.status.value}: {outcome.fragment_count} fragments"
                )

        try:
            writer.write_member(info, outcome.payload)
        except MemberIOError as exc:
            self.error_policy.handle_exception(name, exc, action="Skipping this member.")
            return None
        return outcome

    def _bind_provider(self, provider: TranslationProvider) -> TranslateFn:
        """Wrap the provider in the caller-side retry policy."""

        def translate(text: str, instructions: str) -> str:
            attempt = 0
            while True:
                self.translation_calls += 1
                try:
                    return provider.translate(
                        text,
                        instructions=instructions,
                        source_language=self.source_language,
                        target_language=self.target_language,
                        model=self.model,
                    )
                except ServiceError as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    wait_time = self.retry_backoff[min(attempt - 1, len(self.retry_backoff) - 1)]
                    print(
                        "    Could not translate this member "
                        f"(attempt {attempt} of {self.max_retries}: {exc}). "
                        "Retrying automatically..."
                    )
                    self.sleep(wait_time)

        return translate


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            f"Source archive ({input_path}) not found. Please prepare the file."
        )
    if not input_path.is_file():
        raise FolioError("Input path must be a file.")

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input archive. Refusing to overwrite the source file."
        )

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use the overwrite flag."
        )
