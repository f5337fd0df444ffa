"""Command line interface for the Folio archive translator."""

from __future__ import annotations

import argparse
import pathlib
import re
import signal
import sys
from typing import Iterable, Optional, Sequence

from .configuration import (
    FolioConfig,
    get_settings,
    provider_credentials,
    split_list_setting,
    validate_provider_settings,
)
from .errors import (
    ArchiveOpenError,
    FolioError,
    OverwriteRefusedError,
    TranslationProviderConfigurationError,
)
from .translator import (
    CancellationToken,
    TranslationRunner,
    TranslationSummary,
    validate_paths,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folio",
        description=(
            "Translate the paragraph text of an EPUB or other zipped HTML archive "
            "while leaving every other member untouched."
        ),
    )
    parser.add_argument(
        "input_file",
        help="Path to the archive (.epub, .zip) to translate.",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        help="Destination language (default: FOLIO_TARGET_LANGUAGE or Korean).",
    )
    parser.add_argument(
        "-s",
        "--source-language",
        help="Optional source language hint.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output archive path. Defaults to appending the target language.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (openai, azure_openai, legacy-openai, echo).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or deployment identifier.",
    )
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        metavar="TAG",
        help="Element whose direct text is translated. Repeatable (default: p).",
    )
    parser.add_argument(
        "--extension",
        dest="extensions",
        action="append",
        metavar="EXT",
        help="Member suffix treated as markup. Repeatable (default: .html .xhtml .htm).",
    )
    parser.add_argument(
        "--retries",
        type=int,
        help="Retry a failed translation request this many times (default: 0).",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show per-member progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def sanitise_language_for_filename(language: str) -> str:
    """Generate a filesystem-friendly suffix from a language descriptor."""

    collapsed = re.sub(r"\s+", "-", language.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9\-]+", "", ascii_only)
    return cleaned or "translated"


def derive_output_path(input_path: pathlib.Path, language: str) -> pathlib.Path:
    suffix = input_path.suffix
    stem = input_path.stem
    addition = sanitise_language_for_filename(language)
    candidate = f"{stem}_{addition}{suffix}"
    return input_path.with_name(candidate)


def install_interrupt_handler(token: CancellationToken) -> None:
    """First Ctrl+C finishes the archive untranslated; a second one aborts."""

    def _handler(signum, frame) -> None:
        token.cancel()
        print(
            "\nInterrupt received. Remaining members will be copied untranslated "
            "(press Ctrl+C again to abort)."
        )
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)


def execute_translation(
    *,
    input_file: str,
    output_file: str | None,
    target_language: str,
    source_language: str | None,
    provider: str | None,
    model: str | None,
    eligible_tags: Sequence[str],
    markup_extensions: Sequence[str],
    max_retries: int,
    request_timeout: float | None,
    credentials: dict[str, str | None] | None,
    force_overwrite: bool,
    verbose: bool,
    provider_debug: bool,
    cancel_token: CancellationToken | None = None,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    input_path = pathlib.Path(input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(output_file).expanduser().resolve()
        if output_file
        else derive_output_path(input_path, target_language)
    )

    try:
        validate_paths(input_path, output_path, force_overwrite=force_overwrite)
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except OverwriteRefusedError as exc:
        return 1, None, str(exc)
    except FolioError as exc:
        return 1, None, str(exc)

    output_path.parent.mkdir(parents=True, exist_ok=True)

    runner = TranslationRunner(
        input_path=input_path,
        output_path=output_path,
        target_language=target_language,
        source_language=source_language,
        provider_name=provider,
        model=model,
        eligible_tags=eligible_tags,
        markup_extensions=markup_extensions,
        max_retries=max_retries,
        request_timeout=request_timeout,
        provider_credentials=credentials,
        verbose=verbose,
        provider_debug=provider_debug,
        cancel_token=cancel_token,
    )

    try:
        summary = runner.run()
    except TranslationProviderConfigurationError as exc:
        return 1, None, str(exc)
    except ArchiveOpenError as exc:
        return 1, None, str(exc)
    except FolioError as exc:
        return 1, None, str(exc)
    except OSError as exc:
        return 1, None, f"Error creating output file: {exc}"
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."
    except Exception as exc:
        return 1, None, (
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )

    return 0, summary, None


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(f"  Input archive:   {summary.input_path}")
    print(f"  Output archive:  {summary.output_path}")
    print(
        "  Members:         "
        f"{summary.translated_members} translated / {summary.total_members} total "
        f"({summary.copied_members} copied, {summary.unchanged_members} without text, "
        f"{summary.fallback_members} kept original, {summary.skipped_members} skipped)"
    )
    if summary.cancelled:
        print(f"  Cancelled:       {summary.cancelled_members} members copied untranslated")
    print(
        f"  Fragments:       {summary.total_fragments} "
        f"in {summary.translation_calls} requests"
    )
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    if summary.source_language:
        print(f"  Source language: {summary.source_language}")
    print(f"  Target language: {summary.target_language}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.total_errors:
        print("  Notes:")
        for message in summary.error_messages:
            print(f"    - {message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings: FolioConfig = get_settings()
        validate_provider_settings(settings, args.provider)
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    target_language = args.target_language or settings.FOLIO_TARGET_LANGUAGE
    tags = args.tags or split_list_setting(settings.FOLIO_ELIGIBLE_TAGS)
    extensions = args.extensions or split_list_setting(settings.FOLIO_MARKUP_EXTENSIONS)
    max_retries = (
        args.retries if args.retries is not None else settings.FOLIO_MAX_RETRIES
    )

    cancel_token = CancellationToken()
    install_interrupt_handler(cancel_token)

    exit_code, summary, message = execute_translation(
        input_file=args.input_file,
        output_file=args.output,
        target_language=target_language,
        source_language=args.source_language or settings.FOLIO_SOURCE_LANGUAGE,
        provider=args.provider,
        model=args.model or settings.FOLIO_MODEL,
        eligible_tags=tags,
        markup_extensions=extensions,
        max_retries=max_retries,
        request_timeout=settings.FOLIO_REQUEST_TIMEOUT,
        credentials=provider_credentials(settings),
        force_overwrite=args.force,
        verbose=args.verbose,
        provider_debug=bool(args.debug_provider or settings.FOLIO_PROVIDER_DEBUG),
        cancel_token=cancel_token,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
