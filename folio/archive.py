"""Sequential ZIP archive reader and writer."""

from __future__ import annotations

import pathlib
import zipfile
import zlib
from typing import List, Optional

from .errors import ArchiveOpenError, MemberIOError

MEMBER_READ_ERRORS = (
    OSError,
    EOFError,
    RuntimeError,
    NotImplementedError,
    zipfile.BadZipFile,
    zlib.error,
)


class ArchiveReader:
    """Enumerates and reads the members of a source archive in stored order."""

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "ArchiveReader":
        try:
            self._zip = zipfile.ZipFile(self.path, "r")
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveOpenError(
                f"Could not open source archive {self.path}: {exc}"
            ) from exc
        return self

    def __exit__(self, *exc_info) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    @property
    def archive(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise RuntimeError("ArchiveReader used outside of its context.")
        return self._zip

    def members(self) -> List[zipfile.ZipInfo]:
        return self.archive.infolist()

    def read_member(self, info: zipfile.ZipInfo) -> bytes:
        try:
            return self.archive.read(info)
        except MEMBER_READ_ERRORS as exc:
            raise MemberIOError(
                f"Error opening file inside zip {info.filename}: {exc}"
            ) from exc


def copy_member_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """Clone the metadata of a source entry for the output archive."""

    clone = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.external_attr = info.external_attr
    clone.create_system = info.create_system
    clone.comment = info.comment
    return clone


class ArchiveWriter:
    """Writes output members one at a time; the directory is written on finalize."""

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "ArchiveWriter":
        self._zip = zipfile.ZipFile(self.path, "w")
        return self

    def __exit__(self, *exc_info) -> None:
        self.finalize()

    def write_member(self, info: zipfile.ZipInfo, payload: bytes) -> None:
        if self._zip is None:
            raise RuntimeError("ArchiveWriter used outside of its context.")
        try:
            self._zip.writestr(copy_member_info(info), payload)
        except (OSError, ValueError, RuntimeError, NotImplementedError, zlib.error) as exc:
            raise MemberIOError(
                f"Error creating output zip entry {info.filename}: {exc}"
            ) from exc

    def finalize(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
