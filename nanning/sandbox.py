"""Confine caller supplied paths to the application's private data root."""

from __future__ import annotations

import logging
import ntpath
import os
import sys
from pathlib import Path
from types import ModuleType

from .storage.errors import (
    AccessDenied,
    CorruptRecord,
    NotFound,
    StorageFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _is_case_insensitive(pathmod: ModuleType) -> bool:
    if pathmod is ntpath:
        return True
    return pathmod is os.path and sys.platform in ("win32", "darwin")


def resolve_path(
    candidate: object,
    root: str | os.PathLike[str],
    *,
    case_insensitive: bool | None = None,
    pathmod: ModuleType = os.path,
) -> str:
    """Return ``candidate`` as a normalised absolute path inside ``root``.

    Relative candidates are resolved against ``root``; absolute candidates
    are taken as given. The function is purely lexical and never touches the
    filesystem. ``pathmod`` selects the path flavour (``posixpath`` or
    ``ntpath``), which defaults to the host's. Raises :class:`AccessDenied`
    for anything that is not a non-empty string or that would leave
    ``root``.
    """

    if not isinstance(candidate, str) or not candidate.strip():
        raise AccessDenied("Path must be a non-empty string")
    if "\x00" in candidate:
        raise AccessDenied("Path contains a NUL character")
    root_text = os.fspath(root)
    if not pathmod.isabs(root_text):
        raise ValueError(f"Sandbox root must be absolute: {root_text!r}")
    if case_insensitive is None:
        case_insensitive = _is_case_insensitive(pathmod)

    normalized_root = pathmod.normpath(root_text)
    if pathmod.isabs(candidate):
        target = candidate
    else:
        target = pathmod.join(normalized_root, candidate)
    normalized = pathmod.normpath(target)

    compare_root = pathmod.normcase(normalized_root)
    compare_target = pathmod.normcase(normalized)
    if case_insensitive:
        compare_root = compare_root.lower()
        compare_target = compare_target.lower()

    try:
        relation = pathmod.relpath(compare_target, compare_root)
    except ValueError:
        # Different drives on Windows.
        raise AccessDenied(f"Path is outside the data directory: {candidate!r}") from None
    if (
        relation == pathmod.pardir
        or relation.startswith(pathmod.pardir + pathmod.sep)
        or pathmod.isabs(relation)
    ):
        logger.warning("Refused path outside sandbox", extra={"path": candidate})
        raise AccessDenied(f"Path is outside the data directory: {candidate!r}")
    return normalized


class SandboxedFileAccess:
    """Text file access that only ever touches paths vetted by :func:`resolve_path`.

    On top of the lexical check, :meth:`resolve` follows symlinks and refuses
    targets whose real location is outside the real root.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(os.path.abspath(root))

    def resolve(self, candidate: object) -> Path:
        path = Path(resolve_path(candidate, self.root))
        try:
            real_root = self.root.resolve()
            real_path = path.resolve()
        except (OSError, RuntimeError) as exc:
            raise AccessDenied(f"Unable to resolve {candidate!r}: {exc}") from exc
        try:
            resolve_path(str(real_path), real_root)
        except AccessDenied:
            raise AccessDenied(
                f"Path links outside the data directory: {candidate!r}"
            ) from None
        return path

    def read_text(self, candidate: object) -> str:
        path = self.resolve(candidate)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFound(f"File not found: {candidate}") from exc
        except UnicodeDecodeError as exc:
            raise CorruptRecord(f"File is not UTF-8 text: {candidate}") from exc
        except OSError as exc:
            raise StorageFailure(f"Unable to read {candidate}: {exc.strerror or exc}") from exc

    def write_text(self, candidate: object, content: str) -> Path:
        if not isinstance(content, str):
            raise ValidationError("File content must be text")
        path = self.resolve(candidate)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageFailure(f"Unable to write {candidate}: {exc.strerror or exc}") from exc
        logger.debug("Wrote sandboxed file", extra={"path": str(path)})
        return path

    def exists(self, candidate: object) -> bool:
        """Report whether ``candidate`` exists; unreadable paths count as absent."""
        path = self.resolve(candidate)
        try:
            return path.exists()
        except OSError as exc:
            logger.debug(
                "Existence check failed", extra={"path": str(path), "error": str(exc)}
            )
            return False


__all__ = ["SandboxedFileAccess", "resolve_path"]
