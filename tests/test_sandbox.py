from __future__ import annotations

from pathlib import Path
import ntpath
import posixpath
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from nanning.sandbox import SandboxedFileAccess, resolve_path
from nanning.storage import AccessDenied, CorruptRecord, NotFound

POSIX_ROOT = "/data/app"
WINDOWS_ROOT = "C:\\Data\\App"


def _posix(candidate: object, **kwargs) -> str:
    return resolve_path(candidate, POSIX_ROOT, pathmod=posixpath, **kwargs)


def _windows(candidate: object) -> str:
    return resolve_path(candidate, WINDOWS_ROOT, pathmod=ntpath)


def test_relative_path_resolves_under_root() -> None:
    assert _posix("notes/today.md") == "/data/app/notes/today.md"
    assert _posix("./notes//drafts/../today.md") == "/data/app/notes/today.md"


def test_root_itself_is_allowed() -> None:
    assert _posix(".") == "/data/app"
    assert _posix("/data/app/") == "/data/app"


def test_absolute_path_inside_root() -> None:
    assert _posix("/data/app/exports/report.txt") == "/data/app/exports/report.txt"


@pytest.mark.parametrize(
    "candidate",
    [
        "../../etc/passwd",
        "..",
        "notes/../../secret",
        "/etc/passwd",
        "/data/application/notes.md",
        "/data/app/../app-other/file",
    ],
)
def test_escaping_paths_are_denied(candidate: str) -> None:
    with pytest.raises(AccessDenied):
        _posix(candidate)


@pytest.mark.parametrize("candidate", [None, "", "   ", 42, b"notes.md", "notes\x00.md"])
def test_invalid_input_is_denied(candidate: object) -> None:
    with pytest.raises(AccessDenied):
        _posix(candidate)


def test_dotted_names_are_not_parent_segments() -> None:
    assert _posix("..notes/file.md") == "/data/app/..notes/file.md"


def test_case_sensitivity_is_configurable() -> None:
    with pytest.raises(AccessDenied):
        _posix("/DATA/APP/notes.md", case_insensitive=False)
    assert _posix("/DATA/APP/notes.md", case_insensitive=True) == "/DATA/APP/notes.md"


def test_windows_paths() -> None:
    assert _windows("notes\\today.md") == "C:\\Data\\App\\notes\\today.md"
    assert _windows("notes/today.md") == "C:\\Data\\App\\notes\\today.md"
    assert _windows("c:\\data\\app\\Notes.md") == "c:\\data\\app\\Notes.md"
    for candidate in ("..\\..\\Windows\\win.ini", "D:\\Data\\App\\x.md", "C:\\Data\\Apps\\x"):
        with pytest.raises(AccessDenied):
            _windows(candidate)


def test_root_must_be_absolute() -> None:
    with pytest.raises(ValueError):
        resolve_path("notes.md", "relative/root", pathmod=posixpath)


def test_file_access_round_trip(tmp_path: Path) -> None:
    files = SandboxedFileAccess(tmp_path / "files")
    written = files.write_text("notes/today.md", "hello")
    assert written == (tmp_path / "files" / "notes" / "today.md")
    assert files.exists("notes/today.md")
    assert files.read_text("notes/today.md") == "hello"
    assert not files.exists("notes/tomorrow.md")
    with pytest.raises(NotFound):
        files.read_text("notes/tomorrow.md")


def test_file_access_refuses_escape(tmp_path: Path) -> None:
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret", encoding="utf-8")
    files = SandboxedFileAccess(tmp_path / "files")
    with pytest.raises(AccessDenied):
        files.read_text("../secret.txt")
    with pytest.raises(AccessDenied):
        files.write_text(str(secret), "overwritten")
    with pytest.raises(AccessDenied):
        files.exists("../secret.txt")
    assert secret.read_text(encoding="utf-8") == "top secret"


def test_non_utf8_file_is_reported_as_corrupt(tmp_path: Path) -> None:
    root = tmp_path / "files"
    root.mkdir()
    (root / "bin.dat").write_bytes(b"\xff\xfe\x00bad")
    files = SandboxedFileAccess(root)
    with pytest.raises(CorruptRecord):
        files.read_text("bin.dat")


def test_exists_treats_unusable_names_as_absent(tmp_path: Path) -> None:
    files = SandboxedFileAccess(tmp_path / "files")
    assert files.exists("a" * 400) is False


def _symlink_or_skip(link: Path, target: Path) -> None:
    try:
        link.symlink_to(target, target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not available")


def test_symlink_leading_outside_root_is_refused(tmp_path: Path) -> None:
    root = tmp_path / "files"
    outside = tmp_path / "outside"
    root.mkdir()
    outside.mkdir()
    (outside / "secret.txt").write_text("classified", encoding="utf-8")
    _symlink_or_skip(root / "escape", outside)

    files = SandboxedFileAccess(root)
    with pytest.raises(AccessDenied):
        files.read_text("escape/secret.txt")
    with pytest.raises(AccessDenied):
        files.write_text("escape/planted.txt", "x")
    with pytest.raises(AccessDenied):
        files.exists("escape/secret.txt")
    assert not (outside / "planted.txt").exists()


def test_symlink_inside_root_is_followed(tmp_path: Path) -> None:
    root = tmp_path / "files"
    (root / "notes").mkdir(parents=True)
    _symlink_or_skip(root / "alias", root / "notes")

    files = SandboxedFileAccess(root)
    files.write_text("notes/today.md", "hello")
    assert files.read_text("alias/today.md") == "hello"
