"""Tests for dotenv file discovery."""

from pathlib import Path
import sys

import pytest

from dotenv_shell import _discovery


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("A=1\n", encoding="utf-8")
    return path


def test_search_file(tmp_path: Path) -> None:
    env_file = touch(tmp_path / ".env")
    assert _discovery.search_file([tmp_path], [".env"]) == env_file


def test_search_file_accepts_strings(tmp_path: Path) -> None:
    touch(tmp_path / ".env")
    assert _discovery.search_file([str(tmp_path)], [".env"]) == tmp_path / ".env"


def test_search_file_not_found(tmp_path: Path) -> None:
    touch(tmp_path / "other.env")
    assert _discovery.search_file([tmp_path], [".env"]) is None


def test_search_file_name_order(tmp_path: Path) -> None:
    touch(tmp_path / "a.env")
    b_env = touch(tmp_path / "b.env")
    assert _discovery.search_file([tmp_path], ["missing.env", "b.env", "a.env"]) == b_env


def test_search_file_directory_order(tmp_path: Path) -> None:
    first = tmp_path / "first"
    first.mkdir()
    second_env = touch(tmp_path / "second" / ".env")
    third_env = touch(tmp_path / "third" / ".env")
    directories = [first, tmp_path / "second", tmp_path / "third"]
    assert _discovery.search_file(directories, [".env"]) == second_env
    assert _discovery.search_file(directories[::-1], [".env"]) == third_env


def test_search_file_ignores_directories(tmp_path: Path) -> None:
    (tmp_path / ".env").mkdir()
    assert _discovery.search_file([tmp_path], [".env"]) is None


def test_search_file_recursive(tmp_path: Path) -> None:
    env_file = touch(tmp_path / "a" / "b" / ".env")
    assert _discovery.search_file([tmp_path], [".env"]) is None
    assert _discovery.search_file([tmp_path], [".env"], recursive=True) == env_file


def test_search_file_recursive_depth_first(tmp_path: Path) -> None:
    deep_env = touch(tmp_path / "a" / "deep" / ".env")
    touch(tmp_path / "b" / ".env")
    assert _discovery.search_file([tmp_path], [".env"], recursive=True) == deep_env


def test_search_file_recursive_prefers_top_level(tmp_path: Path) -> None:
    top_env = touch(tmp_path / ".env")
    touch(tmp_path / "a" / ".env")
    assert _discovery.search_file([tmp_path], [".env"], recursive=True) == top_env


def test_search_file_recursive_before_next_directory(tmp_path: Path) -> None:
    nested_env = touch(tmp_path / "one" / "nested" / ".env")
    touch(tmp_path / "two" / ".env")
    directories = [tmp_path / "one", tmp_path / "two"]
    assert _discovery.search_file(directories, [".env"], recursive=True) == nested_env


def test_search_file_reports_errors(tmp_path: Path) -> None:
    env_file = touch(tmp_path / ".env")
    missing = tmp_path / "missing"
    errors: list[tuple[Path, OSError]] = []
    found = _discovery.search_file([missing, tmp_path], [".env"],
                                   onerror=lambda path, exc: errors.append((path, exc)))
    assert found == env_file
    assert len(errors) == 1
    path, exc = errors[0]
    assert path == missing
    assert isinstance(exc, FileNotFoundError)


def test_search_file_without_error_handler(tmp_path: Path) -> None:
    assert _discovery.search_file([tmp_path / "missing"], [".env"]) is None


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks require privileges on Windows")
def test_search_file_skips_symlinked_directories(tmp_path: Path) -> None:
    touch(tmp_path / "real" / ".env")
    root = tmp_path / "root"
    root.mkdir()
    (root / "link").symlink_to(tmp_path / "real", target_is_directory=True)
    assert _discovery.search_file([root], [".env"], recursive=True) is None
