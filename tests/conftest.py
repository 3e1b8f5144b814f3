"""Pytest configuration and shared fixtures for epub_reader tests."""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from epub_reader.config import reset_config
from fixtures.epub_factory import create_fixture_epub


# Mark test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to the temporary directory
    """
    temp_path = Path(tempfile.mkdtemp(prefix="epub_reader_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def shared_file_epub(temp_dir: Path) -> Path:
    """EPUB whose first three TOC entries share one XHTML file."""
    return create_fixture_epub(temp_dir / "books", "shared_file_book")


@pytest.fixture
def nested_toc_epub(temp_dir: Path) -> Path:
    """EPUB with a part containing two chapters, all in one file."""
    return create_fixture_epub(temp_dir / "books", "nested_toc_book")


@pytest.fixture
def no_toc_epub(temp_dir: Path) -> Path:
    """EPUB with an empty navMap."""
    return create_fixture_epub(temp_dir / "books", "no_toc_book")


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, temp_dir: Path):
    """Keep every test away from the user's real config directory."""
    monkeypatch.setenv("EPUB_READER_HOME", str(temp_dir / "home"))
    reset_config()
    yield
    reset_config()
