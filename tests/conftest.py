"""Shared pytest configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.pdf_fixtures import PDFTestFixtures


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "smoke: fast unit tests without a PDF")
    config.addinivalue_line("markers", "integration: tests that build and read a PDF")


@pytest.fixture
def fixtures(tmp_path: Path):
    """PDF builder writing into a per-test directory."""
    manager = PDFTestFixtures(tmp_path / "test_data")
    yield manager
    manager.cleanup()
