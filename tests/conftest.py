"""
Shared test fixtures and configuration for dotenvify tests.

Fakes for the credential helper and HTTP responses live in tests/mocks;
canned API payloads live in tests/fixtures.
"""

from pathlib import Path

import pytest

# ============================================================================
# FILE FIXTURES
# ============================================================================


@pytest.fixture
def env_file(tmp_path):
    """Factory writing content to a file under tmp_path.

    Example:
        path = env_file("API_KEY=abc\\n", name="source.txt")
    """

    def _write(content: str, name: str = "input.env") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write
