"""Root test configuration for credaudit.

Keeps config discovery hermetic: no test may pick up a developer's
~/.credaudit/config.yaml or CREDAUDIT_* variables from the shell.
"""

import hashlib

import pytest

from credaudit.utils.logger import clear_run_id


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("CREDAUDIT_CONFIG", raising=False)
    monkeypatch.delenv("CREDAUDIT_WORDLISTS", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setattr(
        "credaudit.config.DEFAULT_CONFIG_PATHS",
        [str(tmp_path / ".credaudit" / "config.yaml")],
    )
    yield
    clear_run_id()


def _fake_hash(cleartext: str) -> str:
    # Uppercase on purpose: the index must not care about hex letter case
    return hashlib.md5(("fake:" + cleartext).encode("utf-8")).hexdigest().upper()


@pytest.fixture
def fake_hash():
    """Deterministic 32-hex-digit stand-in for a credential hash function."""
    return _fake_hash
