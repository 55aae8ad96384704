"""
Unit tests for the durable token cache.
"""

import json
from pathlib import Path

import pytest
from tmail.models import Credentials
from tmail.storage.token_cache import (
    CachedCredentials,
    FileTokenCache,
    TOKEN_EXPIRY_SECONDS,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCachedCredentials:
    """Expiry window of a cached entry."""

    def test_valid_inside_window(self):
        entry = CachedCredentials("t=", "c=1", timestamp=1000.0)
        assert entry.is_valid(1000.0)
        assert entry.is_valid(1000.0 + TOKEN_EXPIRY_SECONDS - 0.001)

    def test_expired_after_window(self):
        entry = CachedCredentials("t=", "c=1", timestamp=1000.0)
        assert not entry.is_valid(1000.0 + TOKEN_EXPIRY_SECONDS)
        assert not entry.is_valid(1000.0 + TOKEN_EXPIRY_SECONDS + 0.001)

    def test_expiry_is_thirty_minutes(self):
        assert TOKEN_EXPIRY_SECONDS == 1800


class TestFileTokenCache:
    """Test cases for FileTokenCache."""

    def test_missing_file_is_a_miss(self, tmp_path):
        cache = FileTokenCache(tmp_path / "token.json")
        assert cache.load() is None

    def test_save_then_load(self, tmp_path):
        clock = FakeClock()
        cache = FileTokenCache(tmp_path / "token.json", clock=clock)
        cache.save(Credentials("abc=", "XSRF-TOKEN=abc; session=1"))

        assert cache.load() == Credentials("abc=", "XSRF-TOKEN=abc; session=1")

    def test_file_format_uses_epoch_milliseconds(self, tmp_path):
        path = tmp_path / "token.json"
        cache = FileTokenCache(path, clock=FakeClock(1700000000.5))
        cache.save(Credentials("abc=", "c=1"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"token": "abc=", "cookie": "c=1", "timestamp": 1700000000500}

    def test_entry_usable_until_expiry_then_miss(self, tmp_path):
        clock = FakeClock(1000.0)
        cache = FileTokenCache(tmp_path / "token.json", clock=clock)
        cache.save(Credentials("abc=", "c=1"))

        clock.now = 1000.0 + TOKEN_EXPIRY_SECONDS - 0.001
        assert cache.load() is not None

        clock.now = 1000.0 + TOKEN_EXPIRY_SECONDS + 0.001
        assert cache.load() is None

    def test_corrupt_file_is_a_miss(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("{not json", encoding="utf-8")
        assert FileTokenCache(path).load() is None

    def test_missing_fields_is_a_miss(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"token": "abc="}), encoding="utf-8")
        assert FileTokenCache(path).load() is None

    def test_wrong_types_is_a_miss(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"token": 1, "cookie": 2, "timestamp": 1}), encoding="utf-8")
        assert FileTokenCache(path, clock=FakeClock(0.0)).load() is None

    def test_permission_denied_is_a_miss(self, tmp_path, monkeypatch):
        path = tmp_path / "locked" / "token.json"

        def denied(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "stat", denied)
        monkeypatch.setattr(Path, "read_text", denied)

        assert FileTokenCache(path).load() is None

    def test_save_failure_is_swallowed(self, tmp_path):
        cache = FileTokenCache(tmp_path / "missing" / "dir" / "token.json")
        cache.save(Credentials("abc=", "c=1"))
        assert cache.load() is None

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "token.json"
        cache = FileTokenCache(path)
        cache.save(Credentials("abc=", "c=1"))
        assert path.exists()

        cache.clear()
        assert not path.exists()

    def test_clear_missing_file_is_noop(self, tmp_path):
        FileTokenCache(tmp_path / "token.json").clear()
