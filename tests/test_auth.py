"""
Tests for session storage
"""
import json
import stat
from datetime import datetime, timedelta, timezone

from storefront_offers import FileSessionStore, MemorySessionStore, Session


class TestSession:
    """Tests for Session validity."""

    def test_session_without_expiry_is_valid(self):
        assert Session(user_id="u1", token="t").is_valid()

    def test_expired_session(self):
        session = Session(
            user_id="u1",
            token="t",
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        assert not session.is_valid()

    def test_empty_token_is_invalid(self):
        assert not Session(user_id="u1", token="").is_valid()

    def test_round_trip_keeps_expiry(self):
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
        session = Session(user_id="u1", token="t", expires_at=expires)

        assert Session.from_dict(session.to_dict()) == session


class TestMemorySessionStore:
    """Tests for MemorySessionStore."""

    def test_current_hides_expired_session(self):
        store = MemorySessionStore(Session(
            user_id="u1",
            token="t",
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        ))

        assert store.load() is not None
        assert store.current() is None

    def test_clear(self):
        store = MemorySessionStore(Session(user_id="u1", token="t"))
        store.clear()
        assert store.current() is None


class TestFileSessionStore:
    """Tests for FileSessionStore."""

    def test_save_and_load(self, tmp_path):
        """Should persist the session with owner-only permissions."""
        path = tmp_path / "nested" / "session.json"
        store = FileSessionStore(path)

        store.save(Session(user_id="u1", token="secret-token"))

        assert store.current() == Session(user_id="u1", token="secret-token")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert json.loads(path.read_text())["user_id"] == "u1"

    def test_missing_file(self, tmp_path):
        assert FileSessionStore(tmp_path / "none.json").current() is None

    def test_corrupt_file_is_ignored(self, tmp_path, caplog):
        path = tmp_path / "session.json"
        path.write_text("{not json")

        assert FileSessionStore(path).load() is None
        assert "unreadable session file" in caplog.text

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "session.json"
        store = FileSessionStore(path)
        store.save(Session(user_id="u1", token="t"))

        store.clear()

        assert not path.exists()
        store.clear()
