"""
Tests for SessionData.

Tests cover:
- Initialization with and without an id
- Mapping and attribute access
- Flash values read once
- Change tracking and invalidation
"""
import pytest

from sealed_session.data import SessionData


@pytest.fixture
def session():
    return SessionData({"user": "jesus", "count": 1}, id="abc123")


class TestSessionInit:
    """Tests for SessionData initialization."""

    def test_empty_session(self):
        """Test a session without id is new and empty."""
        session = SessionData()
        assert session.id == ""
        assert session.new is True
        assert session.empty is True
        assert session.is_changed is False
        assert session.destroyed is False

    def test_stored_session(self, session):
        """Test a session with an id is not new."""
        assert session.id == "abc123"
        assert session.session_id == "abc123"
        assert session.new is False
        assert session.empty is False

    def test_data_is_copied(self):
        """Test the initial mapping is not shared."""
        data = {"a": 1}
        session = SessionData(data)
        session["a"] = 2
        assert data == {"a": 1}


class TestSessionAccess:
    """Tests for dict-like and attribute access."""

    def test_get_set_delete(self, session):
        session["role"] = "admin"
        assert session["role"] == "admin"
        del session["role"]
        assert "role" not in session
        with pytest.raises(KeyError):
            session["role"]

    def test_delete_missing(self, session):
        with pytest.raises(KeyError):
            del session["missing"]

    def test_get_default(self, session):
        """Test Mapping.get falls back to the default."""
        assert session.get("missing", "fallback") == "fallback"

    def test_attribute_access(self, session):
        """Test keys are readable and writable as attributes."""
        assert session.user == "jesus"
        session.theme = "dark"
        assert session["theme"] == "dark"
        with pytest.raises(AttributeError):
            session.missing

    def test_len_and_keys(self, session):
        assert len(session) == 2
        assert sorted(session.keys()) == ["count", "user"]

    def test_repr(self, session):
        assert repr(session).startswith("<Session [id:'abc123', new:False]")


class TestSessionFlash:
    """Tests for flash values."""

    def test_flash_read_once(self):
        """Test a flash value disappears after the first read."""
        session = SessionData()
        session.flash("message", "saved")
        assert "message" in session
        assert session["message"] == "saved"
        assert "message" not in session

    def test_flash_stored_under_prefix(self):
        """Test flash values are persisted under a reserved key."""
        session = SessionData()
        session.flash("message", "saved")
        assert session.data == {"__flash_message__": "saved"}

    def test_iteration_hides_prefix(self):
        session = SessionData({"user": 1})
        session.flash("message", "saved")
        assert sorted(session) == ["message", "user"]

    def test_flash_read_marks_changed(self):
        """Test consuming a flash value marks the session changed."""
        session = SessionData({"__flash_message__": "saved"}, id="abc")
        assert session.is_changed is False
        session["message"]
        assert session.is_changed is True

    def test_plain_value_wins_over_flash(self):
        session = SessionData({"message": "plain", "__flash_message__": "flash"})
        assert session["message"] == "plain"

    def test_plain_and_flash_keys_iterate_once(self):
        """Test a name held as plain and flash value is listed once."""
        session = SessionData({"message": "plain", "__flash_message__": "flash"})
        assert list(session) == ["message"]
        assert len(session) == 1


class TestSessionChanges:
    """Tests for change tracking."""

    def test_set_marks_changed(self, session):
        session["count"] = 2
        assert session.is_changed is True

    def test_read_does_not_mark_changed(self, session):
        session["user"]
        assert session.is_changed is False

    def test_reset_changed_flag(self, session):
        """Test assigning is_changed updates the flag, not the data."""
        session["count"] = 2
        session.is_changed = False
        assert session.is_changed is False
        assert "is_changed" not in session.data

    def test_read_only_property_not_stored(self, session):
        """Test assigning a read-only property raises instead of storing data."""
        with pytest.raises(AttributeError):
            session.new = True
        assert "new" not in session.data

    def test_changed(self, session):
        """Test changed() flags in-place mutations."""
        session.changed()
        assert session.is_changed is True

    def test_invalidate(self, session):
        """Test invalidate clears data and marks for destruction."""
        session.invalidate()
        assert session.empty is True
        assert session.destroyed is True
        assert session.is_changed is True
