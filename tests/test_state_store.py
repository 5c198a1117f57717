"""Unit tests for StateStore."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from dh_ddns.cli import PersistedState, StateCorruptError, StateStore


class TestStateStoreLoad:
    """Tests for StateStore load functionality."""

    def test_load_returns_empty_state_when_file_missing(self, tmp_path: Path) -> None:
        """Test load returns empty state when file doesn't exist."""
        state_file = tmp_path / "nonexistent" / "state.json"
        store = StateStore(str(state_file))

        state = store.load()

        assert state.records == {}
        assert state.last_public_ip == ""
        assert state.last_updated is None

    def test_load_writes_empty_state_when_file_missing(self, tmp_path: Path) -> None:
        """Test load creates the state file (and its directory) on first run."""
        state_file = tmp_path / "nonexistent" / "state.json"
        store = StateStore(str(state_file))

        store.load()

        assert state_file.exists()
        assert json.loads(state_file.read_text()) == {
            "last_public_ip": "",
            "last_updated": None,
            "records": {},
        }

    def test_load_returns_file_contents(self, tmp_path: Path) -> None:
        """Test load returns parsed content from valid JSON file."""
        state_file = tmp_path / "state.json"
        state_file.write_text(
            json.dumps(
                {
                    "last_public_ip": "203.0.113.42",
                    "last_updated": "2024-05-01T12:00:00+00:00",
                    "records": {"home.example.com": "203.0.113.42"},
                }
            )
        )

        state = StateStore(str(state_file)).load()

        assert state.last_public_ip == "203.0.113.42"
        assert state.last_updated == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert state.records == {"home.example.com": "203.0.113.42"}

    def test_load_accepts_legacy_state_format(self, tmp_path: Path) -> None:
        """Test load reads older state files with last_ip and nanosecond timestamps."""
        state_file = tmp_path / "state.json"
        state_file.write_text(
            json.dumps(
                {
                    "last_ip": "198.51.100.7",
                    "last_updated": "2024-05-01T12:00:00.123456789Z",
                    "records": {"example.com": "198.51.100.7"},
                }
            )
        )

        state = StateStore(str(state_file)).load()

        assert state.last_public_ip == "198.51.100.7"
        assert state.last_updated == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert state.records == {"example.com": "198.51.100.7"}

    def test_load_treats_zero_timestamp_as_never(self, tmp_path: Path) -> None:
        """Test the zero timestamp reads as never updated."""
        state_file = tmp_path / "state.json"
        state_file.write_text(
            json.dumps({"last_ip": "", "last_updated": "0001-01-01T00:00:00Z", "records": None})
        )

        state = StateStore(str(state_file)).load()

        assert state.last_updated is None
        assert state.records == {}

    def test_load_raises_on_invalid_json(self, tmp_path: Path) -> None:
        """Test load refuses to guess when the state file is corrupted."""
        state_file = tmp_path / "state.json"
        state_file.write_text("not valid json {{{")

        with pytest.raises(StateCorruptError):
            StateStore(str(state_file)).load()

        # The corrupted file is left alone for inspection
        assert state_file.read_text() == "not valid json {{{"

    def test_load_raises_on_wrong_document_shape(self, tmp_path: Path) -> None:
        """Test load rejects JSON that is not a state object."""
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps(["192.0.2.1"]))

        with pytest.raises(StateCorruptError):
            StateStore(str(state_file)).load()

    def test_load_raises_on_wrongly_typed_records(self, tmp_path: Path) -> None:
        """Test load rejects a records mapping with non-string values."""
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({"last_public_ip": "", "records": {"a.example.com": 1}}))

        with pytest.raises(StateCorruptError):
            StateStore(str(state_file)).load()

    def test_load_raises_on_bad_timestamp(self, tmp_path: Path) -> None:
        """Test load rejects an unparseable last_updated value."""
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({"last_updated": "yesterday", "records": {}}))

        with pytest.raises(StateCorruptError):
            StateStore(str(state_file)).load()


class TestStateStoreSave:
    """Tests for StateStore save functionality."""

    def test_save_creates_parent_directories(self, tmp_path: Path) -> None:
        """Test save creates parent directories if they don't exist."""
        state_file = tmp_path / "nested" / "path" / "state.json"
        store = StateStore(str(state_file))

        store.save(PersistedState())

        assert state_file.exists()
        assert state_file.parent.exists()

    def test_save_then_load_round_trips(self, tmp_path: Path) -> None:
        """Test a saved state loads back with the same content."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))
        state = PersistedState(
            last_public_ip="203.0.113.42",
            last_updated=datetime(2024, 5, 1, 12, 30, 15, tzinfo=timezone.utc),
            records={"home.example.com": "203.0.113.42", "example.com": "203.0.113.42"},
        )

        store.save(state)

        assert store.load() == state

    def test_save_atomic_via_temp_file(self, tmp_path: Path) -> None:
        """Test save uses temp file + rename for atomic writes."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        store.save(PersistedState(last_public_ip="192.0.2.1"))

        assert state_file.exists()
        temp_file = state_file.with_suffix(".json.tmp")
        assert not temp_file.exists()
        assert json.loads(state_file.read_text())["last_public_ip"] == "192.0.2.1"

    def test_save_overwrites_existing_file(self, tmp_path: Path) -> None:
        """Test save overwrites existing file content."""
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({"records": {"old.example.com": "192.0.2.1"}}))

        store = StateStore(str(state_file))
        store.save(PersistedState(records={"new.example.com": "192.0.2.2"}))

        content = json.loads(state_file.read_text())
        assert content["records"] == {"new.example.com": "192.0.2.2"}

    def test_save_formats_json_with_indentation(self, tmp_path: Path) -> None:
        """Test saved JSON is formatted with indentation for readability."""
        state_file = tmp_path / "state.json"
        StateStore(str(state_file)).save(PersistedState())

        content = state_file.read_text()
        assert "\n" in content
        assert "  " in content

    def test_save_sorts_keys_for_deterministic_output(self, tmp_path: Path) -> None:
        """Test saved JSON has sorted keys for deterministic output."""
        state_file = tmp_path / "state.json"
        StateStore(str(state_file)).save(
            PersistedState(records={"z.example.com": "192.0.2.1", "a.example.com": "192.0.2.1"})
        )

        content = state_file.read_text()
        assert content.find('"last_public_ip"') < content.find('"last_updated"') < content.find('"records"')
        assert content.find('"a.example.com"') < content.find('"z.example.com"')


class TestStateStorePath:
    """Tests for StateStore path handling."""

    def test_store_path_is_pathlib_path(self, tmp_path: Path) -> None:
        """Test store path is converted to pathlib Path."""
        state_file = tmp_path / "state.json"
        store = StateStore(str(state_file))

        assert isinstance(store.path, Path)
        assert store.path == state_file
