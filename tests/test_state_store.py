"""Tests for the state store."""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from hostwatch.engine import HysteresisEngine
from hostwatch.models import MemoryUsage, MonitorState, Reading
from hostwatch.state import StateStore


@pytest.fixture
def temp_state_dir():
    """Create temporary state directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_state_dir: Path) -> StateStore:
    return StateStore(temp_state_dir / ".bot_state.json")


class TestStateStoreLoad:
    """Tests for StateStore.load()."""

    def test_load_missing_file_returns_initial(self, store: StateStore) -> None:
        """First run: no file yields the zero-value state."""
        assert store.load() == MonitorState()

    def test_load_corrupted_json_returns_initial(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Invalid JSON yields the zero-value state and logs a warning."""
        store.state_file.write_text("{invalid json content")

        result = store.load()

        assert result == MonitorState()
        captured = capsys.readouterr()
        assert "state_file_corrupted" in captured.out

    def test_load_undecodable_bytes_returns_initial(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Bytes that are not UTF-8 count as a corrupted record."""
        store.state_file.write_bytes(b'{"temp_high": \xff\xfe true}')

        assert store.load() == MonitorState()
        assert "state_file_corrupted" in capsys.readouterr().out

    def test_load_non_object_returns_initial(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store.state_file.write_text("[1, 2, 3]")

        assert store.load() == MonitorState()
        assert "state_file_invalid" in capsys.readouterr().out

    def test_load_wrong_types_returns_initial(
        self, store: StateStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store.state_file.write_text(json.dumps({"temp_high": "maybe", "baseline_power": "lots"}))

        assert store.load() == MonitorState()
        assert "state_file_invalid" in capsys.readouterr().out

    def test_load_empty_file_returns_initial(self, store: StateStore) -> None:
        store.state_file.write_text("")

        assert store.load() == MonitorState()

    def test_load_legacy_record(self, store: StateStore) -> None:
        """A record without schema_version, as older deployments wrote it."""
        store.state_file.write_text(
            json.dumps(
                {
                    "cpu_high": False,
                    "temp_high": True,
                    "power_high": False,
                    "baseline_power": 42,
                },
                indent=2,
            )
        )

        result = store.load()

        assert result.temp_high is True
        assert result.cpu_high is False
        assert result.baseline_power == 42.0

    def test_load_unreadable_returns_initial(self, store: StateStore) -> None:
        """A directory where the file should be counts as unreadable."""
        store.state_file.mkdir()

        assert store.load() == MonitorState()


class TestStateStoreSave:
    """Tests for StateStore.save()."""

    def test_round_trip(self, store: StateStore) -> None:
        """save() then load() returns an equal state."""
        state = MonitorState(temp_high=True, cpu_high=False, power_high=True, baseline_power=38.5)

        assert store.save(state) is True

        assert store.load() == state

    def test_saved_record_is_json(self, store: StateStore) -> None:
        store.save(MonitorState(cpu_high=True))

        data = json.loads(store.state_file.read_text())
        assert data["cpu_high"] is True
        assert data["baseline_power"] is None
        assert data["schema_version"] == "1.0"

    def test_save_creates_directory(self, temp_state_dir: Path) -> None:
        store = StateStore(temp_state_dir / "nested" / "state" / "state.json")

        assert store.save(MonitorState()) is True
        assert store.state_file.exists()

    def test_save_overwrites(self, store: StateStore) -> None:
        store.save(MonitorState(temp_high=True))
        store.save(MonitorState(temp_high=False))

        assert store.load().temp_high is False

    def test_failed_rename_keeps_previous_record(
        self, store: StateStore, temp_state_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A failed write leaves the old record intact and no temp files."""
        store.save(MonitorState(temp_high=True))

        with patch("hostwatch.state.manager.os.replace", side_effect=OSError("disk full")):
            result = store.save(MonitorState(temp_high=False))

        assert result is False
        assert store.load().temp_high is True
        assert list(temp_state_dir.glob(".tmp-state-*")) == []
        assert "state_save_failed" in capsys.readouterr().out

    def test_unwritable_directory_does_not_raise(self, temp_state_dir: Path) -> None:
        blocker = temp_state_dir / "blocker"
        blocker.write_text("not a directory")
        store = StateStore(blocker / "state.json")

        assert store.save(MonitorState()) is False


class TestRestart:
    """State recovery across process restarts."""

    def test_baseline_survives_restart(self, store: StateStore) -> None:
        """Reload then re-evaluate keeps the first baseline."""
        engine = HysteresisEngine()
        memory = MemoryUsage(percent=30, used_mb=1000, total_mb=4000)

        first = engine.evaluate(
            Reading(cpu_percent=5, memory=memory, power_watts=40.0), MonitorState()
        )
        store.save(first.state)

        restarted = StateStore(store.state_file).load()
        second = engine.evaluate(
            Reading(cpu_percent=5, memory=memory, power_watts=90.0), restarted
        )

        assert second.state.baseline_power == 40.0
        assert second.state.power_high is True
