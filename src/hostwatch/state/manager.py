"""State persistence with atomic writes for crash-safe recovery."""

import json
import os
import tempfile
from pathlib import Path
from typing import Union

import structlog
from pydantic import ValidationError

from hostwatch.models import MonitorState

log = structlog.get_logger()


class StateStore:
    """Loads the monitor state at startup and persists it after each tick.

    Writes go to a temp file in the same directory which is then renamed
    over the state file, so a crash mid-write leaves the previous record
    intact. Neither loading nor saving ever raises.
    """

    DEFAULT_FILENAME = ".bot_state.json"

    def __init__(self, state_file: Union[str, Path]) -> None:
        """Initialize state store.

        Args:
            state_file: Path of the JSON state record
        """
        self.state_file = Path(state_file)

    def load(self) -> MonitorState:
        """Read the persisted state.

        Returns:
            The stored MonitorState, or the zero-value state if:
            - File doesn't exist (first run)
            - File is unreadable or corrupted
            - Record fails validation
        """
        if not self.state_file.exists():
            log.info("state_file_not_found", path=str(self.state_file))
            return MonitorState.initial()

        try:
            content = self.state_file.read_text(encoding="utf-8")
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning(
                "state_file_corrupted",
                path=str(self.state_file),
                error=str(e),
            )
            return MonitorState.initial()
        except OSError as e:
            log.warning(
                "state_file_unreadable",
                path=str(self.state_file),
                error=str(e),
            )
            return MonitorState.initial()

        if not isinstance(data, dict):
            log.warning(
                "state_file_invalid",
                path=str(self.state_file),
                reason="record is not a JSON object",
            )
            return MonitorState.initial()

        try:
            state = MonitorState.model_validate(data)
        except ValidationError as e:
            log.warning(
                "state_file_invalid",
                path=str(self.state_file),
                error=str(e),
            )
            return MonitorState.initial()

        log.debug(
            "state_loaded",
            path=str(self.state_file),
            temp_high=state.temp_high,
            cpu_high=state.cpu_high,
            power_high=state.power_high,
            baseline_power=state.baseline_power,
        )
        return state

    def save(self, state: MonitorState) -> bool:
        """Write the full state atomically, replacing the previous record.

        Failures are logged and swallowed; the previous on-disk copy stays
        in place until the next successful save.

        Args:
            state: State to persist

        Returns:
            True if the record was written
        """
        content = json.dumps(state.model_dump(mode="json"), indent=2) + "\n"
        state_dir = self.state_file.parent

        try:
            state_dir.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=state_dir,
                prefix=".tmp-state-",
                suffix=".json",
            )
        except OSError as e:
            log.error("state_save_failed", path=str(self.state_file), error=str(e))
            return False

        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            # Atomic rename (same filesystem)
            os.replace(temp_path, self.state_file)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            log.error("state_save_failed", path=str(self.state_file), error=str(e))
            return False

        log.debug("state_saved", path=str(self.state_file))
        return True
