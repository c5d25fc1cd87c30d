"""Per-flyer conversion audit logs.

Every flyer conversion gets its own plain-text file,
``<logs_dir>/flyer-conversion-<log id>.log``, recording what was sent to
the vision model, what came back, what was parsed, which years a reviewer
picked and which archive entities were created.  When a contributor reports
"the flyer came out wrong", this file is what gets read.

These files are separate from the structlog application log: they are
meant to be read top to bottom by a person, one file per flyer.  Failures to
write them go to the application log and never interrupt a conversion.

All writes go through one ``threading.Lock`` so concurrent conversions
cannot interleave lines or race on the open-file table.
"""

from __future__ import annotations

import datetime
import threading
import traceback
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from wasthere.models.dates import YearSelection
from wasthere.models.flyer import FlyerAnalysisResult
from wasthere.utils.logging import get_logger

_LOG_FILE_PREFIX = "flyer-conversion-"


class FlyerConversionLogger:
    """Writes one timestamped log file per flyer conversion."""

    def __init__(self, logs_dir: str | Path) -> None:
        self._logs_dir = Path(logs_dir)
        self._logs_dir.mkdir(parents=True, exist_ok=True)
        self._writers: dict[str, TextIO] = {}
        self._start_times: dict[str, datetime.datetime] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_conversion_log(self, image_path: str, file_name: str) -> str:
        """Open a new log file and return its id (``YYYYMMDD-HHMMSS-fff``)."""
        timestamp = datetime.datetime.now(tz=datetime.timezone.utc)  # noqa: UP017
        base_id = f"{timestamp:%Y%m%d-%H%M%S}-{timestamp.microsecond // 1000:03d}"

        with self._lock:
            log_id = base_id
            suffix = 1
            while log_id in self._writers or self._path_for(log_id).exists():
                log_id = f"{base_id}-{suffix}"
                suffix += 1

            self._writers[log_id] = open(  # noqa: SIM115
                self._path_for(log_id), "w", encoding="utf-8", buffering=1
            )
            self._start_times[log_id] = timestamp

            self._write(log_id, "=== FLYER CONVERSION LOG START ===")
            self._write(log_id, f"Log ID: {log_id}")
            self._write(log_id, f"Timestamp: {_format_timestamp(timestamp)} UTC")
            self._write(log_id, f"Image Path: {image_path}")
            self._write(log_id, f"File Name: {file_name}")
            self._write(log_id, "")

        self._logger.info("conversion_log_started", log_id=log_id, file_name=file_name)
        return log_id

    def get_log_file_path(self, log_id: str) -> Path | None:
        """Return the log file for *log_id* if it exists on disk."""
        path = self._path_for(log_id)
        return path if path.exists() else None

    def complete_conversion_log(
        self,
        log_id: str,
        success: bool,
        summary: str,
        events_created: int = 0,
        venues_created: int = 0,
        acts_created: int = 0,
        club_nights_created: int = 0,
    ) -> None:
        """Write the summary footer and close the file."""
        with self._lock:
            end = datetime.datetime.now(tz=datetime.timezone.utc)  # noqa: UP017
            self._write(log_id, "")
            self._write(log_id, "--- CONVERSION SUMMARY ---")
            self._write(log_id, f"Success: {success}")
            self._write(log_id, f"Summary: {summary}")
            self._write(log_id, "")
            self._write(log_id, "Entity Operations:")
            self._write(log_id, f"  Events Created: {events_created}")
            self._write(log_id, f"  Venues Created: {venues_created}")
            self._write(log_id, f"  Acts Created: {acts_created}")
            self._write(log_id, f"  Club Nights Created: {club_nights_created}")
            self._write(log_id, "")

            started = self._start_times.pop(log_id, None)
            if started is not None:
                self._write(log_id, f"Total Duration: {(end - started).total_seconds():.2f} seconds")

            self._write(log_id, f"End Timestamp: {_format_timestamp(end)} UTC")
            self._write(log_id, "=== FLYER CONVERSION LOG END ===")
            self._close_writer(log_id)

    def close(self) -> None:
        """Close any log files that were never completed."""
        with self._lock:
            for log_id in list(self._writers):
                self._close_writer(log_id)
            self._start_times.clear()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def log_llm_request(
        self,
        log_id: str,
        prompt: str,
        image_path: str,
        image_size_bytes: int,
        mime_type: str,
        provider: str,
    ) -> None:
        with self._lock:
            self._write(log_id, "--- VISION API REQUEST ---")
            self._write(log_id, f"Provider: {provider}")
            self._write(log_id, f"Image Path: {image_path}")
            self._write(
                log_id,
                f"Image Size: {image_size_bytes} bytes ({image_size_bytes / 1024.0:.2f} KB)",
            )
            self._write(log_id, f"MIME Type: {mime_type}")
            self._write(log_id, "")
            self._write(log_id, "Prompt:")
            self._write(log_id, prompt)
            self._write(log_id, "")

    def log_llm_response(
        self,
        log_id: str,
        raw_response: str,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        with self._lock:
            self._write(log_id, "--- VISION API RESPONSE ---")
            self._write(log_id, f"Success: {success}")
            if not success and error_message:
                self._write(log_id, f"Error: {error_message}")
            self._write(log_id, "")
            self._write(log_id, "Raw Response:")
            self._write(log_id, raw_response)
            self._write(log_id, "")

    def log_analysis_result(self, log_id: str, result: FlyerAnalysisResult) -> None:
        """Record every parsed club night plus the diagnostics trail."""
        with self._lock:
            self._write(log_id, "--- ANALYSIS RESULT ---")
            self._write(log_id, f"Success: {result.success}")
            if not result.success:
                self._write(log_id, f"Error Message: {result.error_message}")
            self._write(log_id, f"Club Nights Found: {len(result.club_nights)}")
            self._write(log_id, "")

            for index, night in enumerate(result.club_nights, start=1):
                self._write(log_id, f"Club Night {index}:")
                self._write(log_id, f"  Event Name: {night.event_name}")
                self._write(log_id, f"  Venue Name: {night.venue_name}")
                self._write(log_id, f"  Date: {night.date.isoformat() if night.date else 'null'}")
                self._write(log_id, f"  Day of Week: {night.day_of_week or 'null'}")
                self._write(log_id, f"  Month: {night.month if night.month is not None else 'null'}")
                self._write(log_id, f"  Day: {night.day if night.day is not None else 'null'}")
                self._write(
                    log_id,
                    f"  Candidate Years: {', '.join(str(y) for y in night.candidate_years)}",
                )
                self._write(log_id, f"  Acts Count: {len(night.acts)}")
                if night.acts:
                    self._write(log_id, "  Acts:")
                    for act in night.acts:
                        self._write(log_id, f"    - {act.name} (Live Set: {act.is_live_set})")
                self._write(log_id, "")

            diagnostics = result.diagnostics
            if diagnostics.steps or diagnostics.metadata:
                self._write(log_id, "Diagnostics:")
                self._write(log_id, f"  Steps: {len(diagnostics.steps)}")
                for step in diagnostics.steps:
                    self._write(
                        log_id,
                        f"  - {step.name}: {step.status.value} ({step.duration_ms or 0}ms)",
                    )
                    if step.details:
                        self._write(log_id, f"    Details: {step.details}")
                    if step.error:
                        self._write(log_id, f"    Error: {step.error}")
                self._write(log_id, "")
                self._write(log_id, "Metadata:")
                for key, value in diagnostics.metadata.items():
                    self._write(log_id, f"  {key}: {value}")
            self._write(log_id, "")

    def log_user_year_selection(self, log_id: str, selections: Iterable[YearSelection]) -> None:
        selected = list(selections)
        with self._lock:
            self._write(log_id, "--- USER YEAR SELECTION ---")
            self._write(log_id, f"Selected Years Count: {len(selected)}")
            for selection in selected:
                self._write(log_id, f"  {selection.month}/{selection.day} -> Year: {selection.year}")
            self._write(log_id, "")

    def log_entity_operation(
        self,
        log_id: str,
        operation: str,
        entity_type: str,
        entity_name: str,
        entity_id: int | None = None,
    ) -> None:
        """Record a create/match/update of an archive entity."""
        id_info = f" (ID: {entity_id})" if entity_id is not None else ""
        with self._lock:
            self._write(log_id, f"ENTITY {operation}: {entity_type} - {entity_name}{id_info}")

    def log_error(self, log_id: str, message: str, exc: BaseException | None = None) -> None:
        with self._lock:
            self._write(log_id, "!!! ERROR !!!")
            self._write(log_id, f"Error Message: {message}")
            if exc is not None:
                self._write(log_id, f"Exception Type: {type(exc).__name__}")
                self._write(log_id, f"Exception Message: {exc}")
                if exc.__traceback__ is not None:
                    self._write(log_id, "Stack Trace:")
                    self._write(
                        log_id,
                        "".join(traceback.format_tb(exc.__traceback__)).rstrip(),
                    )
                cause = exc.__cause__ or exc.__context__
                if cause is not None:
                    self._write(log_id, f"Inner Exception: {cause}")
            self._write(log_id, "")

    # ------------------------------------------------------------------
    # Internals (callers hold self._lock)
    # ------------------------------------------------------------------

    def _path_for(self, log_id: str) -> Path:
        return self._logs_dir / f"{_LOG_FILE_PREFIX}{log_id}.log"

    def _write(self, log_id: str, line: str) -> None:
        writer = self._writers.get(log_id)
        if writer is None:
            return
        try:
            writer.write(line + "\n")
        except (OSError, ValueError) as exc:
            self._logger.error("conversion_log_write_failed", log_id=log_id, error=str(exc))

    def _close_writer(self, log_id: str) -> None:
        writer = self._writers.pop(log_id, None)
        if writer is None:
            return
        try:
            writer.close()
        except OSError as exc:
            self._logger.error("conversion_log_close_failed", log_id=log_id, error=str(exc))


def _format_timestamp(value: datetime.datetime) -> str:
    return f"{value:%Y-%m-%d %H:%M:%S}.{value.microsecond // 1000:03d}"
