"""JSONL event log for query compilations.

Captures compile requests, their outcome and timing for debugging and
analysis of how selections turn into queries.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class CompileLog:
    """Log compile events to a JSONL file.

    Each event is written as a JSON line with:
    - event: Event type (session_start, compile_start, compile_end, compile_error, session_end)
    - timestamp: ISO 8601 timestamp
    - run_id: Run identifier
    - call_id: Compile call identifier (compile events only)
    - ... event-specific fields

    Example:
        log = CompileLog(Path("compiles.jsonl"), run_id="r-001")
        call_id = log.on_compile_start(selection, options)
        log.on_compile_end(call_id, query)
        log.close()
    """

    def __init__(self, log_path: Path | str, run_id: Optional[str] = None):
        """Initialize the compile log.

        Args:
            log_path: Path to JSONL output file
            run_id: Run identifier; generated when omitted
        """
        self.log_path = Path(log_path)
        self.run_id = run_id or f"run-{uuid.uuid4().hex[:8]}"
        self.compile_count = 0
        self.error_count = 0
        self._started: dict[str, float] = {}

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_file = open(self.log_path, "a", encoding="utf-8")

        self._write_event({
            "event": "session_start",
            "run_id": self.run_id,
            "timestamp": self._timestamp(),
        })

    def __enter__(self) -> 'CompileLog':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write event as one JSON line; failures are reported, not raised."""
        try:
            if "timestamp" not in event:
                event["timestamp"] = self._timestamp()
            if "run_id" not in event:
                event["run_id"] = self.run_id

            json.dump(event, self.log_file, ensure_ascii=False)
            self.log_file.write("\n")
            self.log_file.flush()
        except (OSError, TypeError, ValueError) as e:
            # A broken log must not fail the compilation it describes.
            logger.warning("Failed to write compile log event: %s", e)

    def _serialize_value(self, value: Any, max_length: int = 500) -> Any:
        """Serialize value for logging, truncating if too long."""
        if value is None:
            return None

        if not isinstance(value, (str, int, float, bool, list, dict)):
            value = str(value)

        if isinstance(value, str) and len(value) > max_length:
            return value[:max_length] + f"... (truncated, {len(value)} total chars)"

        if isinstance(value, dict):
            return {k: self._serialize_value(v, max_length) for k, v in value.items()}

        if isinstance(value, list):
            if len(value) > 10:
                return [self._serialize_value(item, max_length) for item in value[:10]] + \
                       [f"... ({len(value) - 10} more items)"]
            return [self._serialize_value(item, max_length) for item in value]

        return value

    # === Compile events ===

    def on_compile_start(self, selection, options=None) -> str:
        """Record a compile request and return its call id."""
        call_id = f"c{self.compile_count}"
        self.compile_count += 1
        self._started[call_id] = time.perf_counter()
        self._write_event({
            "event": "compile_start",
            "call_id": call_id,
            "node_count": len(selection),
            "central_id": selection.central_id,
            "count_ids": self._serialize_value(list(selection.count_ids)),
            "options": self._serialize_value(options.to_dict(), max_length=200) if options else None,
        })
        return call_id

    def _duration_ms(self, call_id: str) -> Optional[float]:
        started = self._started.pop(call_id, None)
        if started is None:
            return None
        return round((time.perf_counter() - started) * 1000, 3)

    def on_compile_end(self, call_id: str, query: str, triple_count: Optional[int] = None) -> None:
        self._write_event({
            "event": "compile_end",
            "call_id": call_id,
            "status": "ok",
            "triple_count": triple_count,
            "query_chars": len(query),
            "query": self._serialize_value(query, max_length=1000),
            "duration_ms": self._duration_ms(call_id),
        })

    def on_compile_error(self, call_id: str, exception: BaseException) -> None:
        self.error_count += 1
        self._write_event({
            "event": "compile_error",
            "call_id": call_id,
            "status": "error",
            "error_type": type(exception).__name__,
            "exception": self._serialize_value(str(exception)),
            "duration_ms": self._duration_ms(call_id),
        })

    # === Cleanup ===

    def close(self) -> None:
        """Write the session end marker and close the file."""
        if getattr(self, 'log_file', None) and not self.log_file.closed:
            self._write_event({
                "event": "session_end",
                "compiles": self.compile_count,
                "errors": self.error_count,
            })
            self.log_file.close()

    def __del__(self):
        self.close()
