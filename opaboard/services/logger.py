# opaboard/services/logger.py

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from opaboard.core.models import ReconcileResult


class RefreshLogger:
    """
    Logger for refresh cycles: one line per fetch+reconcile.
    Supports both JSON and text formats.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_file: str = "opaboard_refresh.log",
        log_format: str = "json",
        rotate_daily: bool = True,
    ):
        self.log_dir = Path(log_dir)
        self.log_file = log_file
        self.log_format = log_format.lower()
        self.rotate_daily = rotate_daily

        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_path(self) -> Path:
        """Get the full path to the log file, with date rotation if enabled."""
        if self.rotate_daily:
            date_str = datetime.now().strftime("%Y-%m-%d")
            name, ext = os.path.splitext(self.log_file)
            filename = f"{name}_{date_str}{ext}"
        else:
            filename = self.log_file
        return self.log_dir / filename

    def log_cycle(
        self,
        cycle: int,
        result: Optional[ReconcileResult] = None,
        success: bool = True,
        error: Optional[str] = None,
        upstream_errors: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Log one refresh cycle.

        Args:
            cycle: Sequence number of the cycle within this process
            result: Canonical snapshot produced by the cycle (None on failure)
            success: Whether fetch+reconcile succeeded
            error: Error message if failed
            upstream_errors: Per-resource fetch failures that were absorbed
        """
        timestamp = datetime.now().isoformat()
        counts: Dict[str, Any] = result.count_by_status() if result is not None else {}
        attendants = len(result.attendants) if result is not None else 0

        if self.log_format == "json":
            log_entry = {
                "timestamp": timestamp,
                "cycle": cycle,
                "success": success,
                "error": error,
                "tickets": counts,
                "attendants": attendants,
                "upstream_errors": upstream_errors or {},
            }
            log_line = json.dumps(log_entry, ensure_ascii=False)
        else:
            status = "SUCCESS" if success else "FAILED"
            log_parts = [timestamp, status, f"cycle={cycle}"]
            if counts:
                log_parts.append(" ".join(f"{k}={v}" for k, v in counts.items()))
            log_parts.append(f"attendants={attendants}")
            if error:
                log_parts.append(f"error={error}")
            if upstream_errors:
                log_parts.append("upstream_errors=[%s]" % ", ".join(sorted(upstream_errors)))
            log_line = " | ".join(log_parts)

        log_path = self._get_log_path()
        try:
            with log_path.open("a", encoding="utf-8") as f:
                f.write(log_line + "\n")
        except Exception as e:
            # Don't fail the refresh if logging fails
            print(f"[WARN] Failed to write to log file {log_path}: {e}")


def init_logger(config: Dict[str, Any]) -> Optional[RefreshLogger]:
    """
    Build the refresh logger from config.

    Args:
        config: Config dict with 'logging' section

    Returns:
        RefreshLogger instance or None if logging disabled
    """
    logging_cfg = config.get("logging", {})
    if not logging_cfg.get("enabled", True):
        return None

    return RefreshLogger(
        log_dir=logging_cfg.get("log_dir", "logs"),
        log_file=logging_cfg.get("log_file", "opaboard_refresh.log"),
        log_format=logging_cfg.get("log_format", "json"),
        rotate_daily=logging_cfg.get("rotate_daily", True),
    )
