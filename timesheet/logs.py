from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_path: str | None, *, verbose: bool = False) -> None:
    root = logging.getLogger("timesheet")
    if getattr(root, "_timesheet_configured", False):
        return
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(logging.Formatter("timesheet: %(levelname)s %(message)s"))
    root.addHandler(console)
    if log_path:
        path = Path(log_path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8", errors="ignore")
        except OSError as exc:
            root.warning("cannot open log file %s: %s", path, exc)
        else:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
    root._timesheet_configured = True  # type: ignore[attr-defined]
