"""Audit logging for snapshot lifecycle events.

Appends structured JSON entries to ~/.pvsnap/logs.jsonl (or the `audit_log`
config path). Each entry records one state-changing call (snapshot.create,
snapshot.delete, volume.set_id) with timestamp, snapshot ID, volume, and
result.
"""

import json
import threading
from datetime import datetime
from pathlib import Path

LOGS_FILE = Path.home() / ".pvsnap" / "logs.jsonl"

_lock = threading.Lock()


def write_log(entry, path=None):
    """Append an audit log entry."""
    logs_file = Path(path).expanduser() if path else LOGS_FILE
    logs_file.parent.mkdir(parents=True, exist_ok=True)
    entry["timestamp"] = datetime.now().isoformat()
    with _lock, open(logs_file, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs(path=None):
    """Return every parseable entry, oldest first. Corrupt lines are skipped."""
    logs_file = Path(path).expanduser() if path else LOGS_FILE
    if not logs_file.exists():
        return []
    entries = []
    for line in logs_file.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return entries
