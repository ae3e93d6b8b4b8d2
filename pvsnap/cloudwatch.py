"""Optional CloudWatch Logs spans for coordinator calls.

Emits one structured JSON event per coordinator operation so a backup or
restore run can be followed in CloudWatch Insights alongside the
orchestrator's own logs.

Activated when `cloudwatch_log_group` is set in the coordinator config and
boto3 is installed (`pip install -e ".[aws]"`). Silently no-ops otherwise.

Span fields:
    operation   — snapshot.create, snapshot.delete, volume.get_id, volume.set_id
    result      — durable, failed, deleted, absent, ok or error
    snapshot_id / volume_id / error, when known

CloudWatch Insights query for one volume:
    filter volume_id = "pvc-1234" | sort @timestamp asc
"""

import json
import threading
import time
from datetime import datetime, timezone

_client = None
_log_group = None
_log_stream = None
_lock = threading.Lock()


def init(log_group, log_stream):
    """Initialize the CloudWatch client for this process.

    No-ops if log_group is empty or boto3 is unavailable. A snapshotter
    re-initialised against the same log group keeps its existing stream.
    """
    global _client, _log_group, _log_stream
    if not log_group:
        return
    if _client is not None and log_group == _log_group:
        return
    try:
        import boto3
        _client = boto3.client("logs")
        _log_group = log_group
        _log_stream = log_stream
        _ensure()
    except Exception:
        _client = None


def emit(operation, result, elapsed_ms=None, **meta):
    """Emit a single span to CloudWatch Logs.

    Always returns immediately; never raises. Tracing is optional and must
    never fail a snapshot call.
    """
    if not _client:
        return
    event = {
        "operation": operation,
        "result": result,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if elapsed_ms is not None:
        event["elapsed_ms"] = round(elapsed_ms)
    event.update(meta)
    with _lock:
        try:
            _client.put_log_events(
                logGroupName=_log_group,
                logStreamName=_log_stream,
                logEvents=[{"timestamp": int(time.time() * 1000),
                            "message": json.dumps(event)}],
            )
        except Exception:
            pass  # tracing is optional


def _ensure():
    """Create the log group and log stream if they don't already exist."""
    for create, kwargs in [
        (_client.create_log_group, {"logGroupName": _log_group}),
        (_client.create_log_stream, {"logGroupName": _log_group,
                                     "logStreamName": _log_stream}),
    ]:
        try:
            create(**kwargs)
        except Exception:
            pass  # ResourceAlreadyExistsException or no permissions
