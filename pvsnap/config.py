import json
from pathlib import Path

from dotenv import dotenv_values

from pvsnap.errors import ConfigurationError

GLOBAL_CONFIG_FILE = Path.home() / ".pvsnap" / "config.json"

DEFAULT_CONFIG = {
    "namespace": "longhorn-system",
    "data_engine": "v1",
    "snapshot_prefix": "velero",
    # Optional: "storage_backend": "longhorn", "kubeconfig": "~/.kube/config"
    # Optional: "audit_log": "~/.pvsnap/logs.jsonl", "cloudwatch_log_group": "/pvsnap/prod"
}


def load_global_config():
    """Load ~/.pvsnap/config.json — defaults saved by `pvsnap config`."""
    if not GLOBAL_CONFIG_FILE.exists():
        return {}
    try:
        return json.loads(GLOBAL_CONFIG_FILE.read_text())
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {GLOBAL_CONFIG_FILE}: {e}") from e


def save_global_config(updates):
    """Merge updates into ~/.pvsnap/config.json."""
    existing = load_global_config()
    existing.update(updates)
    GLOBAL_CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    GLOBAL_CONFIG_FILE.write_text(json.dumps(existing, indent=2) + "\n")


def load_options_file(path):
    """Read a KEY=VALUE options file, the same string map the backup orchestrator passes in.

    Keys are lower-cased so NAMESPACE=... and namespace=... mean the same thing.
    Empty values are dropped.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Options file not found: {path}")
    return {key.lower(): value for key, value in dotenv_values(path).items() if value}


def load_config(options_file=None, overrides=None):
    # Merge order: defaults → global config → options file → explicit overrides
    config = {**DEFAULT_CONFIG, **load_global_config()}
    if options_file:
        config.update(load_options_file(options_file))
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})
    return {key: str(value) for key, value in config.items()}
