import secrets

DEFAULT_PREFIX = "velero"


def generate_token():
    """16 hex chars from the OS CSPRNG, same shape as a truncated dashless UUID."""
    return secrets.token_hex(8)


class SnapshotIdGenerator:
    """Builds snapshot ids of the form <prefix>-snap-<token>.

    The prefix marks this system as the creator on the storage side. The token
    is never derived from caller input. Collisions are unlikely, but the
    registry check in generate() is what guarantees uniqueness, so it keeps
    drawing until the registry reports the candidate unused.
    """

    def __init__(self, registry, prefix=DEFAULT_PREFIX, token_fn=None):
        self.registry = registry
        self.prefix = prefix or DEFAULT_PREFIX
        self._token_fn = token_fn or generate_token

    def candidate(self):
        return f"{self.prefix}-snap-{self._token_fn()}"

    def generate(self):
        while True:
            snapshot_id = self.candidate()
            if not self.registry.contains_snapshot(snapshot_id):
                return snapshot_id
