class PvsnapError(Exception):
    """Base class for everything the coordinator raises on purpose."""


class ConfigurationError(PvsnapError):
    """Cluster credentials or client construction failed. Fatal to init()."""


class RemoteCallFailure(PvsnapError):
    """The storage control plane rejected or failed a request."""


class NotFoundError(PvsnapError):
    pass


class ConversionError(PvsnapError):
    """A volume descriptor could not be read into the structured record."""


class DuplicateSnapshotError(PvsnapError):
    """A snapshot id was inserted twice. Always a bug in the caller."""
