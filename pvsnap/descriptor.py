"""Conversion between loosely-typed PersistentVolume mappings and VolumeDescriptor.

The orchestrator hands the coordinator a PV as a plain nested dict (the shape
`kubectl get pv -o json` prints). Everything past this module works on the
structured VolumeDescriptor instead. Fields the descriptor doesn't model are
carried along untouched in `raw` so the round trip loses nothing.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field

from kubernetes.utils import parse_quantity

from pvsnap.errors import ConversionError

STORAGE_RESOURCE = "storage"


@dataclass
class VolumeDescriptor:
    name: str = ""
    storage_class: str = ""
    capacity: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def storage_capacity(self):
        return self.capacity.get(STORAGE_RESOURCE, "")


def _section(obj, key):
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConversionError(f"PersistentVolume {key} must be a mapping, got {type(value).__name__}")
    return value


def _string(section, key, where):
    value = section.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConversionError(f"PersistentVolume {where}.{key} must be a string, got {type(value).__name__}")
    return value


def _capacity(spec):
    raw = _section(spec, "capacity")
    capacity = {}
    for resource, quantity in raw.items():
        try:
            parse_quantity(quantity)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid capacity {resource}={quantity!r}: {e}") from e
        capacity[str(resource)] = str(quantity)
    return capacity


def from_unstructured(obj):
    """Read a PV mapping into a VolumeDescriptor. Raises ConversionError on a bad shape."""
    if not isinstance(obj, Mapping):
        raise ConversionError(f"PersistentVolume must be a mapping, got {type(obj).__name__}")

    metadata = _section(obj, "metadata")
    spec = _section(obj, "spec")
    return VolumeDescriptor(
        name=_string(metadata, "name", "metadata"),
        storage_class=_string(spec, "storageClassName", "spec"),
        capacity=_capacity(spec),
        raw=copy.deepcopy(dict(obj)),
    )


def to_unstructured(descriptor):
    """Write a VolumeDescriptor back out as a fresh PV mapping.

    Fields that didn't change keep their original values, so an integer
    capacity stays an integer.
    """
    obj = copy.deepcopy(descriptor.raw)
    metadata = obj["metadata"] = obj.get("metadata") or {}
    spec = obj["spec"] = obj.get("spec") or {}

    if descriptor.name:
        metadata["name"] = descriptor.name
    else:
        metadata.pop("name", None)
    if descriptor.storage_class:
        spec["storageClassName"] = descriptor.storage_class
    if descriptor.capacity and descriptor.capacity != _capacity(spec):
        spec["capacity"] = dict(descriptor.capacity)
    return obj
