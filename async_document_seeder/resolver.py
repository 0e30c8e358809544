import json
from collections.abc import Mapping
from typing import Any

from .errors import MissingIdentifierError, MissingSourceError

REFERENCE_MARKER = "->"
PATH_SEPARATOR = "."

ResultTree = dict[str, dict[str, Any]]

_MISSING = object()


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and REFERENCE_MARKER in value


def _lookup(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(segment, _MISSING)
    if isinstance(value, (list, tuple)):
        try:
            return value[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    if segment.startswith("__"):
        return _MISSING
    return getattr(value, segment, _MISSING)


def _is_identifiable(value: Any) -> bool:
    """Mappings and entity-like objects are referenced by their identifier."""
    if isinstance(value, Mapping):
        return True
    if isinstance(value, (str, bytes, list, tuple)):
        return False
    return hasattr(value, "__dict__")


def _serialize(value: Any) -> str:
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return repr(value)


class ReferenceResolver:
    """
    Looks references up in the records created so far.

    A path is ``<group>.<key>[.<field>...]``. Every segment has to exist at
    the time the reference is read, so references can only point at groups
    and keys that were processed earlier in the run.
    """

    def __init__(self, chunks: ResultTree, id_field: str = "_id") -> None:
        self.chunks = chunks
        self.id_field = id_field

    def find_reference(self, ref: str) -> Any:
        keys = ref.split(PATH_SEPARATOR)
        result: Any = self.chunks
        for depth, key in enumerate(keys):
            result = _lookup(result, key)
            if result is _MISSING:
                raise MissingSourceError(
                    "Could not read property '{}' of '{}' while resolving '{}'".format(
                        key, PATH_SEPARATOR.join(keys[:depth]) or "<seeded data>", ref
                    )
                )

        if _is_identifiable(result):
            # The reference points at a record, use its identifier.
            identifier = _lookup(result, self.id_field)
            if identifier is _MISSING or identifier is None:
                raise MissingIdentifierError(
                    "Could not read property '{}' of {}".format(
                        self.id_field, _serialize(result)
                    )
                )
            return identifier
        return result

    def resolve(self, value: str) -> Any:
        """Resolve a reference field value such as ``"->users.foo"``."""
        return self.find_reference(value[2:])
