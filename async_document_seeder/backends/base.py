from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class PersistenceBackend(Protocol):
    """What the seeder needs from the database layer it writes through."""

    #: Name of the field holding the generated identifier of a created record.
    id_field: str

    def get_model(self, name: str) -> Any:
        """Return the model registered as ``name`` or raise ``ModelNotFoundError``."""

    def collection_name(self, model: Any) -> str: ...

    async def create(self, model: Any, records: Sequence[dict[str, Any]]) -> list[Any]:
        """Persist ``records`` and return them as stored, identifiers included."""

    async def collection_exists(self, name: str) -> bool: ...

    async def drop_collection(self, name: str) -> None: ...

    async def drop_database(self) -> None: ...
