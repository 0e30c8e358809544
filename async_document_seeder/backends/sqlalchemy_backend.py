from typing import Any, Sequence

from sqlalchemy import MetaData, Table, inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from ..errors import ConfigurationError
from ..registry import ClassRegistry


class SQLAlchemyBackend:
    """
    Seeds mapped classes through an ``AsyncSession``.

    Tables only exist through DDL, so dropping a collection re-creates its
    table empty and dropping the database re-creates every registered table.
    Nothing is committed; the session owner decides what happens to the
    transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: ClassRegistry | None = None,
        metadata: MetaData | None = None,
        flush_on_create: bool = True,
        id_field: str = "id",
    ) -> None:
        self.session = session
        self.registry = registry if registry is not None else ClassRegistry()
        self.metadata = metadata
        self.flush_on_create = flush_on_create
        self.id_field = id_field

    def get_model(self, name: str) -> type:
        return self.registry[name]

    def collection_name(self, model: Any) -> str:
        return inspect(model).local_table.name

    async def create(self, model: Any, records: Sequence[dict[str, Any]]) -> list[Any]:
        entities = [model(**record) for record in records]
        self.session.add_all(entities)
        if self.flush_on_create:
            await self.session.flush()
        return entities

    async def collection_exists(self, name: str) -> bool:
        def has_table(session: Session) -> bool:
            return inspect(session.connection()).has_table(name)

        return await self.session.run_sync(has_table)

    async def drop_collection(self, name: str) -> None:
        table = self._find_table(name)

        def recreate(session: Session) -> None:
            connection = session.connection()
            table.drop(connection, checkfirst=True)
            table.create(connection)
            # Rows loaded from the old table would clash with new identities.
            for instance in list(session.identity_map.values()):
                if inspect(instance).mapper.local_table is table:
                    session.expunge(instance)

        await self.session.run_sync(recreate)

    async def drop_database(self) -> None:
        metadatas = self._metadatas()
        if not metadatas:
            raise ConfigurationError(
                "No metadata to drop: pass metadata or register the models first"
            )

        def recreate_all(session: Session) -> None:
            connection = session.connection()
            for metadata in metadatas:
                metadata.drop_all(connection)
                metadata.create_all(connection)
            session.expunge_all()

        await self.session.run_sync(recreate_all)

    def _metadatas(self) -> list[MetaData]:
        if self.metadata is not None:
            return [self.metadata]
        metadatas: list[MetaData] = []
        for cls in self.registry.registered_classes:
            metadata = inspect(cls).local_table.metadata
            if metadata not in metadatas:
                metadatas.append(metadata)
        return metadatas

    def _find_table(self, name: str) -> Table:
        for metadata in self._metadatas():
            if name in metadata.tables:
                return metadata.tables[name]
        raise LookupError("No table named '{}' is registered".format(name))
