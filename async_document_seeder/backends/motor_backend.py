from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Type

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from ..errors import ModelNotFoundError


def default_collection_name(model_name: str) -> str:
    name = model_name.lower()
    return name if name.endswith("s") else name + "s"


@dataclass(frozen=True)
class DocumentModel:
    name: str
    collection: str
    schema: Optional[Type[BaseModel]] = None


class MotorBackend:
    """
    Seeds MongoDB collections through Motor.

    Models are names mapped to collections. A model may carry a pydantic
    schema, in which case records are validated and dumped through it
    before they are inserted.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        models: Iterable[DocumentModel] | Mapping[str, str] | None = None,
        id_field: str = "_id",
    ) -> None:
        self.database = database
        self.id_field = id_field
        self.models: dict[str, DocumentModel] = {}
        if isinstance(models, Mapping):
            for name, collection in models.items():
                self.register(name, collection)
        else:
            for model in models or ():
                self.models[model.name] = model

    def register(
        self,
        name: str,
        collection: Optional[str] = None,
        schema: Optional[Type[BaseModel]] = None,
    ) -> DocumentModel:
        model = DocumentModel(
            name=name,
            collection=collection or default_collection_name(name),
            schema=schema,
        )
        self.models[name] = model
        return model

    def get_model(self, name: str) -> DocumentModel:
        try:
            return self.models[name]
        except KeyError:
            raise ModelNotFoundError("Schema hasn't been registered for model '{}'".format(name))

    def collection_name(self, model: DocumentModel) -> str:
        return model.collection

    async def create(
        self, model: DocumentModel, records: Sequence[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        documents = [self._prepare(model, record) for record in records]
        result = await self.database[model.collection].insert_many(documents)
        for document, inserted_id in zip(documents, result.inserted_ids):
            document[self.id_field] = inserted_id
        return documents

    async def collection_exists(self, name: str) -> bool:
        names = await self.database.list_collection_names(filter={"name": name})
        return len(names) > 0

    async def drop_collection(self, name: str) -> None:
        await self.database.drop_collection(name)

    async def drop_database(self) -> None:
        await self.database.client.drop_database(self.database.name)

    @staticmethod
    def _prepare(model: DocumentModel, record: dict[str, Any]) -> dict[str, Any]:
        if model.schema is None:
            return dict(record)
        return model.schema.model_validate(record).model_dump(by_alias=True)
