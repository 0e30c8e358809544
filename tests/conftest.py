import copy
import itertools
from typing import Any, Sequence

import pytest

from async_document_seeder.errors import ModelNotFoundError


class FakeBackend:
    """In-memory backend recording every call the seeder makes."""

    id_field = "_id"

    def __init__(self, models: dict[str, str] | None = None, existing: Sequence[str] = ()) -> None:
        self.models = models if models is not None else {"User": "users", "Team": "teams"}
        self.existing = set(existing)
        self.calls: list[tuple[Any, ...]] = []
        self._ids = itertools.count(1)

    def get_model(self, name: str) -> str:
        if name not in self.models:
            raise ModelNotFoundError("Schema hasn't been registered for model '{}'".format(name))
        return name

    def collection_name(self, model: str) -> str:
        return self.models[model]

    async def create(self, model: str, records: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        self.calls.append(("create", model, copy.deepcopy(list(records))))
        self.existing.add(self.models[model])
        return [{"_id": "id-{}".format(next(self._ids)), **record} for record in records]

    async def collection_exists(self, name: str) -> bool:
        self.calls.append(("collection_exists", name))
        return name in self.existing

    async def drop_collection(self, name: str) -> None:
        self.calls.append(("drop_collection", name))
        self.existing.discard(name)

    async def drop_database(self) -> None:
        self.calls.append(("drop_database",))
        self.existing.clear()

    def created(self) -> list[tuple[str, list[dict[str, Any]]]]:
        return [(call[1], call[2]) for call in self.calls if call[0] == "create"]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_backend() -> type[FakeBackend]:
    return FakeBackend
