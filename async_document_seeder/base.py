import copy
import logging
from typing import Any, Mapping

from pydantic import ValidationError

from .backends.base import PersistenceBackend
from .errors import ConfigurationError, MissingModelError
from .evaluator import DependencyContext, ExpressionEvaluator
from .resolver import ReferenceResolver, ResultTree
from .schema import (
    DEPENDENCIES_FIELD,
    MODEL_FIELD,
    SeedDependencies,
    SeedGroup,
    SeedOptions,
)
from .unwinder import Unwinder

logger = logging.getLogger(__name__)


class Seeder:
    """
    Seeds a document of record groups through a persistence backend.

    Groups, and the keys inside each group, are processed one at a time in
    document order. Every created record is kept in ``chunks`` so that later
    records can point at it with ``->group.key`` references.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        drop_database: bool = True,
        drop_collections: bool = False,
    ) -> None:
        options = SeedOptions(
            drop_database=drop_database, drop_collections=drop_collections
        )
        self.backend = backend
        self.drop_database = options.drop_database
        self.drop_collections = options.drop_collections
        self.chunks: ResultTree = {}
        self.context = DependencyContext()

    def clear_chunks(self) -> None:
        self.chunks = {}

    async def run(self, data: Mapping[str, Any]) -> ResultTree:
        self.clear_chunks()
        try:
            if self.drop_database:
                logger.debug("Dropping database")
                await self.backend.drop_database()
            return await self.seed(copy.deepcopy(dict(data)))
        except Exception:
            self.clear_chunks()
            raise

    async def seed(self, data: dict[str, Any]) -> ResultTree:
        """Seed ``data`` in place; ``run`` passes a copy of the caller's document."""
        self.require_deps(data)
        logger.info("Seeding %d group(s)", len(data))
        for key, value in data.items():
            await self.seed_group(key, value)
        logger.info("Seeded %d group(s)", len(self.chunks))
        return self.chunks

    def require_deps(self, data: dict[str, Any]) -> None:
        deps = data.pop(DEPENDENCIES_FIELD, None)
        if deps is None:
            return
        try:
            dependencies = SeedDependencies.model_validate(deps).root
        except ValidationError as err:
            raise ConfigurationError(
                "{} must map binding names to import strings: {}".format(
                    DEPENDENCIES_FIELD, err
                )
            ) from err
        self.context.require(dependencies)

    async def seed_group(self, key: str, value: dict[str, Any]) -> None:
        self.chunks[key] = {}
        if not isinstance(value, dict) or not value.get(MODEL_FIELD):
            raise MissingModelError(
                "Please provide a {} property in '{}' that describes which "
                "database model should be used.".format(MODEL_FIELD, key)
            )
        group = SeedGroup.model_validate(value)
        del value[MODEL_FIELD]
        model = self.backend.get_model(group.target_class)

        if self.drop_collections:
            await self._drop_collection(self.backend.collection_name(model))

        unwinder = Unwinder(
            ExpressionEvaluator(self.context),
            ReferenceResolver(self.chunks, id_field=self.backend.id_field),
        )
        for inner_key, model_data in value.items():
            items = unwinder.unwind(model_data)
            logger.debug("Creating %s '%s.%s'", group.target_class, key, inner_key)
            created = await self.backend.create(model, [items])
            self.chunks[key][inner_key] = created[0]

    async def _drop_collection(self, name: str) -> None:
        if await self.backend.collection_exists(name):
            logger.debug("Dropping collection '%s'", name)
            await self.backend.drop_collection(name)
        else:
            logger.debug("Collection '%s' does not exist, nothing to drop", name)


async def seed(
    backend: PersistenceBackend,
    data: Mapping[str, Any],
    options: SeedOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> ResultTree:
    """
    Start seeding the database.

    ``options`` accepts ``drop_database`` / ``drop_collections`` (or their
    camelCase spellings); keyword arguments are merged over it. A fresh
    ``Seeder`` is built for every call so no state leaks between runs.
    """
    if isinstance(options, SeedOptions):
        options = options.model_dump()
    merged = {**(options or {}), **kwargs}
    parsed = SeedOptions.model_validate(merged)
    seeder = Seeder(
        backend,
        drop_database=parsed.drop_database,
        drop_collections=parsed.drop_collections,
    )
    return await seeder.run(data)
