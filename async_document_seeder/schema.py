from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

MODEL_FIELD = "_model"
DEPENDENCIES_FIELD = "_dependencies"


class SeedOptions(BaseModel):
    drop_database: bool = Field(default=True, alias="dropDatabase")
    drop_collections: bool = Field(default=False, alias="dropCollections")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @model_validator(mode="after")
    def _collections_win(self) -> "SeedOptions":
        # An explicit collection-level drop overrides the database-level default.
        if self.drop_collections and self.drop_database:
            self.drop_database = False
        return self


class SeedGroup(BaseModel):
    target_class: str = Field(alias=MODEL_FIELD, min_length=1)

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def _records_are_mappings(self) -> "SeedGroup":
        for key, record in self.records.items():
            if not isinstance(record, dict):
                raise ValueError(
                    "Record '{}' must be an object, got '{}'".format(
                        key, type(record).__name__
                    )
                )
        return self

    @property
    def records(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class SeedDependencies(RootModel[dict[str, str]]):
    """Binding name to ``"module"`` or ``"module:attr"`` import string."""
