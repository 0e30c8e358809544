from .backends import PersistenceBackend
from .base import Seeder, seed
from .errors import (
    ConfigurationError,
    MissingIdentifierError,
    MissingModelError,
    MissingSourceError,
    ModelNotFoundError,
    SeederError,
    UnresolvedReferencesError,
)
from .evaluator import DependencyContext, ExpressionEvaluator
from .registry import ClassRegistry
from .resolver import ReferenceResolver
from .schema import SeedGroup, SeedOptions
from .unwinder import Unwinder

__all__ = [
    "ClassRegistry",
    "ConfigurationError",
    "DependencyContext",
    "ExpressionEvaluator",
    "MissingIdentifierError",
    "MissingModelError",
    "MissingSourceError",
    "ModelNotFoundError",
    "PersistenceBackend",
    "ReferenceResolver",
    "SeedGroup",
    "SeedOptions",
    "Seeder",
    "SeederError",
    "UnresolvedReferencesError",
    "Unwinder",
    "seed",
]
