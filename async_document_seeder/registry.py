from importlib import import_module
from inspect import isclass, ismodule
from types import ModuleType
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable

from .errors import ModelNotFoundError


def parse_to_target(source: str) -> Any:
    """Import ``"package.module"`` or ``"package.module:attribute"``.

    Import and attribute errors are left untouched so callers see exactly
    what went wrong while loading.
    """
    names = source.split(":", 1)
    module = import_module(names.pop(0))
    if not names:
        return module
    return getattr(module, names.pop(0))


class ClassRegistry(object):
    """A cache of mappable classes"""

    def __init__(self) -> None:
        self.class_path_cache: dict[str, type] = {}

    def __getitem__(self, item: str) -> type:
        if ":" not in item:
            for cls in self.registered_classes:
                if cls.__name__ == item:
                    return cls
            raise ModelNotFoundError("No registered class found for '{}'".format(item))

        if item in self.class_path_cache:
            return self.class_path_cache[item]
        try:
            result = self.register(item)
        except (ImportError, AttributeError, ValueError) as err:
            raise ModelNotFoundError(
                "No registered class found for '{}'".format(item)
            ) from err
        if isinstance(result, set):
            raise ModelNotFoundError(
                "'{}' names a module, expected a class".format(item)
            )
        return result

    def __contains__(self, item: str) -> bool:
        try:
            self[item]
        except ModelNotFoundError:
            return False
        return True

    @property
    def registered_classes(self) -> set[type]:
        return set(self.class_path_cache.values())

    def register(self, target: str | type | object) -> set[type] | type:
        if isinstance(target, str):
            target = self.parse_to_target(source=target)

        if isclass(target):
            return self.register_class(target)
        if ismodule(target):
            return self.register_module(target)
        raise ValueError(
            "Cannot register target of type '{}'".format(type(target).__name__)
        )

    @classmethod
    def parse_to_target(cls, source: str) -> ModuleType | type:
        return parse_to_target(source)

    def register_class(self, cls: type) -> type:
        if not self._is_mappable(cls):
            raise ValueError(
                "Class {} does not have an associated mapper.".format(cls.__name__)
            )
        self.class_path_cache[cls.__module__ + ":" + cls.__name__] = cls
        return cls

    def register_module(self, module_: ModuleType) -> set[type]:
        mappable_classes = [
            cls
            for cls in (
                getattr(module_, attr)
                for attr in dir(module_)
                if not attr.startswith("_")
            )
            if self._is_mappable(cls)
        ]
        for cls in mappable_classes:
            self.register_class(cls)
        return set(mappable_classes)

    @staticmethod
    def _is_mappable(cls: type) -> bool:
        try:
            return isclass(cls) and bool(inspect(cls).mapper)
        except NoInspectionAvailable:
            return False
