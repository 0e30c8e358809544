from .base import PersistenceBackend

__all__ = ["PersistenceBackend"]
