class SeederError(Exception):
    """Base class for errors raised while seeding."""


class ConfigurationError(SeederError, ValueError):
    """Raised when the seed document is malformed."""


class MissingModelError(ConfigurationError):
    """Raised when a group does not name the model its records belong to."""


class ModelNotFoundError(SeederError, LookupError):
    """Raised when a model name is not known to the persistence backend."""


class UnresolvedReferencesError(SeederError):
    """Raised when a reference could not be resolved during the seeding process."""


class MissingSourceError(UnresolvedReferencesError):
    """Raised when a segment of a reference path points at nothing."""


class MissingIdentifierError(UnresolvedReferencesError):
    """Raised when a referenced record carries no identifier."""
