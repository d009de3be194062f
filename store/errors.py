"""
Store Errors

Exception hierarchy raised at the persistence boundary. Low-level
OSError / SQLAlchemyError failures are chained into these.
"""


class StoreError(Exception):
    """Base class for all persistence errors."""
    pass


class StoreUnavailable(StoreError):
    """Raised when the store cannot be opened, created or migrated."""
    pass


class MigrationIntegrityError(StoreError):
    """Raised when a migration cannot resolve a required cross-reference."""
    pass


class MappingConfigurationError(StoreError):
    """Raised when a mapping configuration leaves a version gap uncovered."""
    pass


class SaveFailed(StoreError):
    """Raised when a commit could not be written. The session is rolled back."""
    pass


class ValidationError(StoreError, ValueError):
    """Raised when an entity is constructed or changed into an invalid state."""
    pass
