"""Base exception shared by all icepersist errors."""


class PersistError(Exception):
    """Base class for errors raised by the persistence layer."""
