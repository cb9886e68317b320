"""Base exceptions shared by all dotenvify modules."""


class DotenvifyError(Exception):
    """Base class for every error dotenvify reports to the operator."""

    pass


class InvalidArgumentError(DotenvifyError):
    """Raised when user input is missing or malformed."""

    pass


__all__ = ["DotenvifyError", "InvalidArgumentError"]
