"""Exceptions raised by the gateway's collaborators."""


class DirectoryUnavailable(RuntimeError):
    """The directory service could not be reached or queried."""


class Unavailable(RuntimeError):
    """A data store is temporarily unavailable."""


class UserExists(RuntimeError):
    """A user with the same username already exists."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(RuntimeError):
    """Failed to delete a session in the session store."""


class InvalidToken(RuntimeError):
    """Session token is malformed or has been tampered with."""
