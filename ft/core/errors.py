"""Exception types raised inside the focus timer core."""


class FocusTimerError(Exception):
    """Base class for all focus timer errors."""


class MissingCollaboratorError(FocusTimerError):
    """A required collaborator (e.g. the display) was not supplied at startup."""


class ProtocolError(FocusTimerError):
    """A wire message could not be decoded into a known command or report."""


class SnapshotError(FocusTimerError):
    """A persisted session snapshot has the wrong shape."""
