class BioLinkError(Exception):
    """Base class; `message` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BioLinkError):
    pass


class ValidationFailure(BioLinkError):
    """Rejected locally, before any remote call was made."""


class RemoteFailure(BioLinkError):
    """An identity, store or storage call failed."""


class AuthFailure(RemoteFailure):
    pass


class Conflict(BioLinkError):
    pass
