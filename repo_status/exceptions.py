"""Exception types raised by repo-status."""


class RepoStatusError(Exception):
    pass


class ManifestError(RepoStatusError):
    """A check manifest could not be read or failed validation."""

    def __init__(self, message: str, source: str = ""):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)
