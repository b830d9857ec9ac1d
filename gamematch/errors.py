"""
Error taxonomy for gamematch.

Only ConfigurationError is allowed to abort a batch run. Everything else
is caught per title and turned into a note in the run summary.
"""


class GameMatchError(Exception):
    """Base class for gamematch errors."""
    pass


class ConfigurationError(GameMatchError):
    """Missing or invalid credentials/settings. Aborts the whole run."""
    pass


class ExternalCallFailure(GameMatchError):
    """A search or translation call returned a non-success response."""

    def __init__(self, service: str, message: str, status=None):
        self.service = service
        self.status = status
        super().__init__(f"{service}: {message}")


class TranslationUnavailable(ExternalCallFailure):
    """Translation service is down or its circuit is open."""

    def __init__(self, message: str = "translation unavailable", status=None):
        super().__init__("translate", message, status=status)


class NoMatchFound(GameMatchError):
    """No candidate passed gating and threshold for a title."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"No match for '{title}'")
