"""Domain exceptions raised by the service layer.

Route handlers translate these into HTTP errors; the message is the
operator-facing text.
"""


class ScrimboardError(Exception):
    """Base class for all domain errors."""


class NotFoundError(ScrimboardError):
    """A tournament, day, lobby, sanction, preset or account does not exist."""


class MatchStateError(ScrimboardError):
    """A lobby operation is not allowed in the lobby's current state."""


class ExtractionEmptyError(ScrimboardError):
    """The extractor returned no rows for any screenshot of a lobby."""

    def __init__(self, message: str = (
        "Analysis complete but no data was found. "
        "Make sure the screenshots are clear and the scoreboard text is readable."
    )):
        super().__init__(message)


class ExtractionUnmatchedError(ScrimboardError):
    """Rows were extracted but none could be matched to the roster."""

    def __init__(self, message: str = (
        "Found data but could not match any teams to the roster. "
        "If the screenshots use generic slot names like 'TEAM1', "
        "make sure the roster order matches (line 1 = team 1)."
    )):
        super().__init__(message)


class PolicyParseError(ScrimboardError):
    """The scoring-rule parser returned nothing usable."""


class LicenseError(ScrimboardError):
    """A license key is invalid, revoked, claimed by someone else or expired."""


class AuthError(ScrimboardError):
    """Missing, unknown or expired session."""


class PermissionDeniedError(ScrimboardError):
    """The account may not perform this operation."""


class StaleRevisionError(ScrimboardError):
    """A tournament was saved from an outdated revision."""


class InvalidInputError(ScrimboardError):
    """A request is well-formed but its values are unusable."""
