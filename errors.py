class TutorError(Exception):
    """Base class for every failure the tutor surfaces to the user."""


class ResponseFormatError(TutorError):
    """The model reply could not be parsed into the expected structure."""


class ValidationError(TutorError):
    """User input is out of range or an action was attempted too early."""


class UpstreamError(TutorError):
    """The model invocation itself failed (network, quota, service fault)."""
