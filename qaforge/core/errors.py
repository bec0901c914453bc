class QAForgeError(Exception):
    """Base class for errors raised by qaforge."""


class MalformedInput(QAForgeError, ValueError):
    """
    Structural problem with the arguments of a chunking call
    (non-positive or inverted size window). Raised before any work begins.
    """


class ProviderError(QAForgeError):
    """
    An external generation call failed: timeout, network, auth,
    or model output that could not be parsed.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
