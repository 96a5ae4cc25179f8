class HubError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(HubError):
    """Input or user state that stops a message before any side effect."""


class IntegrationError(HubError):
    """A third-party integration could not complete; the message is shown to the user."""

    def __init__(self, message: str, code: str = "integration_error"):
        self.code = code
        super().__init__(message)
