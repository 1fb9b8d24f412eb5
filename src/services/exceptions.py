class AssistantError(Exception):
    """Raised when a sales question cannot be answered because an external call failed."""
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class OrdersUnavailableError(AssistantError):
    """Raised when raw orders or the branch listing cannot be fetched."""


class GenerationError(AssistantError):
    """Raised when the text model fails or returns an empty/placeholder answer."""
