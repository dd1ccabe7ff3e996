from typing import Optional


class RelayError(Exception):
    """Basisklasse für alle Fehler, die als HTTP-Antwort enden."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, public_message: Optional[str] = None, detail: Optional[str] = None):
        self.public_message = public_message or self.public_message
        # detail wird nur geloggt, nie an den Aufrufer zurückgegeben
        self.detail = detail
        super().__init__(detail or self.public_message)


class InputError(RelayError):
    status_code = 400
    public_message = "Invalid request"


class PayloadTooLargeError(RelayError):
    status_code = 413
    public_message = "Payload too large"


class ConfigurationError(RelayError):
    public_message = "AI service is not configured"


class UpstreamError(RelayError):
    public_message = "AI request failed"


class InvalidAIResponseError(RelayError):
    public_message = "Invalid AI response"


class ClientDisconnected(RelayError):
    # nginx-Konvention für "Client Closed Request"
    status_code = 499
    public_message = "Client closed request"
