"""Error taxonomy shared by the services and mapped to HTTP responses in main."""


class SaberError(Exception):
    """Base error. `message` is safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str = "An internal server error occurred."):
        super().__init__(message)
        self.message = message


class ValidationError(SaberError):
    status_code = 400


class NotFound(SaberError):
    status_code = 404

    def __init__(self, message: str = "Conversation not found."):
        super().__init__(message)


class AuthError(SaberError):
    status_code = 401


class InvalidToken(AuthError):
    status_code = 403


class Conflict(SaberError):
    status_code = 409


class GenerationError(SaberError):
    """The LLM provider failed: timeout, quota, malformed response."""

    def __init__(self, message: str = "The assistant could not generate a reply."):
        super().__init__(message)


class StorageError(SaberError):
    def __init__(self, message: str = "A storage error occurred."):
        super().__init__(message)
