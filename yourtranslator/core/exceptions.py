"""Custom exception classes for structured error handling."""

from typing import Any


class TranslatorError(Exception):
    """Base exception for all YourTranslator errors."""

    def __init__(self, code: str, message: str, status_code: int = 500) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class StoreUnavailableError(TranslatorError):
    def __init__(self, message: str = "Profile store unavailable") -> None:
        super().__init__(code="STORE_UNAVAILABLE", message=message, status_code=503)


class StoreConflictError(TranslatorError):
    def __init__(self, message: str = "Profile store write conflict") -> None:
        super().__init__(code="STORE_CONFLICT", message=message, status_code=409)


class ProfileNotFoundError(TranslatorError):
    def __init__(self, message: str = "User profile not found") -> None:
        super().__init__(code="PROFILE_NOT_FOUND", message=message, status_code=404)


class GenerationError(TranslatorError):
    def __init__(self, message: str = "Text generation failed") -> None:
        super().__init__(code="GENERATION_FAILED", message=message, status_code=502)


class InvalidSignatureError(TranslatorError):
    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(code="INVALID_SIGNATURE", message=message, status_code=401)


class LineDeliveryError(TranslatorError):
    def __init__(self, message: str = "LINE reply delivery failed") -> None:
        super().__init__(code="LINE_DELIVERY_FAILED", message=message, status_code=502)


class UserLockTimeoutError(TranslatorError):
    def __init__(self, message: str = "Timed out waiting for user lock") -> None:
        super().__init__(code="USER_LOCK_TIMEOUT", message=message, status_code=503)


class RedisConnectionError(TranslatorError):
    def __init__(self, message: str = "Redis connection failed") -> None:
        super().__init__(code="REDIS_CONNECTION_ERROR", message=message, status_code=503)


class InvalidPayloadError(TranslatorError):
    def __init__(self, message: str = "Malformed webhook payload") -> None:
        super().__init__(code="INVALID_PAYLOAD", message=message, status_code=400)
