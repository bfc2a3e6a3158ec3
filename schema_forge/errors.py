"""
Error types used throughout Schema Forge
"""

from typing import Optional


class SchemaForgeError(Exception):
    """Base class for every error raised by the core"""

    user_facing = False

    def is_user_facing(self) -> bool:
        return self.user_facing


# Database errors

class InvalidConnectionUrl(SchemaForgeError):
    """Connection URL with an unknown scheme or missing parts"""
    user_facing = True


class DatabaseConnectionError(SchemaForgeError):
    """Database unreachable or credentials rejected"""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Failed to connect to database {url}: {message}")


class NotConnected(SchemaForgeError):
    user_facing = True

    def __init__(self, message: str = "Not connected to any database. Use /connect first."):
        super().__init__(message)


class IntrospectionError(SchemaForgeError):
    """Catalog read failed while indexing the schema"""


class QueryExecutionError(SchemaForgeError):
    def __init__(self, sql: str, message: str):
        self.sql = sql
        super().__init__(message)


class NoSchemaIndexed(SchemaForgeError):
    user_facing = True

    def __init__(self, message: str = "No schema indexed for this connection. Run /index first."):
        super().__init__(message)


# Provider errors

class ProviderNotConfigured(SchemaForgeError):
    user_facing = True

    def __init__(self, provider: Optional[str] = None):
        self.provider = provider
        if provider:
            message = f"Provider '{provider}' is not configured. Set it using /config {provider} <api-key>"
        else:
            message = "No LLM provider configured. Use /config <provider> <api-key> first."
        super().__init__(message)


class ProviderError(SchemaForgeError):
    """Failure reported by an LLM provider call"""

    retryable = False

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        self.provider = provider
        self.message = message
        self.status = status
        detail = f" (status: {status})" if status else ""
        super().__init__(f"{provider}: {message}{detail}")


class AuthError(ProviderError):
    user_facing = True


class RateLimited(ProviderError):
    retryable = True
    user_facing = True

    def __init__(self, provider: str, message: str = "rate limit exceeded",
                 status: Optional[int] = 429, retry_after: Optional[float] = None):
        super().__init__(provider, message, status)
        self.retry_after = retry_after


class Transient(ProviderError):
    """Network failure, timeout or 5xx"""
    retryable = True


class Malformed(ProviderError):
    """Response body did not have the expected shape"""


class ProviderRequestError(ProviderError):
    """Provider rejected the request itself (4xx other than auth/rate limit)"""


class FinalError(SchemaForgeError):
    """Retries exhausted"""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Giving up after {attempts} attempts: {last_error}")


# Translation errors

class TranslationError(SchemaForgeError):
    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class NoSqlExtracted(TranslationError):
    user_facing = True

    def __init__(self, raw_response: str):
        self.raw_response = raw_response
        super().__init__("The model response did not contain a SQL statement")


class StatementRejected(SchemaForgeError):
    user_facing = True

    def __init__(self, reason: str, sql: str = ""):
        self.reason = reason
        self.sql = sql
        super().__init__(reason)


# CLI errors

class CommandError(SchemaForgeError):
    user_facing = True
