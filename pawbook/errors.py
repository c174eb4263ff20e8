"""Error taxonomy shared by the store, orchestrator and integration gateway"""

from typing import Optional


class PawbookError(Exception):
    """Base class for every error raised by the core"""

    pass


class NotFoundError(PawbookError):
    """Entity is absent from the store. Raised instead of silently doing nothing."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class SessionNotFound(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__("Session", session_id)


class ClientNotFound(NotFoundError):
    def __init__(self, client_id: str):
        super().__init__("Client", client_id)


class ValidationError(PawbookError):
    """Outbound payload failed its schema. Dropped and logged, never retried."""

    def __init__(self, kind: str, reasons: list[str]):
        super().__init__(f"Invalid {kind} payload: {'; '.join(reasons)}")
        self.kind = kind
        self.reasons = reasons


class IntegrationError(PawbookError):
    """An external integration (calendar, webhook) did not complete"""

    pass


class TransportError(IntegrationError):
    """Timeout or network failure, raised once retries are exhausted"""

    def __init__(self, operation: str, attempts: int, cause: Optional[BaseException] = None):
        super().__init__(f"{operation} failed after {attempts} attempt(s): {cause}")
        self.operation = operation
        self.attempts = attempts
        self.cause = cause


class ProviderError(IntegrationError):
    """The provider answered with a well-formed error response"""

    def __init__(self, operation: str, status_code: int, detail: str = ""):
        super().__init__(f"{operation} rejected with status {status_code}: {detail}")
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
