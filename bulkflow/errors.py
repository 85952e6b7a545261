from typing import Optional


class DomainError(Exception):
    """Base class for domain/service errors."""


class NotFoundError(DomainError):
    pass


class ValidationError(DomainError):
    def __init__(self, detail):
        super().__init__("Validation error")
        self.detail = detail


class MalformedRecordError(DomainError):
    """Part of the taxonomy only: normalization substitutes defaults instead."""


class InvalidTransitionError(DomainError):
    def __init__(self, action: str, status: str, source_kind: str):
        super().__init__(f"{action} is not allowed from {source_kind} status {status!r}")
        self.action = action
        self.status = status
        self.source_kind = source_kind


class LookupNotFoundError(DomainError):
    def __init__(self, action: str, ref: str):
        super().__init__(f"{action}: state changed but could not confirm {ref}")
        self.action = action
        self.ref = ref


class TransportError(DomainError):
    def __init__(self, detail, status_code: Optional[int] = None, action: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
        self.action = action


class StaleWriteError(TransportError):
    pass
