"""
Error types for the photobooth service.

Composition failures (DecodeError, ContextUnavailable) are fatal to the call
in progress and are never retried internally. Delivery failures keep the
already-produced composite so another delivery path can be offered.
"""

from typing import Any, Dict, Optional


class PhotoboothError(Exception):
    """Base exception for all photobooth errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
        }


class DecodeError(PhotoboothError):
    """Raised when an image reference cannot be fetched or decoded."""

    def __init__(self, reference: str, reason: str):
        preview = reference if len(reference) <= 70 else f"{reference[:70]}..."
        super().__init__(f"Could not decode image '{preview}': {reason}",
                         details={'reference': preview, 'reason': reason})
        self.reference = preview
        self.reason = reason


class ContextUnavailable(PhotoboothError):
    """Raised when a drawing surface cannot be acquired."""
    pass


class TemplateNotFoundError(PhotoboothError):
    """Raised when a design template id is not known to the registry."""

    def __init__(self, template_id: str):
        super().__init__(f"Design template '{template_id}' not found",
                         details={'template_id': template_id})
        self.template_id = template_id


class DeliveryError(PhotoboothError):
    """Raised when a print/email/save adapter fails after composition."""

    def __init__(self, message: str, method: str, composite: Optional[Any] = None,
                 details: Dict[str, Any] = None):
        merged = {'method': method}
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.method = method
        self.composite = composite
