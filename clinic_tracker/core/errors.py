"""Error types raised by the clinic tracker core and its store adapters."""

from typing import Any, Dict, Optional


class ValidationError(ValueError):
    """Input rejected before any store call or workspace transition."""


class StoreError(Exception):
    """
    Remote store rejected a query or mutation.

    The rendered message keeps the store's hint and details verbatim so the
    UI can show them to the user as-is.
    """

    def __init__(self,
                 message: str,
                 hint: Optional[str] = None,
                 details: Optional[str] = None,
                 code: Optional[str] = None,
                 status: Optional[int] = None):
        self.message = message
        self.hint = hint
        self.details = details
        self.code = code
        self.status = status
        super().__init__(self._render())

    def _render(self) -> str:
        text = self.message
        if self.hint:
            text += f" (Hint: {self.hint})"
        if self.details:
            text += f" - {self.details}"
        return text

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], status: Optional[int] = None) -> 'StoreError':
        """Build an error from a PostgREST-style error body."""
        return cls(
            message=str(payload.get('message') or payload.get('error') or 'Store request failed'),
            hint=payload.get('hint'),
            details=payload.get('details'),
            code=payload.get('code'),
            status=status,
        )


class SummaryError(Exception):
    """AI summarization endpoint failed or returned an unusable answer."""
