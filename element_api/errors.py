from __future__ import annotations

from typing import Any, Dict, Optional


class ElementApiError(Exception):
    """Base for every error that may reach the HTTP boundary.

    Carries the `{error, error_description?}` body and the status code the
    API layer should answer with.
    """

    status_code = 500
    default_error = "Internal server error"

    def __init__(self, error: Optional[str] = None, error_description: Optional[str] = None) -> None:
        self.error = error or self.default_error
        self.error_description = error_description
        super().__init__(self.error if not error_description else f"{self.error}: {error_description}")

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.error_description is not None:
            payload["error_description"] = self.error_description
        return payload


class ValidationError(ElementApiError):
    status_code = 400
    default_error = "Invalid request"


class MissingPrompt(ValidationError):
    default_error = "Prompt is required"


class MissingCode(ValidationError):
    default_error = "Authorization code is required"


class MissingHtml(ValidationError):
    default_error = "HTML is required"


class ConfigurationError(ElementApiError):
    status_code = 500
    default_error = "Server is not configured"


class MissingConfiguration(ConfigurationError):
    default_error = "Missing OAuth configuration"


class TransportError(ElementApiError):
    status_code = 500
    default_error = "Internal server error"


class ParseError(ElementApiError):
    status_code = 502
    default_error = "Unparsable response"


class TokenExchangeFailed(ElementApiError):
    status_code = 400
    default_error = "Token exchange failed"


class MethodNotAllowed(ElementApiError):
    status_code = 405
    default_error = "Method not allowed"


class InsertionFailed(ElementApiError):
    status_code = 409
    default_error = "Element could not be inserted"

    def __init__(self, error: Optional[str] = None, error_description: Optional[str] = None) -> None:
        super().__init__(
            error,
            error_description
            or "No designer API or preview container is available; copy the HTML and CSS manually.",
        )
