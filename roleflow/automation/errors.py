"""Classification of error bodies returned by the automation backend.

Error bodies are shaped ``{"error": {"code", "message", "trackingId"}}``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel

NO_RESPONSE_CODE = "NoResponse"
NO_RESPONSE_MESSAGE = (
    "Workflow triggered but no immediate response (likely processing in background)"
)
UNKNOWN_TRACKING_ID = "Unknown"


class ErrorInfo(BaseModel):
    message: str
    is_temporary: bool
    is_processing: bool = False
    tracking_id: Optional[str] = None
    code: Optional[str] = None


# code -> (message, is_temporary, is_processing)
ERROR_TABLE: Dict[str, tuple[str, bool, bool]] = {
    NO_RESPONSE_CODE: (NO_RESPONSE_MESSAGE, False, True),
    "WorkflowRunInProgress": ("Another workflow run is in progress", True, False),
    "WorkflowRunTimeout": ("Workflow execution timed out", True, False),
    "TriggerNotFound": ("Workflow trigger not found or disabled", False, False),
    "Forbidden": ("Access denied to workflow", False, False),
}


def parse_error_body(data: Any) -> ErrorInfo:
    """Classify a decoded error body; never raises."""
    error = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error, dict):
        return ErrorInfo(message="Unknown Logic Apps error", is_temporary=True)

    code = str(error.get("code") or "")
    message = error.get("message")
    tracking_id = error.get("trackingId") or UNKNOWN_TRACKING_ID

    if code in ERROR_TABLE:
        text, is_temporary, is_processing = ERROR_TABLE[code]
        return ErrorInfo(
            message=text,
            is_temporary=is_temporary,
            is_processing=is_processing,
            tracking_id=tracking_id,
            code=code,
        )
    return ErrorInfo(
        message=f"Logic Apps error: {code} - {message}",
        is_temporary="Timeout" in code or NO_RESPONSE_CODE in code,
        tracking_id=tracking_id,
        code=code,
    )


def fallback_error(status_code: int) -> ErrorInfo:
    """Classification used when the error body is missing or undecodable."""
    if status_code == 502:
        return ErrorInfo(message="Bad Gateway", is_temporary=True)
    if status_code >= 500:
        return ErrorInfo(message="Server error", is_temporary=True)
    return ErrorInfo(message="Client error", is_temporary=False)


def is_no_response(data: Any, info: ErrorInfo) -> bool:
    """Return ``True`` for the "accepted, still processing" backend signal."""
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        if data["error"].get("code") == NO_RESPONSE_CODE:
            return True
    return "no immediate response" in info.message
