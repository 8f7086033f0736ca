"""
Validation error formatting

Turns pydantic error dicts into the flat list of human-readable strings
returned under ``errors`` in a 400 response.
"""

from typing import Any, Dict, Iterable, List

# Message for a field that is absent from the request body
REQUIRED_MESSAGES: Dict[str, str] = {
    "roleName": "Role name is required and must be a non-empty string",
    "jobLocation": "Job location is required and must be a non-empty string",
    "description": "Description is required and must be a non-empty string",
    "responsibilities": "Responsibilities is required and must be a non-empty string",
    "sharepointUrl": "SharePoint URL is required and must be a non-empty string",
    "closingDate": "Closing Date is required",
    "capabilityId": "Capability ID is required",
    "bandId": "Band ID is required",
    "statusId": "Status ID is required",
    "numberOfOpenPositions": "Number of open positions is required",
    "status": "Valid status is required (IN_PROGRESS, REVIEWING, ACCEPTED, REJECTED)",
}

VALUE_ERROR_PREFIX = "Value error, "
INVALID_JSON_MESSAGE = "Request body must be valid JSON"


def _field_name(loc: Iterable[Any]) -> str:
    # ("body", "closingDate") -> "closingDate"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form")]
    return ".".join(parts)


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    messages: List[str] = []
    for error in errors:
        field = _field_name(error.get("loc", ()))
        msg = str(error.get("msg", "Invalid value"))

        if error.get("type") == "json_invalid":
            # loc carries a character offset into the raw body
            message = INVALID_JSON_MESSAGE
        elif error.get("type") == "missing":
            if not field:
                message = "Request body is required"
            else:
                message = REQUIRED_MESSAGES.get(field, f"{field} is required")
        elif msg.startswith(VALUE_ERROR_PREFIX):
            # Raised by our own validators; already phrased for the client
            message = msg[len(VALUE_ERROR_PREFIX):]
        elif field:
            message = f"{field}: {msg}"
        else:
            message = msg

        if message not in messages:
            messages.append(message)
    return messages
