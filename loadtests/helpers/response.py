"""Response error extraction for load test observability.

Every marketplace error uses one envelope::

    {"kind": "CapacityExceeded", "message": "...", "errors": {"quantity": ["..."]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

# Outcomes a correct server produces under contention; not load test failures
EXPECTED_CONFLICTS = {"CapacityExceeded", "ConcurrentModification", "SlotUnavailable"}


def error_kind(response: Response) -> str | None:
    try:
        return response.json().get("kind")
    except ValueError:
        return None


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "kind" in body:
        errors = body.get("errors") or {}
        fields = " | ".join(f"{field}: {', '.join(messages)}" for field, messages in errors.items())
        return f"{body['kind']}: {fields or body.get('message', '')}"

    return str(body)[:300]
