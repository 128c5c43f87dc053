"""Response formatting bridge -- maps :class:`~fetchcache.models.HttpResponse` to the output system.

After a request resolves, :func:`format_api_response` writes the status
line to stderr and routes the body through
:meth:`~fetchcache.output.OutputManager.format_response`, which applies
the active JSON, plain or Rich formatting.
"""

from __future__ import annotations

import json
from typing import Any

from fetchcache.models import HttpResponse
from fetchcache.output import get_output


def format_api_response(response: HttpResponse) -> None:
    """Format and print *response* using the global output system."""
    output = get_output()
    output.info(str(response))

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, response.content_type)


def extract_response_data(response: HttpResponse) -> Any:
    """Return the body decoded as JSON, the raw text if it is not JSON, or ``None`` if empty."""
    if not response.body:
        return None
    try:
        return json.loads(response.body)
    except json.JSONDecodeError:
        return response.body
