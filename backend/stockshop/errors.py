from typing import Any, Optional

import httpx


class UpstreamError(Exception):
    """A call to the image provider or the commerce platform failed."""

    def __init__(self, service: str, detail: Any, status_code: Optional[int] = None):
        super().__init__(f"{service} request failed ({status_code or 'no response'}): {detail}")
        self.service = service
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": f"{self.service} API error", "detail": self.detail}


def response_detail(response: httpx.Response) -> Any:
    """Upstream error body, verbatim: parsed JSON when possible, else text."""
    try:
        return response.json()
    except ValueError:
        return response.text


def json_object(service: str, response: httpx.Response) -> dict:
    """
    Decoded body of a successful reply. Anything other than a 2xx carrying a
    JSON object (redirects, HTML error pages, bare lists) is an UpstreamError.
    """
    if not response.is_success:
        raise UpstreamError(service, response_detail(response), status_code=response.status_code)
    try:
        body = response.json()
    except ValueError:
        raise UpstreamError(service, response.text, status_code=response.status_code) from None
    if not isinstance(body, dict):
        raise UpstreamError(service, response.text, status_code=response.status_code)
    return body
