"""Async HTTP client wrapper for Open Cloud requests (httpx backend).

This client is not part of the public API and should only be used internally.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Mapping, Optional

import httpx

from opencloud._internal.json_helpers import content_md5, dumps_body
from opencloud.json_helpers import JSONValue
from opencloud.types import (
    Config,
    HTTPOverrides,
    KeyNotFoundError,
    RequestError,
    TransportError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
USER_AGENT = "opencloud-python"

_NO_BODY = object()


class AsyncOpenCloudHTTPClient:
    """Async HTTP client wrapper returning checked responses.

    Features:
    - x-api-key attached to every request
    - JSON bodies serialized once; content-md5 computed over the exact bytes sent
    - Non-success statuses raised as typed RequestError subclasses
    - httpx failures raised as TransportError
    """

    def __init__(self, client: httpx.AsyncClient, api_key: str) -> None:
        """Initialize with an httpx client (use from_config() to build one)."""
        self._client = client
        self._api_key = api_key
        self._closed = False

    @classmethod
    def from_config(cls, config: Config) -> "AsyncOpenCloudHTTPClient":
        """Build a client honoring config.overrides."""
        overrides = config.overrides or HTTPOverrides()
        headers = {"user-agent": USER_AGENT}
        if overrides.headers:
            headers.update(overrides.headers)

        client = httpx.AsyncClient(
            base_url=overrides.base_url,
            timeout=overrides.timeout,
            headers=headers,
            transport=overrides.transport,
        )
        return cls(client, config.api_key)

    @property
    def closed(self) -> bool:
        return self._closed

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        body: object = _NO_BODY,
        headers: Optional[Mapping[str, str]] = None,
        with_content_md5: bool = False,
    ) -> httpx.Response:
        """Send a request and return the response once its status is checked.

        Raises:
            KeyNotFoundError: 404
            VersionConflictError: 412
            RequestError: Any other non-2xx status
            TransportError: The request could not be completed
        """
        request_headers: Dict[str, str] = {API_KEY_HEADER: self._api_key}
        if headers:
            request_headers.update(headers)

        content: Optional[bytes] = None
        if body is not _NO_BODY:
            content = dumps_body(body)
            request_headers["content-type"] = "application/json"
            if with_content_md5:
                request_headers["content-md5"] = content_md5(content)

        logger.debug(f"{method} {path} params={dict(params or {})}")
        try:
            response = await self._client.request(
                method,
                path,
                params=dict(params) if params else None,
                content=content,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            error = error_from_response(response)
            if isinstance(error, (KeyNotFoundError, VersionConflictError)):
                logger.info(f"{method} {path} refused: {error}")
            else:
                logger.warning(f"{method} {path} returned {response.status_code}")
            raise error

        return response

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        if not self._closed:
            self._closed = True
            await self._client.aclose()


def error_message(response: httpx.Response) -> str:
    """Extract the API's error message, falling back to the reason phrase."""
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = None
    if isinstance(data, dict):
        for field in ("message", "error"):
            value = data.get(field)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or "Request failed"


def error_from_response(response: httpx.Response) -> RequestError:
    """Map a non-success response to its typed error."""
    status = response.status_code
    message = error_message(response)
    body = response.text

    if status == 404:
        return KeyNotFoundError(status, message, body)
    if status == 412:
        return VersionConflictError(status, message, body)
    return RequestError(status, message, body)


def response_json(response: httpx.Response) -> JSONValue:
    """Parse a success response body as JSON.

    Raises:
        RequestError: If the body is not valid JSON
    """
    try:
        data: JSONValue = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestError(
            response.status_code, f"Invalid JSON in response: {e}", response.text
        ) from e
    return data
