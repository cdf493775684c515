"""HTTP utilities for LXD API access."""

from __future__ import annotations

import json
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from requests import Response, Session

from .classifier import classify
from .exceptions import UnexpectedResponseError

Timeout = float | tuple[float, float | None]


@dataclass(slots=True)
class HttpResponse:
    """Typed response envelope handed to the classifier and resources."""

    method: str
    url: str
    status_code: int
    data: Any
    headers: Mapping[str, str]
    text: str = ""
    content: bytes = b""

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "") if self.headers else ""

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type.lower()

    def body(self) -> Any:
        """Return the decoded JSON body, else the raw text, else ``None``.

        Text is parsed as JSON even when the content type does not say so.
        """
        if self.data is not None:
            return self.data
        if not self.text:
            return None
        try:
            return json.loads(self.text)
        except ValueError:
            return self.text


def parse_json(response: Response) -> Any:
    """Parse JSON with helpful error context."""

    try:
        return response.json()
    except ValueError as exc:
        raise UnexpectedResponseError(
            "Response did not contain valid JSON", status_code=response.status_code
        ) from exc


def build_envelope(method: str, response: Response, *, expect_json: bool = True) -> HttpResponse:
    """Wrap a `requests` response without raising on its status."""

    failed = response.status_code >= 400
    envelope = HttpResponse(
        method=method.upper(),
        url=response.url,
        status_code=response.status_code,
        data=None,
        headers=response.headers,
        content=response.content or b"",
    )
    if not response.content:
        return envelope
    # Raw downloads skip text decoding unless there is an error to classify.
    if expect_json or failed:
        envelope.text = response.text
    if expect_json and envelope.is_json:
        try:
            envelope.data = parse_json(response)
        except UnexpectedResponseError:
            # Error bodies are classified from raw text instead.
            if not failed:
                raise
    return envelope


def ensure_success(envelope: HttpResponse) -> None:
    """Raise the classified `APIError` if the response signals a failure."""

    error = classify(envelope)
    if error is not None:
        raise error


def request(
    session: Session,
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    headers: MutableMapping[str, str] | None = None,
    json_payload: Mapping[str, Any] | None = None,
    data_payload: Any | None = None,
    expect_json: bool = True,
    timeout: Timeout | None = None,
    verify: bool | str = True,
    cert: str | tuple[str, str] | None = None,
    proxies: Mapping[str, str] | None = None,
) -> HttpResponse:
    """Make a request and return a classified response envelope."""

    response = session.request(
        method=method,
        url=url,
        params=params,
        headers=headers,
        json=json_payload,
        data=data_payload,
        timeout=timeout,
        verify=verify,
        cert=cert,
        proxies=proxies,
        allow_redirects=True,
    )
    envelope = build_envelope(method, response, expect_json=expect_json)
    ensure_success(envelope)
    return envelope
