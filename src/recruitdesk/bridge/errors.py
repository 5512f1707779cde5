from __future__ import annotations

from typing import Any, Literal

ErrorKind = Literal["NotFound", "Locked", "ValidationFailed", "ServerError", "NetworkError"]


class BridgeError(Exception):
    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        status_code: int | None = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.payload = payload

    def __repr__(self) -> str:
        return f"BridgeError(kind={self.kind!r}, status_code={self.status_code!r}, message={self.message!r})"


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code == 404:
        return "NotFound"
    if status_code == 423:
        return "Locked"
    if status_code >= 500:
        return "ServerError"
    if status_code >= 400:
        return "ValidationFailed"
    raise ValueError(f"status {status_code} is not an error")


def message_from_body(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(body, str):
        return body.strip()[:500]
    return ""
