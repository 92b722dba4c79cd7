"""JSON-RPC 2.0 requests, responses and a minimal HTTP client."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

JSONRPC_VERSION = "2.0"


class RPCCallError(Exception):
    """Raised when a JSON-RPC call cannot be completed at the transport level."""


@dataclass
class RPCError:
    code: int = 0
    message: str = ""
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


@dataclass
class RPCRequest:
    method: str = ""
    params: Any = None
    id: int = 0
    jsonrpc: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"method": self.method}
        if self.params is not None:
            out["params"] = self.params
        out["id"] = self.id
        out["jsonrpc"] = self.jsonrpc
        return out


@dataclass
class RPCResponse:
    jsonrpc: str = ""
    result: Any = None
    error: RPCError | None = None
    id: int = 0

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error.to_dict()
        out["id"] = self.id
        return out


def _as_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"id must be a number, got {value!r}")
    return int(value)


def parse_request(raw: bytes | str) -> RPCRequest:
    """Parse a raw JSON body into a request; raises ValueError on bad input."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("cannot unmarshal request: not a JSON object")
    method = data.get("method") or ""
    if not isinstance(method, str):
        raise ValueError("cannot unmarshal request: method must be a string")
    jsonrpc = data.get("jsonrpc") or ""
    if not isinstance(jsonrpc, str):
        raise ValueError("cannot unmarshal request: jsonrpc must be a string")
    return RPCRequest(
        method=method,
        params=data.get("params"),
        id=_as_int(data.get("id")),
        jsonrpc=jsonrpc,
    )


def parse_response(data: bytes | str | Mapping[str, Any]) -> RPCResponse:
    """Build a response from raw JSON or an already decoded mapping."""
    if isinstance(data, (bytes, str)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError("cannot unmarshal response: not a JSON object")
    err = data.get("error")
    error = None
    if isinstance(err, Mapping):
        error = RPCError(
            code=_as_int(err.get("code")),
            message=str(err.get("message") or ""),
            data=err.get("data"),
        )
    return RPCResponse(
        jsonrpc=str(data.get("jsonrpc") or ""),
        result=data.get("result"),
        error=error,
        id=_as_int(data.get("id")),
    )


def new_request(method: str, *args: Any) -> RPCRequest:
    """Create a request; a single mapping or list is sent as is, anything else as a list."""
    if not args:
        params = None
    elif len(args) == 1:
        arg = args[0]
        if arg is None or isinstance(arg, (dict, list, tuple)):
            params = list(arg) if isinstance(arg, tuple) else arg
        else:
            params = [arg]
    else:
        params = list(args)
    return RPCRequest(method=method, params=params, id=0, jsonrpc=JSONRPC_VERSION)


def new_error_response(message: str, code: int) -> RPCResponse:
    return RPCResponse(error=RPCError(code=code, message=message))


def marshal_response(response: RPCResponse) -> bytes:
    return json.dumps(response.to_dict(), indent=2).encode()


class RPCClient:
    """Sends JSON-RPC requests to an HTTP endpoint."""

    def __init__(self, endpoint: str, timeout: float | None = None, session=None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def call_raw(self, request: RPCRequest) -> RPCResponse:
        prefix = f"rpc call {request.method}() on {self.endpoint}"
        try:
            http_response = self.session.post(
                self.endpoint,
                data=json.dumps(request.to_dict()),
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RPCCallError(f"{prefix}: {exc}") from exc
        status = http_response.status_code
        try:
            body = http_response.json()
        except ValueError as exc:
            if status >= 400:
                raise RPCCallError(
                    f"{prefix} status code: {status}. could not decode body to rpc response: {exc}"
                ) from exc
            raise RPCCallError(f"{prefix}: {exc}") from exc
        if body is None:
            raise RPCCallError(f"{prefix} status code: {status}. rpc response missing")
        try:
            return parse_response(body)
        except ValueError as exc:
            raise RPCCallError(f"{prefix}: {exc}") from exc