"""JSON-RPC error codes and error types used by the proxy and publisher."""

from __future__ import annotations

import json

from .rpc import JSONRPC_VERSION, RPCError, RPCResponse

ERR_PROXY = -32080
ERR_INTERNAL = -32603
ERR_AUTH_FAILED = -32085
ERR_JSON_PARSE = -32700
ERR_INVALID_PARAMS = -32602
ERR_INVALID_REQUEST = -32600
ERR_METHOD_UNAVAILABLE = -32601


class CallError(Exception):
    """An error raised while processing or forwarding a client request."""

    def __init__(self, original: BaseException | str, code: int = ERR_INTERNAL):
        self.original = original
        self.code = code
        super().__init__(str(original))

    @property
    def message(self) -> str:
        return str(self)

    def as_rpc_response(self) -> RPCResponse:
        return RPCResponse(
            error=RPCError(code=self.code, message=self.message),
            jsonrpc=JSONRPC_VERSION,
        )


class AuthFailed(CallError):
    """Raised when a supplied token has no matching account."""

    def __init__(self, original: BaseException | str = ""):
        super().__init__(original, ERR_AUTH_FAILED)

    def __str__(self) -> str:
        return "couldn't find account for in lbrynet"


def new_error(e) -> CallError:
    return CallError(e, ERR_INTERNAL)


def new_parse_error(e) -> CallError:
    return CallError(e, ERR_JSON_PARSE)


def new_method_error(e) -> CallError:
    return CallError(e, ERR_METHOD_UNAVAILABLE)


def new_params_error(e) -> CallError:
    return CallError(e, ERR_INVALID_PARAMS)


def new_internal_error(e) -> CallError:
    return CallError(e, ERR_INTERNAL)


class PublishError(Exception):
    """An error reported back to a publishing client."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    def as_rpc_response(self) -> RPCResponse:
        return RPCResponse(
            error=RPCError(code=self.code, message=self.message),
            jsonrpc=JSONRPC_VERSION,
        )

    def as_bytes(self) -> bytes:
        return json.dumps(self.as_rpc_response().to_dict(), indent=2).encode()


ERR_UNAUTHORIZED = PublishError(ERR_PROXY, "authentication required")


def new_auth_error(err) -> PublishError:
    return PublishError(ERR_AUTH_FAILED, str(err))


def new_publish_internal_error(err) -> PublishError:
    return PublishError(ERR_INTERNAL, str(err))