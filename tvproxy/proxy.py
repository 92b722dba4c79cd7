"""Request pre-processing, forwarding to the SDK and response caching."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Mapping

from .cache import get_response_cache
from .config import get_lbrynet
from .methods import (
    CACHE_RESOLVE_LONGER_THAN,
    IGNORE_LOG,
    METHOD_RESOLVE,
    PARAM_ACCOUNT_ID,
    PARAM_URLS,
    WALLET_SPECIFIC_METHODS,
    get_preconditioned_query_response,
    method_in_list,
)
from .processors import process_query, process_response
from .rpc import (
    RPCClient,
    RPCRequest,
    RPCResponse,
    marshal_response,
    parse_request,
    parse_response,
)

logger = logging.getLogger(__name__)

# Duration in seconds of the most recent successful resolve call.
resolve_time = 0.0


def unmarshal_request(raw: bytes | str) -> RPCRequest:
    """Parse a raw client body into a request; raises ValueError on bad JSON."""
    try:
        return parse_request(raw)
    except ValueError as exc:
        raise ValueError(f"client json parse error: {exc}") from exc


def _response_from_cache(cached: Any) -> RPCResponse | None:
    if isinstance(cached, RPCResponse):
        cached = cached.to_dict()
    if not isinstance(cached, Mapping):
        return None
    try:
        return parse_response(json.loads(json.dumps(dict(cached))))
    except (TypeError, ValueError):
        return None


def preprocess_request(request: RPCRequest, account_id: str) -> RPCResponse | None:
    """Return a ready response (forbidden, predefined or cached), or None to forward.

    For wallet-specific methods a non-empty account_id is injected into the params.
    """
    response = get_preconditioned_query_response(request.method, request.params)
    if response is not None:
        return response

    if account_id and method_in_list(request.method, WALLET_SPECIFIC_METHODS):
        logger.info(
            "got an account-specific method call",
            extra={"method": request.method, "params": request.params},
        )
        if isinstance(request.params, dict):
            request.params[PARAM_ACCOUNT_ID] = account_id
        else:
            request.params = {PARAM_ACCOUNT_ID: account_id}

    process_query(request)

    if should_cache(request.method, request.params):
        cached = get_response_cache().retrieve(request.method, request.params)
        response = _response_from_cache(cached)
        if response is not None:
            response.id = request.id
            response.jsonrpc = request.jsonrpc
            logger.info("cached query", extra={"method": request.method})
            return response
    return None


def proxy(request: RPCRequest, account_id: str) -> bytes:
    """Pre-process a parsed request and either answer it locally or forward it."""
    response = preprocess_request(request, account_id)
    if response is not None:
        return marshal_response(response)
    return forward_call(request)


def raw_call(request: RPCRequest) -> RPCResponse:
    """Send a request to the configured SDK as is; raises RPCCallError on failure."""
    return RPCClient(get_lbrynet()).call_raw(request)


def forward_call(request: RPCRequest) -> bytes:
    """Send a request to the SDK, post-process and cache the reply, and serialize it."""
    global resolve_time
    started = time.monotonic()
    result = raw_call(request)
    if result.error is None:
        exec_time = time.monotonic() - started
        processed = process_response(request, result)
        if should_log(request.method):
            logger.info(
                "call processed",
                extra={
                    "method": request.method,
                    "params": request.params,
                    "duration": exec_time,
                },
            )
        if request.method == METHOD_RESOLVE:
            resolve_time = exec_time
        if should_cache(request.method, request.params):
            get_response_cache().save(request.method, request.params, processed)
    else:
        processed = result
        logger.error(
            "error from the target endpoint: %s",
            result.error.message,
            extra={"method": request.method, "params": request.params},
        )
    return marshal_response(processed)


def should_cache(method: str, params: Any) -> bool:
    """True for resolve queries with more than CACHE_RESOLVE_LONGER_THAN urls."""
    if method != METHOD_RESOLVE or not isinstance(params, dict):
        return False
    urls = params.get(PARAM_URLS)
    return isinstance(urls, list) and len(urls) > CACHE_RESOLVE_LONGER_THAN


def should_log(method: str) -> bool:
    return method not in IGNORE_LOG