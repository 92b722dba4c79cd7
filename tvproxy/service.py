"""Proxy service: validates client JSON-RPC queries and forwards them to the SDK."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .cache import get_response_cache
from .errors import (
    CallError,
    new_error,
    new_internal_error,
    new_method_error,
    new_params_error,
    new_parse_error,
)
from .methods import (
    CACHE_RESOLVE_LONGER_THAN,
    FORBIDDEN_PARAM,
    METHOD_RESOLVE,
    METHOD_STATUS,
    PARAM_URLS,
    PARAM_WALLET_ID,
    RELAXED_METHODS,
    WALLET_SPECIFIC_METHODS,
    method_in_list,
)
from .processors import get_status_response, process_response
from .rpc import RPCCallError, RPCClient, RPCRequest, RPCResponse, parse_request, parse_response

PROXY_LOGGER_NAME = "tvproxy.proxy"


@dataclass
class Query:
    """A parsed client query along with its raw body."""

    request: RPCRequest
    raw_request: bytes = b""
    wallet_id: str = ""

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def params(self) -> Any:
        return self.request.params

    def params_as_map(self) -> dict[str, Any] | None:
        params = self.params
        return params if isinstance(params, dict) else None

    def set_wallet_id(self, wallet_id: str) -> None:
        self.wallet_id = wallet_id

    def is_cacheable(self) -> bool:
        """True for resolve queries with more than CACHE_RESOLVE_LONGER_THAN urls."""
        if self.method != METHOD_RESOLVE:
            return False
        params = self.params_as_map()
        if params is None:
            return False
        urls = params.get(PARAM_URLS)
        return isinstance(urls, list) and len(urls) > CACHE_RESOLVE_LONGER_THAN

    def _new_response(self) -> RPCResponse:
        return RPCResponse(id=self.request.id, jsonrpc=self.request.jsonrpc)

    def cache_hit(self) -> RPCResponse | None:
        """Return a cached response, or None on a miss or for uncacheable queries."""
        if not self.is_cacheable():
            return None
        cached = get_response_cache().retrieve(self.method, self.params)
        if cached is None:
            return None
        if isinstance(cached, RPCResponse):
            cached = cached.to_dict()
        if not isinstance(cached, Mapping):
            return None
        merged = self._new_response().to_dict()
        merged.update(cached)
        try:
            response = parse_response(json.loads(json.dumps(merged)))
        except (TypeError, ValueError):
            return None
        logging.getLogger(PROXY_LOGGER_NAME).info(
            "cached query", extra={"method": self.method}
        )
        return response

    def predefined_response(self) -> RPCResponse | None:
        if self.method == METHOD_STATUS:
            response = self._new_response()
            response.result = get_status_response()
            return response
        return None

    def validate(self) -> None:
        """Check the method and params, attaching wallet_id where one is required."""
        relaxed = method_in_list(self.method, RELAXED_METHODS)
        if not relaxed and not method_in_list(self.method, WALLET_SPECIFIC_METHODS):
            raise new_method_error("forbidden method")
        params = self.params_as_map()
        if params is not None and FORBIDDEN_PARAM in params:
            raise new_params_error(f"forbidden parameter supplied: {FORBIDDEN_PARAM}")
        if not relaxed:
            if not self.wallet_id:
                raise new_params_error("account identificator required")
            if params is not None:
                params[PARAM_WALLET_ID] = self.wallet_id
            else:
                self.request.params = {PARAM_WALLET_ID: self.wallet_id}


def new_query(raw: bytes | str) -> Query:
    """Parse a raw JSON-RPC body; raises ValueError if it cannot be parsed."""
    request = parse_request(raw)
    raw_bytes = raw.encode() if isinstance(raw, str) else bytes(raw)
    return Query(request=request, raw_request=raw_bytes)


Preprocessor = Callable[[Query], None]


class Service:
    """Creates callers for one SDK endpoint and holds the shared query logger."""

    def __init__(self, target_endpoint: str, logger: logging.Logger | None = None):
        self.target_endpoint = target_endpoint
        self.logger = logger or logging.getLogger(PROXY_LOGGER_NAME)

    def new_caller(self) -> "Caller":
        return Caller(self, RPCClient(self.target_endpoint))


class Caller:
    """Validates, pre/post-processes and forwards client queries to the SDK."""

    def __init__(
        self,
        service: Service,
        client: Any = None,
        wallet_id: str = "",
        preprocessor: Preprocessor | None = None,
    ):
        self.service = service
        self.client = client if client is not None else RPCClient(service.target_endpoint)
        self.wallet_id = wallet_id
        self.preprocessor = preprocessor

    def set_preprocessor(self, preprocessor: Preprocessor) -> None:
        self.preprocessor = preprocessor

    def set_wallet_id(self, wallet_id: str) -> None:
        self.wallet_id = wallet_id

    def _call(self, raw_query: bytes) -> RPCResponse:
        log = self.service.logger
        try:
            query = new_query(raw_query)
        except ValueError as exc:
            log.error("malformed JSON from client: %s", exc)
            raise new_parse_error(exc) from exc

        if self.wallet_id:
            query.set_wallet_id(self.wallet_id)

        query.validate()

        cached = query.cache_hit()
        if cached is not None:
            return cached
        predefined = query.predefined_response()
        if predefined is not None:
            return predefined

        if self.preprocessor is not None:
            self.preprocessor(query)

        started = time.monotonic()
        try:
            response = self.client.call_raw(query.request)
        except RPCCallError as exc:
            raise new_internal_error(exc) from exc
        duration = time.monotonic() - started

        if response.error is not None:
            log.error(
                "error from the target endpoint: %s",
                response.error.message,
                extra={"method": query.method, "params": query.params},
            )
        else:
            log.info(
                "call processed",
                extra={"method": query.method, "params": query.params, "duration": duration},
            )

        try:
            response = process_response(query.request, response)
        except ValueError as exc:
            raise new_internal_error(exc) from exc

        if query.is_cacheable():
            get_response_cache().save(query.method, query.params, response)
        return response

    @staticmethod
    def _marshal_error(error: CallError) -> bytes:
        return json.dumps(error.as_rpc_response().to_dict(), indent=2).encode()

    def call(self, raw_query: bytes | str) -> bytes:
        """Process a raw client query and return a serialized JSON-RPC response."""
        raw = raw_query.encode() if isinstance(raw_query, str) else bytes(raw_query)
        try:
            response = self._call(raw)
        except CallError as err:
            self.service.logger.error(
                "error calling lbrynet: %s, query: %s", err, raw.decode(errors="replace")
            )
            return self._marshal_error(err)
        try:
            return json.dumps(response.to_dict(), indent=2).encode()
        except (TypeError, ValueError) as exc:
            err = new_error(exc)
            self.service.logger.error("error marshaling response: %s", err)
            return self._marshal_error(err)