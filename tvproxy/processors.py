"""Query and response processing for proxied SDK calls, plus canned responses."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Mapping

from .config import get_config
from .rpc import RPCRequest, RPCResponse

logger = logging.getLogger(__name__)

_INSTALLATION_ID = "692EAWhtoqDuAfQ6KHMXxFxt8tkhmt7sfprEMHWKjy5hf6PwZcHDV542VHqRnFnTCD"
_BEST_BLOCKHASH = "3d77791b9d87609a004b398e638bcdc91650247ee4448a2b30bf8474668d0ad3"

_STARTUP_COMPONENTS = (
    "blob_manager",
    "blockchain_headers",
    "database",
    "exchange_rate_manager",
    "peer_protocol_server",
    "stream_manager",
    "upnp",
    "wallet",
)

_STATUS_RESPONSE: dict[str, Any] = dict(
    blob_manager=dict(
        connections=dict(
            incoming_bps={},
            outgoing_bps={},
            time=0.0,
            total_incoming_mbs=0.0,
            total_outgoing_mbs=0.0,
        ),
        finished_blobs=0,
    ),
    connection_status=dict(code="connected", message="No connection problems detected"),
    installation_id=_INSTALLATION_ID,
    is_running=True,
    skipped_components=["hash_announcer", "blob_server", "dht"],
    startup_status={name: True for name in _STARTUP_COMPONENTS},
    stream_manager=dict(managed_files=1),
    upnp=dict(
        aioupnp_version="0.0.13",
        dht_redirect_set=False,
        external_ip="127.0.0.1",
        gateway="No gateway found",
        peer_redirect_set=False,
        redirects={},
    ),
    wallet=dict(
        best_blockhash=_BEST_BLOCKHASH,
        blocks=0,
        blocks_behind=0,
        is_encrypted=False,
        is_locked=False,
    ),
)


def get_status_response() -> dict[str, Any]:
    """Return a fresh copy of the canned SDK status response."""
    return copy.deepcopy(_STATUS_RESPONSE)


def _base_content_url() -> str:
    return get_config().get_string("BaseContentURL")


def _fmt(value: Any) -> str:
    return "" if value is None else str(value)


def _query_params(query: RPCRequest) -> dict[str, Any]:
    params = query.params
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return dict(params)
    raise ValueError("cannot read query params as a mapping")


def process_query(query: RPCRequest) -> RPCRequest:
    """Prepare a query before it is forwarded; currently queries pass unchanged."""
    return query


def _process_get(query: RPCRequest, response: RPCResponse) -> None:
    result = dict(response.result) if isinstance(response.result, Mapping) else {}
    params = _query_params(query)
    result["download_path"] = (
        f"{_base_content_url()}{_fmt(params.get('uri'))}/{_fmt(result.get('outpoint'))}"
    )
    response.result = result


def _process_file_list(query: RPCRequest, response: RPCResponse) -> None:
    result = response.result
    if isinstance(result, list) and all(isinstance(item, Mapping) for item in result):
        items: list[dict[str, Any]] | None = [dict(item) for item in result]
    else:
        items = None
    if items:
        first = items[0]
        first["download_path"] = (
            f"{_base_content_url()}claims/{_fmt(first.get('claim_name'))}/"
            f"{_fmt(first.get('claim_id'))}/{_fmt(first.get('file_name'))}"
        )
    response.result = items


def get_default_account(accounts: Any) -> dict[str, Any] | None:
    """Return the mainnet account flagged as default, or None."""
    if not isinstance(accounts, Mapping):
        return None
    for account in accounts.get("lbc_mainnet") or []:
        if isinstance(account, Mapping) and account.get("is_default"):
            return dict(account)
    return None


def _process_account_list(query: RPCRequest, response: RPCResponse) -> None:
    logger.info("got account_list query", extra={"params": query.params})
    if query.params is None:
        account = get_default_account(response.result)
        if account is None:
            raise ValueError("fatal error: no default account found")
        response.result = account


_RESPONSE_PROCESSORS: dict[str, Callable[[RPCRequest, RPCResponse], None]] = {
    "get": _process_get,
    "file_list": _process_file_list,
    "account_list": _process_account_list,
}


def process_response(query: RPCRequest, response: RPCResponse) -> RPCResponse:
    """Apply the method-specific post-processor to a response, in place."""
    processor = _RESPONSE_PROCESSORS.get(query.method)
    if processor is not None:
        processor(query, response)
    return response