"""Method and parameter names, method lists and pre-flight query checks."""

from __future__ import annotations

from typing import Any, Iterable

from .errors import ERR_INVALID_PARAMS, ERR_METHOD_UNAVAILABLE
from .processors import get_status_response
from .rpc import RPCResponse, new_error_response

CACHE_RESOLVE_LONGER_THAN = 10

METHOD_GET = "get"
METHOD_FILE_LIST = "file_list"
METHOD_ACCOUNT_LIST = "account_list"
METHOD_ACCOUNT_BALANCE = "account_balance"
METHOD_STATUS = "status"
METHOD_RESOLVE = "resolve"
METHOD_CLAIM_SEARCH = "claim_search"
METHOD_COMMENT_LIST = "comment_list"

PARAM_ACCOUNT_ID = "account_id"
PARAM_WALLET_ID = "wallet_id"
PARAM_FUNDING_ACCOUNT_IDS = "funding_account_ids"
PARAM_URLS = "urls"

FORBIDDEN_PARAM = PARAM_ACCOUNT_ID

# Methods allowed without a wallet_id.
RELAXED_METHODS: tuple[str, ...] = (
    "blob_announce",
    "status",
    "resolve",
    "transaction_show",
    "stream_cost_estimate",
    "claim_search",
    "comment_list",
    "version",
    "routing_table_get",
)

# Methods that require a wallet_id.
WALLET_SPECIFIC_METHODS: tuple[str, ...] = (
    "publish",
    "address_unused",
    "address_list",
    "address_is_mine",
    "account_list",
    "account_balance",
    "account_send",
    "account_max_address_gap",
    "channel_abandon",
    "channel_create",
    "channel_list",
    "channel_update",
    "channel_export",
    "channel_import",
    "comment_abandon",
    "comment_create",
    "comment_hide",
    "claim_list",
    "stream_abandon",
    "stream_create",
    "stream_list",
    "stream_update",
    "support_abandon",
    "support_create",
    "support_list",
    "sync_apply",
    "sync_hash",
    "preference_get",
    "preference_set",
    "transaction_list",
    "utxo_list",
    "utxo_release",
    "wallet_list",
    "wallet_send",
    "wallet_balance",
    "wallet_encrypt",
    "wallet_decrypt",
    "wallet_lock",
    "wallet_unlock",
    "wallet_status",
)

# Methods never allowed for remote calling.
FORBIDDEN_METHODS: tuple[str, ...] = (
    "stop",
    "account_add",
    "account_create",
    "account_encrypt",
    "account_decrypt",
    "account_fund",
    "account_lock",
    "account_remove",
    "account_unlock",
    "file_delete",
    "file_list",
    "file_reflect",
    "file_save",
    "file_set_status",
    "peer_list",
    "peer_ping",
    "get",
    "sync_apply",
    "settings_get",
    "settings_set",
    "wallet_add",
    "wallet_create",
    "wallet_remove",
    "blob_get",
    "blob_reflect_all",
    "blob_list",
    "blob_delete",
    "blob_reflect",
)

IGNORE_LOG: tuple[str, ...] = (METHOD_ACCOUNT_BALANCE, METHOD_STATUS)


def method_in_list(method: str, methods: Iterable[str]) -> bool:
    return method in methods


def get_preconditioned_query_response(method: str, params: Any) -> RPCResponse | None:
    """Return a ready response for forbidden or predefined queries, else None."""
    if method_in_list(method, FORBIDDEN_METHODS):
        return new_error_response(
            f"Forbidden method requested: {method}", ERR_METHOD_UNAVAILABLE
        )
    if isinstance(params, dict) and FORBIDDEN_PARAM in params:
        return new_error_response(
            f"Forbidden parameter supplied: {FORBIDDEN_PARAM}", ERR_INVALID_PARAMS
        )
    if method == METHOD_STATUS:
        return RPCResponse(result=get_status_response())
    return None