"""HTTP handlers exposing the proxy service."""

from __future__ import annotations

import json
import logging

from werkzeug.exceptions import ClientDisconnected
from werkzeug.wrappers import Request, Response

from .config import accounts_enabled
from .errors import ERR_AUTH_FAILED
from .rpc import new_error_response
from .service import Service
from .users import Authenticator, Retriever

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

CORS_HEADERS = {
    "Access-Control-Max-Age": "7200",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "X-Lbry-Auth-Token, Origin, X-Requested-With, Content-Type, Accept",
}


def _text_response(message: str, status: int) -> Response:
    return Response(message, status=status, content_type="text/plain; charset=utf-8")


class RequestHandler:
    """Forwards client JSON-RPC requests through a proxy service.

    When accounts are enabled, the retriever is used to find the client's wallet.
    """

    def __init__(self, service: Service, retriever: Retriever | None = None):
        self.service = service
        self.retriever = retriever

    def handle(self, request: Request) -> Response:
        try:
            body = request.get_data(cache=True)
        except (ClientDisconnected, OSError) as exc:
            logger.error("error reading request body: %s", exc)
            return _text_response("error reading request body", 400)
        if not body:
            logger.error("empty request body")
            return _text_response("empty request body", 400)

        caller = self.service.new_caller()

        if accounts_enabled() and self.retriever is not None:
            try:
                wallet_id = Authenticator(self.retriever).get_wallet_id(request)
            except Exception as exc:
                logger.error("authentication failed: %s", exc)
                payload = json.dumps(
                    new_error_response(str(exc), ERR_AUTH_FAILED).to_dict(),
                    separators=(",", ":"),
                ).encode()
                return Response(payload, status=200, content_type=JSON_CONTENT_TYPE)
            caller.set_wallet_id(wallet_id)

        return Response(caller.call(body), status=200, content_type=JSON_CONTENT_TYPE)

    def handle_options(self, request: Request) -> Response:
        """Answer CORS pre-flight requests."""
        return Response(status=200, headers=CORS_HEADERS)