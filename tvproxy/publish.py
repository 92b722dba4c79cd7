"""File uploads for publishing: stores uploaded files and forwards publish queries."""

from __future__ import annotations

import io
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Protocol

from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request, Response

from .config import get_publish_source_dir
from .errors import ERR_UNAUTHORIZED, new_auth_error, new_publish_internal_error
from .service import Query, Service
from .users import AuthenticatedRequest

logger = logging.getLogger(__name__)

FILE_FIELD_NAME = "file"
JSONRPC_FIELD_NAME = "json_payload"
FILE_NAME_PARAM = "file_path"
TEST_FILE_NAME = "lbry_auto_test_file"

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

EXAMPLE_STREAM_CREATE_REQUEST = json.dumps(
    {
        "jsonrpc": "2.0",
        "method": "stream_create",
        "params": {
            "name": "test",
            "title": "test",
            "description": "test description",
            "bid": "0.000001",
            "languages": ["en"],
            "tags": [],
            "license": "None",
            "release_time": 1567580184,
            "file_path": "__POST_FILE__",
        },
        "id": 1567580184168,
    },
    indent=2,
)


class Publisher(Protocol):
    def publish(self, file_path: str, wallet_id: str, raw_query: bytes) -> bytes:
        """Send a publish query for a stored file and return the raw response."""


@dataclass
class LbrynetPublisher:
    """Publishes files by passing the client's query through the proxy service."""

    service: Service

    def publish(self, file_path: str, wallet_id: str, raw_query: bytes) -> bytes:
        caller = self.service.new_caller()
        caller.set_wallet_id(wallet_id)

        def attach_file_path(query: Query) -> None:
            params = query.params_as_map()
            if params is None:
                params = {}
            params[FILE_NAME_PARAM] = file_path
            query.request.params = params

        caller.set_preprocessor(attach_file_path)
        return caller.call(raw_query)


def _json_response(body: bytes) -> Response:
    return Response(body, status=200, content_type=JSON_CONTENT_TYPE)


@dataclass
class UploadHandler:
    """Stores HTTP uploads on disk and hands them to a publisher."""

    publisher: Publisher
    upload_path: str

    def handle(self, request: AuthenticatedRequest) -> Response:
        """Handle an authenticated upload; always answers with status 200."""
        if not request.is_authenticated():
            if request.auth_failed():
                error = new_auth_error(request.auth_error)
            else:
                error = ERR_UNAUTHORIZED
            return _json_response(error.as_bytes())

        try:
            file_path = self._save_file(request)
        except (OSError, ValueError, EOFError) as exc:
            logger.error("cannot save uploaded file: %s", exc)
            return _json_response(new_publish_internal_error(exc).as_bytes())

        try:
            payload = request.form.get(JSONRPC_FIELD_NAME, "")
            response = self.publisher.publish(
                file_path, request.wallet_id, payload.encode()
            )
        finally:
            try:
                os.remove(file_path)
            except OSError as exc:
                logger.warning("cannot remove uploaded file %s: %s", file_path, exc)
        return _json_response(response)

    def can_handle(self, request: Request) -> bool:
        """True if the request holds an uploaded file and a JSON-RPC payload."""
        request.get_data(cache=True)
        if request.mimetype != "multipart/form-data":
            return False
        return FILE_FIELD_NAME in request.files and bool(
            request.form.get(JSONRPC_FIELD_NAME)
        )

    def _prepare_path(self, wallet_id: str) -> str:
        path = os.path.join(self.upload_path, wallet_id)
        os.makedirs(path, exist_ok=True)
        return path

    def _create_file(self, wallet_id: str, original_name: str) -> tuple[int, str]:
        directory = self._prepare_path(wallet_id)
        return tempfile.mkstemp(prefix="", suffix=f"_{original_name}", dir=directory)

    def _save_file(self, request: AuthenticatedRequest) -> str:
        body = request.get_data(cache=True)
        if request.mimetype != "multipart/form-data":
            raise ValueError("request Content-Type isn't multipart/form-data")
        boundary = request.mimetype_params.get("boundary", "")
        if not boundary:
            raise ValueError("no multipart boundary param in Content-Type")
        if f"--{boundary}--".encode() not in body:
            raise EOFError("unexpected EOF")

        upload = request.files.get(FILE_FIELD_NAME)
        if upload is None:
            raise ValueError("no such file")

        original_name = os.path.basename(upload.filename or "")
        fd, path = self._create_file(request.wallet_id, original_name)
        logger.info("processing uploaded file %s", original_name)
        try:
            with os.fdopen(fd, "wb") as out:
                upload.save(out)
                written = out.tell()
        except OSError:
            try:
                os.remove(path)
            except OSError:
                pass
            raise
        logger.info("saved uploaded file %s (%s bytes written)", path, written)
        return path


def new_upload_handler(
    path: str | None = None,
    publisher: Publisher | None = None,
    proxy_service: Service | None = None,
) -> UploadHandler:
    """Build an upload handler; a proxy service takes precedence over a publisher."""
    if proxy_service is not None:
        chosen: Publisher = LbrynetPublisher(proxy_service)
    elif publisher is not None:
        chosen = publisher
    else:
        raise ValueError("need either a ProxyService or a Publisher instance")
    upload_path = path if path else get_publish_source_dir()
    return UploadHandler(publisher=chosen, upload_path=upload_path)


def create_publish_request(
    data: bytes, payload: str | bytes = EXAMPLE_STREAM_CREATE_REQUEST
) -> Request:
    """Build a multipart POST request carrying a file and a JSON-RPC payload."""
    if isinstance(payload, bytes):
        payload = payload.decode()
    builder = EnvironBuilder(
        path="/api/v1/proxy",
        method="POST",
        data={
            FILE_FIELD_NAME: (io.BytesIO(data), TEST_FILE_NAME),
            JSONRPC_FIELD_NAME: payload,
        },
    )
    try:
        return builder.get_request()
    finally:
        builder.close()