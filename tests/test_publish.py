import json
import os
import re
from io import BytesIO

import pytest
import responses
from werkzeug.datastructures import FileStorage
from werkzeug.test import EnvironBuilder, encode_multipart

from tvproxy.config import Config, set_config
from tvproxy.publish import (
    EXAMPLE_STREAM_CREATE_REQUEST,
    FILE_FIELD_NAME,
    JSONRPC_FIELD_NAME,
    LbrynetPublisher,
    UploadHandler,
    create_publish_request,
    new_upload_handler,
)
from tvproxy.service import Service
from tvproxy.users import TOKEN_HEADER, Authenticator, TestUserRetriever

DUMMY_RESPONSE = b'{"jsonrpc": "2.0", "result": {"published": true}, "id": 0}'
ENDPOINT = "http://localhost:5279/"


class DummyPublisher:
    def __init__(self):
        self.called = False
        self.file_path = ""
        self.wallet_id = ""
        self.raw_query = b""
        self.content = b""

    def publish(self, file_path, wallet_id, raw_query):
        self.called = True
        self.file_path = file_path
        self.wallet_id = wallet_id
        self.raw_query = raw_query
        with open(file_path, "rb") as f:
            self.content = f.read()
        return DUMMY_RESPONSE


@pytest.fixture
def config(tmp_path):
    cfg = Config(search_paths=[], environ={})
    cfg.set("PublishSourceDir", str(tmp_path / "published"))
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def sdk():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _set_token(request, value):
    request.environ["HTTP_" + TOKEN_HEADER.upper().replace("-", "_")] = value
    return request


def _error(resp):
    return json.loads(resp.get_data())["error"]


def test_upload_handler(tmp_path):
    req = _set_token(create_publish_request(b"test file"), "token")
    authenticator = Authenticator(TestUserRetriever(wallet_id="UPldrAcc", token="token"))
    publisher = DummyPublisher()
    handler = new_upload_handler(path=str(tmp_path), publisher=publisher)

    resp = authenticator.wrap(handler.handle)(req)

    assert resp.status_code == 200
    assert resp.get_data() == DUMMY_RESPONSE
    assert publisher.called
    pattern = re.escape(os.path.join(str(tmp_path), "UPldrAcc") + os.sep) + r".*_lbry_auto_test_file"
    assert re.fullmatch(pattern, publisher.file_path)
    assert publisher.wallet_id == "UPldrAcc"
    assert publisher.raw_query == EXAMPLE_STREAM_CREATE_REQUEST.encode()
    assert publisher.content == b"test file"
    assert not os.path.exists(publisher.file_path)


def test_upload_handler_auth_required(tmp_path):
    req = create_publish_request(b"test file")
    authenticator = Authenticator(TestUserRetriever())
    publisher = DummyPublisher()
    handler = new_upload_handler(path=str(tmp_path), publisher=publisher)

    resp = authenticator.wrap(handler.handle)(req)

    assert resp.status_code == 200
    error = _error(resp)
    assert error["message"] == "authentication required"
    assert error["code"] == -32080
    assert not publisher.called


def test_upload_handler_auth_failed(tmp_path):
    req = _set_token(create_publish_request(b"test file"), "placeholder")
    authenticator = Authenticator(TestUserRetriever(wallet_id="UPldrAcc", token="token"))
    publisher = DummyPublisher()
    handler = new_upload_handler(path=str(tmp_path), publisher=publisher)

    resp = authenticator.wrap(handler.handle)(req)

    error = _error(resp)
    assert error["message"] == "unable to retrieve user"
    assert error["code"] == -32085
    assert not publisher.called


def test_upload_handler_system_error(tmp_path):
    boundary, body = encode_multipart(
        {
            FILE_FIELD_NAME: FileStorage(BytesIO(b"test file"), filename="lbry_auto_test_file"),
            JSONRPC_FIELD_NAME: EXAMPLE_STREAM_CREATE_REQUEST,
        }
    )
    truncated = body.replace(f"--{boundary}--".encode(), b"")
    req = EnvironBuilder(
        path="/",
        method="POST",
        data=truncated,
        content_type=f"multipart/form-data; boundary={boundary}",
        headers={TOKEN_HEADER: "token"},
    ).get_request()

    authenticator = Authenticator(TestUserRetriever(wallet_id="UPldrAcc", token="token"))
    publisher = DummyPublisher()
    handler = new_upload_handler(path=str(tmp_path), publisher=publisher)

    resp = authenticator.wrap(handler.handle)(req)

    assert not publisher.called
    assert resp.status_code == 200
    assert _error(resp)["message"] == "unexpected EOF"


def test_new_upload_handler_needs_publisher():
    with pytest.raises(ValueError, match="need either a ProxyService or a Publisher instance"):
        new_upload_handler()


def test_new_upload_handler_prefers_proxy_service(tmp_path):
    svc = Service(ENDPOINT)
    handler = new_upload_handler(path=str(tmp_path), publisher=DummyPublisher(), proxy_service=svc)
    assert isinstance(handler.publisher, LbrynetPublisher)
    assert handler.publisher.service is svc


def test_new_upload_handler_default_path(config, tmp_path):
    handler = new_upload_handler(publisher=DummyPublisher())
    assert handler.upload_path == str(tmp_path / "published")


def test_can_handle(tmp_path):
    handler = UploadHandler(publisher=DummyPublisher(), upload_path=str(tmp_path))
    assert handler.can_handle(create_publish_request(b"test file")) is True
    assert handler.can_handle(create_publish_request(b"test file", payload="")) is False
    plain = EnvironBuilder(path="/api/v1/proxy", method="POST", data=b'{"method": "status"}').get_request()
    assert handler.can_handle(plain) is False


def test_create_publish_request_carries_fields():
    req = create_publish_request(b"abc", payload=b'{"method": "stream_create"}')
    assert req.method == "POST"
    assert req.path == "/api/v1/proxy"
    assert req.form[JSONRPC_FIELD_NAME] == '{"method": "stream_create"}'
    upload = req.files[FILE_FIELD_NAME]
    assert upload.filename == "lbry_auto_test_file"
    assert upload.read() == b"abc"


def test_lbrynet_publisher_attaches_file_path_and_wallet(sdk):
    sdk.add(
        responses.POST,
        ENDPOINT,
        json={"jsonrpc": "2.0", "result": {"txid": "abc"}, "id": 0},
    )
    publisher = LbrynetPublisher(Service(ENDPOINT))
    query = json.dumps(
        {"jsonrpc": "2.0", "method": "stream_create", "params": {"name": "test"}, "id": 1}
    ).encode()

    raw = publisher.publish("/storage/file.mp4", "wallet1", query)

    assert json.loads(raw)["result"] == {"txid": "abc"}
    sent = json.loads(sdk.calls[0].request.body)
    assert sent["params"] == {
        "name": "test",
        "wallet_id": "wallet1",
        "file_path": "/storage/file.mp4",
    }


def test_lbrynet_publisher_without_params(sdk):
    sdk.add(responses.POST, ENDPOINT, json={"jsonrpc": "2.0", "result": {}, "id": 0})
    publisher = LbrynetPublisher(Service(ENDPOINT))
    query = json.dumps({"jsonrpc": "2.0", "method": "stream_create", "id": 1}).encode()

    raw = publisher.publish("/storage/x", "wallet1", query)

    assert json.loads(raw)["result"] == {}
    sent = json.loads(sdk.calls[0].request.body)
    assert sent["params"] == {"wallet_id": "wallet1", "file_path": "/storage/x"}


def test_lbrynet_publisher_requires_wallet():
    publisher = LbrynetPublisher(Service(ENDPOINT))
    query = json.dumps({"jsonrpc": "2.0", "method": "stream_create", "id": 1}).encode()
    raw = publisher.publish("/storage/x", "", query)
    assert json.loads(raw)["error"]["message"] == "account identificator required"