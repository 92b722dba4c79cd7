import json

import pytest
from werkzeug.test import EnvironBuilder

from tvproxy.api import index, install_routes
from tvproxy.config import Config, set_config
from tvproxy.publish import create_publish_request
from tvproxy.service import Service


@pytest.fixture(autouse=True)
def config(tmp_path):
    cfg = Config(search_paths=[], environ={})
    cfg.set("ProjectURL", "https://example.com/")
    cfg.set("PublishSourceDir", str(tmp_path))
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def app():
    return install_routes(Service("http://localhost:5279/"))


def _request(method, path, data=None):
    return EnvironBuilder(path=path, method=method, data=data).get_request()


def test_routes_proxy(app):
    resp = app.dispatch(_request("POST", "/api/v1/proxy", b'{"method": "status"}'))
    assert resp.status_code == 200
    body = resp.get_data()
    assert b'"result":' in body
    assert (
        json.loads(body)["result"]["installation_id"]
        == "692EAWhtoqDuAfQ6KHMXxFxt8tkhmt7sfprEMHWKjy5hf6PwZcHDV542VHqRnFnTCD"
    )


def test_routes_publish(app):
    resp = app.dispatch(create_publish_request(b"test file"))
    assert resp.status_code == 200
    assert b'"code": -32080' in resp.get_data()


def test_routes_options(app):
    resp = app.dispatch(_request("OPTIONS", "/api/v1/proxy"))
    assert resp.status_code == 200
    assert resp.headers["Access-Control-Max-Age"] == "7200"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert (
        resp.headers["Access-Control-Allow-Headers"]
        == "X-Lbry-Auth-Token, Origin, X-Requested-With, Content-Type, Accept"
    )


def test_routes_empty_proxy_body(app):
    resp = app.dispatch(_request("POST", "/api/v1/proxy"))
    assert resp.status_code == 400
    assert resp.get_data() == b"empty request body"


def test_routes_unknown_path(app):
    resp = app.dispatch(_request("GET", "/nowhere"))
    assert resp.status_code == 404


def test_routes_index(app):
    resp = app.dispatch(_request("GET", "/"))
    assert resp.status_code == 303
    assert resp.headers["Location"] == "https://example.com/"


def test_index_redirects_to_project_url():
    resp = index(_request("GET", "/"))
    assert resp.status_code == 303
    assert resp.headers["Location"] == "https://example.com/"


def test_app_is_wsgi_callable(app):
    environ = EnvironBuilder(path="/api/v1/proxy", method="OPTIONS").get_environ()
    statuses = []
    body = b"".join(app(environ, lambda status, headers: statuses.append(status)))
    assert statuses == ["200 OK"]
    assert body == b""