from unittest import mock

import pytest

from tvproxy.cli import main
from tvproxy.config import Config, set_config


@pytest.fixture
def config(tmp_path):
    cfg = Config(search_paths=[], environ={})
    cfg.set("PublishSourceDir", str(tmp_path))
    set_config(cfg)
    yield cfg
    set_config(None)


def test_serves_on_default_address(config):
    with mock.patch("tvproxy.cli.make_server") as make_server:
        make_server.return_value.serve_forever.side_effect = KeyboardInterrupt
        assert main([]) == 0
    make_server.assert_called_once()
    args = make_server.call_args.args
    assert args[0] == "0.0.0.0"
    assert args[1] == 8080
    assert callable(args[2])
    make_server.return_value.server_close.assert_called_once()


def test_serves_on_configured_address(config):
    config.set("Address", "127.0.0.1:9000")
    with mock.patch("tvproxy.cli.make_server") as make_server:
        make_server.return_value.serve_forever.side_effect = KeyboardInterrupt
        assert main([]) == 0
    assert make_server.call_args.args[:2] == ("127.0.0.1", 9000)


def test_invalid_address(config, capsys):
    config.set("Address", "localhost:http-port")
    with mock.patch("tvproxy.cli.make_server") as make_server:
        assert main([]) == 1
    make_server.assert_not_called()
    assert "invalid address" in capsys.readouterr().err


def test_bind_failure_reports_error(config, capsys):
    with mock.patch("tvproxy.cli.make_server", side_effect=OSError("address in use")):
        assert main([]) == 1
    assert "address in use" in capsys.readouterr().err


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0
    assert "lbrytv is a backend API server for lbry.tv frontend" in capsys.readouterr().out