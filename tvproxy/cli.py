"""Command line entry point starting the API server."""

from __future__ import annotations

import argparse
import sys

from werkzeug.serving import make_server

from .api import install_routes
from .config import ConfigError, get_address, get_lbrynet
from .service import Service


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"invalid address: {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid address: {address!r}") from None
    host = host.strip("[]") or "0.0.0.0"
    return host, port


def main(argv=None) -> int:
    """Run the API server until interrupted; returns the exit status."""
    parser = argparse.ArgumentParser(
        prog="lbrytv",
        description="lbrytv is a backend API server for lbry.tv frontend",
    )
    parser.parse_args(argv)

    try:
        host, port = _split_address(get_address())
        app = install_routes(Service(get_lbrynet()))
        server = make_server(host, port, app, threaded=True)
    except (ConfigError, ValueError, OSError) as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    sys.exit(main())