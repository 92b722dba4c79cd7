"""JSON-RPC proxy and WSGI API server for an lbrynet SDK instance."""

__version__ = "0.1.0"