"""HTTP routes of the API server."""

from __future__ import annotations

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from .config import get_project_url
from .handlers import RequestHandler
from .publish import UploadHandler, new_upload_handler
from .service import Service
from .users import GENERIC_RETRIEVAL_ERR, Authenticator, RetrievalError, Retriever, UserQuery

PROXY_PATH = "/api/v1/proxy"


def index(request: Request) -> Response:
    """Redirect the home page to the project URL."""
    return redirect(get_project_url(), code=303)


class _NoRetriever:
    """Used when no user store is configured: every token is rejected."""

    def retrieve(self, query: UserQuery):
        raise RetrievalError(GENERIC_RETRIEVAL_ERR)


class _Router:
    """WSGI application dispatching requests to the API handlers."""

    def __init__(
        self,
        proxy_handler: RequestHandler,
        upload_handler: UploadHandler,
        authenticator: Authenticator,
    ):
        self.proxy_handler = proxy_handler
        self.upload_handler = upload_handler
        self.authenticated_upload = authenticator.wrap(upload_handler.handle)
        self.url_map = Map(
            [Rule("/", endpoint="index"), Rule(PROXY_PATH, endpoint="proxy")]
        )

    def dispatch(self, request: Request) -> Response:
        adapter = self.url_map.bind_to_environ(request.environ)
        try:
            endpoint, _ = adapter.match()
        except HTTPException as exc:
            return exc.get_response(request.environ)
        if endpoint == "index":
            return index(request)
        if request.method == "OPTIONS":
            return self.proxy_handler.handle_options(request)
        if self.upload_handler.can_handle(request):
            return self.authenticated_upload(request)
        return self.proxy_handler.handle(request)

    def __call__(self, environ, start_response):
        response = self.dispatch(Request(environ))
        return response(environ, start_response)


def install_routes(proxy_service: Service, retriever: Retriever | None = None) -> _Router:
    """Build the API application around a proxy service and a user retriever."""
    user_retriever = retriever if retriever is not None else _NoRetriever()
    authenticator = Authenticator(user_retriever)
    proxy_handler = RequestHandler(proxy_service, retriever)
    upload_handler = new_upload_handler(proxy_service=proxy_service)
    return _Router(proxy_handler, upload_handler, authenticator)