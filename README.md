# tvproxy

`tvproxy` is a small HTTP API server that sits in front of an lbrynet SDK
instance and exposes it to remote web clients. Clients send JSON-RPC requests
to `/api/v1/proxy`; the server validates them, blocks methods that must not be
called remotely, attaches the caller's wallet, answers some queries from a
cache or from a predefined response, forwards the rest to the SDK and returns
its reply.

## Routes

| Route                    | Method     | What happens                                          |
|--------------------------|------------|-------------------------------------------------------|
| `/`                      | any        | `303` redirect to the configured `ProjectURL`         |
| `/api/v1/proxy`          | `OPTIONS`  | CORS pre-flight headers                               |
| `/api/v1/proxy`          | multipart `POST` with `file` and `json_payload` | publish upload |
| `/api/v1/proxy`          | other      | JSON-RPC proxying                                     |

## What it does

- **Gatekeeping.** Only known methods are allowed. Methods such as `status`,
  `resolve`, `claim_search` or `version` may be called by anyone;
  wallet-specific methods (`account_balance`, `channel_create`,
  `stream_create`, …) require a wallet ID, which is injected into the request
  params as `wallet_id`. Supplying `account_id` directly is refused.
- **Errors as JSON-RPC.** Parse errors, forbidden methods, bad parameters,
  failed authentication and SDK connection problems all come back as JSON-RPC
  error objects with the codes `-32700`, `-32601`, `-32602`, `-32603`,
  `-32085` and `-32080`. The HTTP status is `200` in all these cases; only an
  empty request body gets a `400`.
- **Predefined status.** `status` is answered locally with a fixed reply.
- **Caching.** `resolve` calls with more than ten URLs are cached for two
  minutes, keyed by method and parameters.
- **Response processing.** `account_list` replies to queries without params
  are replaced by the default mainnet account; `get` and `file_list` replies
  get a `download_path` pointing at `BaseContentURL` (these two methods are
  forbidden for remote clients, so this applies only when they are forwarded
  with `tvproxy.proxy.forward_call`).
- **Uploads.** A multipart `POST` carrying a `file` field and a
  `json_payload` field is treated as a publish: the file is stored under
  `PublishSourceDir/<wallet_id>/`, its path is added to the query as
  `file_path`, the query is sent to the SDK and the stored file is removed
  afterwards.

Users are identified by the `X-Lbry-Auth-Token` request header, resolved to a
wallet ID by a *retriever* object with a `retrieve(query)` method. The
client's real address is taken from `X-Forwarded-For` / `X-Real-Ip` (read
right to left, skipping private and non-unicast addresses) before falling back
to the connection's remote address.

## Running the server

```
tvproxy
```

The server binds to the configured `Address` (default `:8080`, i.e. all
interfaces, port 8080) and serves until it is interrupted. If no
configuration file is found, it prints the error and exits with status 1.

## Configuration

Settings are read from a YAML file named `lbrytv.yml` (or `lbrytv.yaml`),
looked up in the directory given by the `LBRYTV_CONFIG_DIR` environment
variable, the directory of the running program, the current directory, `..`,
`../..` and `~/.lbrytv`. Keys are case-insensitive. A missing file is an
error.

The settings with defaults:

| Key                   | Default                           |
|-----------------------|-----------------------------------|
| `Debug`               | `false`                           |
| `Lbrynet`             | `http://localhost:5279/`          |
| `Address`             | `:8080`                           |
| `Host`                | `http://localhost:8080`           |
| `BaseContentURL`      | `http://localhost:8080/content/`  |
| `BlobDownloadTimeout` | `10`                              |
| `AccountsEnabled`     | `false`                           |

Other keys that can be read through `tvproxy.config`: `ProjectURL`,
`InternalAPIHost`, `PublishSourceDir`, `BlobFilesDir`, `ReflectorAddress`,
`SentryDSN`, `MetricsAddress`, `MetricsPath`, `ShouldLogResponses` and a
`Database` section with `Connection`, `DBName` and `Options`.

`Debug`, `Lbrynet` and `AccountsEnabled` can also be set from the environment
as `LW_DEBUG`, `LW_LBRYNET` and `LW_ACCOUNTSENABLED`.

## Using it as a library

```python
from tvproxy.service import Service

service = Service("http://localhost:5279/")
caller = service.new_caller()
caller.set_wallet_id("some-wallet-id")
reply = caller.call(b'{"jsonrpc": "2.0", "method": "account_balance", "id": 1}')
```

`Caller.call` always returns bytes ready to be sent back to the client: either
the SDK's (processed) reply or a JSON-RPC error object.

`tvproxy.api.install_routes(service, retriever)` builds the WSGI application
with all routes. Pass a retriever to authenticate users; with
`AccountsEnabled` on, the proxy route uses it to find the caller's wallet.
`tvproxy.users.TestUserRetriever` returns a fixed wallet ID and is handy in
tests. `tvproxy.config` offers `override` / `restore_overridden` for changing
settings temporarily, and `set_config` for installing a `Config` object of
your own. `tvproxy.ranges` holds an HTTP `Range` parser and `serve_content`,
which serves a seekable stream with single-range support.

## What it does not do

- There is no user store. The `tvproxy` command starts the server without a
  retriever, so every token sent with an upload is rejected and
  wallet-specific methods are refused with "account identificator required".
  To serve authenticated users, build the application with `install_routes`
  and your own retriever.
- There is no content streaming route; `/content/...` URLs written into
  `download_path` are not served by this package.
- There is no metrics server, error reporting service or database migration
  command, even though the matching settings can be read.