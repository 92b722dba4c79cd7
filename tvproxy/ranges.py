"""HTTP Range parsing and ranged content serving."""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import BinaryIO, Mapping

from werkzeug.datastructures import Headers
from werkzeug.wrappers import Request, Response

MAX_BLOB_SIZE = 2 * 1024 * 1024

_INT_RE = re.compile(r"[+-]?\d+")


class RangeError(ValueError):
    """The Range header is malformed."""


class NoOverlapError(RangeError):
    """None of the requested ranges overlap the content."""


ERR_SEEKER = "seeker can't seek"


@dataclass(frozen=True)
class HTTPRange:
    start: int
    length: int

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.start + self.length - 1}/{size}"


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise RangeError("invalid range")
    return int(text)


def parse_range(header: str, size: int) -> list[HTTPRange]:
    """Parse a Range header as per RFC 7233."""
    if not header:
        return []
    prefix = "bytes="
    if not header.startswith(prefix):
        raise RangeError("invalid range")
    ranges: list[HTTPRange] = []
    no_overlap = False
    for part in header[len(prefix):].split(","):
        part = part.strip()
        if not part:
            continue
        if "-" not in part:
            raise RangeError("invalid range")
        start_s, _, end_s = part.partition("-")
        start_s, end_s = start_s.strip(), end_s.strip()
        if not start_s:
            suffix = min(_parse_int(end_s), size)
            start = size - suffix
            ranges.append(HTTPRange(start, size - start))
            continue
        start = _parse_int(start_s)
        if start < 0:
            raise RangeError("invalid range")
        if start >= size:
            no_overlap = True
            continue
        if not end_s:
            ranges.append(HTTPRange(start, size - start))
            continue
        end = _parse_int(end_s)
        if start > end:
            raise RangeError("invalid range")
        end = min(end, size - 1)
        ranges.append(HTTPRange(start, end - start + 1))
    if no_overlap and not ranges:
        raise NoOverlapError("invalid range: failed to overlap")
    return ranges


def sum_ranges_size(ranges) -> int:
    return sum(r.length for r in ranges)


def copy_n(dst: BinaryIO, src: BinaryIO, n: int) -> int:
    """Copy exactly n bytes; raises EOFError (with .written) if src ends early."""
    written = 0
    while written < n:
        chunk = src.read(min(MAX_BLOB_SIZE, n - written))
        if not chunk:
            break
        dst.write(chunk)
        written += len(chunk)
    if written < n:
        err = EOFError(f"copied {written} of {n} bytes")
        err.written = written
        raise err
    return written


def error_response(message: str, code: int) -> Response:
    return Response(
        message + "\n",
        status=code,
        headers={"X-Content-Type-Options": "nosniff"},
        content_type="text/plain; charset=utf-8",
    )


def serve_content(
    request: Request, content: BinaryIO, headers: Mapping[str, str] | None = None
) -> Response:
    """Serve a seekable stream honouring a single-range Range header."""
    try:
        size = content.seek(0, io.SEEK_END)
        content.seek(0, io.SEEK_SET)
    except (OSError, ValueError):
        return error_response(ERR_SEEKER, 500)

    out = Headers(dict(headers or {}))
    code = 200
    send_size = size
    if size >= 0:
        try:
            ranges = parse_range(request.headers.get("Range", ""), size)
        except NoOverlapError as exc:
            resp = error_response(str(exc), 416)
            resp.headers["Content-Range"] = f"bytes */{size}"
            return resp
        except RangeError as exc:
            return error_response(str(exc), 416)
        if sum_ranges_size(ranges) > size:
            ranges = []
        if len(ranges) == 1:
            ra = ranges[0]
            try:
                content.seek(ra.start, io.SEEK_SET)
            except (OSError, ValueError) as exc:
                return error_response(str(exc), 416)
            send_size = ra.length
            code = 206
            out["Content-Range"] = ra.content_range(size)
        out["Accept-Ranges"] = "bytes"
        if not out.get("Content-Encoding"):
            out["Content-Length"] = str(send_size)

    body = b""
    if request.method != "HEAD":
        buf = io.BytesIO()
        try:
            copy_n(buf, content, send_size)
        except EOFError:
            pass
        body = buf.getvalue()
    return Response([body], status=code, headers=out)