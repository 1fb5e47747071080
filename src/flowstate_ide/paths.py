"""Decoding of editor-stored file references into native filesystem paths."""

from __future__ import annotations

import os
import re
from urllib.parse import unquote

_FILE_SCHEME = "file://"
_OTHER_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_DRIVE_SEGMENT = re.compile(r"^/([A-Za-z]):")


def decode_uri(uri: str, *, windows: bool | None = None) -> str:
    """Decode a stored file reference into a native path.

    Strips the ``file://`` prefix, percent-decodes the remainder and, when
    ``windows`` is true, rewrites ``/C:/x`` into ``C:\\x``. Returns ``""`` for
    anything that cannot be decoded into a local path (empty input, non-file
    schemes, malformed escapes, invalid UTF-8). Never raises.
    """

    if not isinstance(uri, str) or not uri.strip():
        return ""
    if windows is None:
        windows = os.name == "nt"

    text = uri.strip()
    if text[: len(_FILE_SCHEME)].lower() == _FILE_SCHEME:
        text = text[len(_FILE_SCHEME) :]
        if not text.startswith("/"):
            host, _, rest = text.partition("/")
            # file://localhost/x is the same as file:///x; any other host is a share
            text = "/" + rest if host.lower() == "localhost" else "//" + text
    elif _OTHER_SCHEME.match(text):
        return ""

    if _BAD_ESCAPE.search(text):
        return ""
    try:
        path = unquote(text, errors="strict")
    except UnicodeDecodeError:
        return ""
    if not path or "\x00" in path:
        return ""

    if windows:
        path = _DRIVE_SEGMENT.sub(r"\1:", path)
        path = path.replace("/", "\\")
    return path


__all__ = ["decode_uri"]
