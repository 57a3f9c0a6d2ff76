"""Conversions between filesystem paths and ``file://`` URIs."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

_LOCAL_HOSTS = frozenset({"", "localhost"})


def path_to_uri(path: str | os.PathLike[str]) -> str:
    """Return the ``file://`` URI for an absolute filesystem path.

    Raises ValueError when the path is not absolute.
    """
    candidate = Path(path)
    if not candidate.is_absolute():
        raise ValueError(f"cannot build a file URI from relative path: {path!s}")
    return candidate.as_uri()


def uri_to_path(uri: str) -> Path:
    """Return the filesystem path named by a local ``file://`` URI.

    Raises ValueError for other schemes and for remote hosts.
    """
    parts = urlsplit(uri)
    if parts.scheme.lower() != "file":
        raise ValueError(f"not a file URI: {uri}")
    if parts.netloc.lower() not in _LOCAL_HOSTS:
        raise ValueError(f"file URI names a remote host: {uri}")
    if os.name == "nt":
        return Path(url2pathname(parts.path))
    return Path(unquote(parts.path))


def uri_display_path(uri: str) -> str:
    """Return the local path of a URI if it has one, otherwise the URI itself."""
    try:
        return str(uri_to_path(uri))
    except ValueError:
        return uri


def uri_path(uri: str) -> str:
    """Return the path component of a URI exactly as it is written."""
    return urlsplit(uri).path