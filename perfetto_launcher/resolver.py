"""
Map a request path to a file inside the dist directory.

Containment is checked only after both the candidate and the root have been
canonicalized (symlinks and `..` resolved against the real filesystem), so
neither `../` sequences nor symlinks can reach files outside the root.
"""
from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote

ENTRY_FILE = "index.html"


class ResolveError(Exception):
    status = 500
    message = "Internal Error"


class NotFound(ResolveError):
    status = 404
    message = "Not Found"


class Forbidden(ResolveError):
    status = 403
    message = "Forbidden"


class InternalError(ResolveError):
    status = 500
    message = "Internal Error"


def clean_request_path(request_path: str) -> str:
    """Drop query string / fragment, percent-decode, strip leading slashes."""
    path = request_path.split("?", 1)[0].split("#", 1)[0]
    return unquote(path).lstrip("/")


def resolve(root: str | Path, request_path: str, entry_file: str = ENTRY_FILE) -> Path:
    """
    Resolve request_path under root and return the canonical file path.

    Raises NotFound if the target cannot be canonicalized, InternalError if
    the root cannot, and Forbidden if the target lies outside the root.
    """
    rel = clean_request_path(request_path) or entry_file
    candidate = Path(root) / rel

    try:
        canonical = candidate.resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        # missing file, broken symlink, symlink loop, embedded NUL
        raise NotFound(rel) from None

    try:
        root_canonical = Path(root).resolve(strict=True)
    except (OSError, RuntimeError, ValueError):
        raise InternalError(str(root)) from None

    # component-wise: "dist-evil" is not inside "dist"
    if not canonical.is_relative_to(root_canonical):
        raise Forbidden(rel)

    return canonical
