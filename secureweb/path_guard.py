# secureweb/path_guard.py

"""
Path canonicalization guard for user-supplied file references.

`resolve_safe` turns an untrusted, possibly percent-encoded relative reference
into an absolute path that is guaranteed to sit inside a fixed base directory.
The steps run in a fixed order, each one closing a known bypass class:

1. Reject missing input.
2. Percent-decode exactly once (never iteratively; `%252e` stays `%2e`).
3. Reject `..` segments outright (strict mode), or normalize lexically and
   strip any leading run of `..` segments (lenient mode).
4. Join onto the base directory.
5. Check containment segment by segment, so `/srv/files-secret` never passes
   for `/srv/files`.
6. Optionally check the symlink-resolved path against the real base.

Both `/` and `\\` are treated as separators. Absolute references, including
Windows drive and UNC forms, are rejected rather than joined.

Every rejection raises `TraversalError`; callers map its `kind` to a response.
"""

import os
import posixpath
import re
from pathlib import Path
from typing import Union
from urllib.parse import unquote_to_bytes

from secureweb.exceptions import TraversalError, TraversalErrorKind

# A "%" not followed by two hex digits is a malformed escape
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_LEADING_PARENTS = re.compile(r"^(?:\.\.(?:/|$))+")
# "C:", "C:/x" (and "C:\x" once separators are unified); "a:notes.txt" is a plain name
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:(?:/|$)")


def decode_once(raw: str) -> str:
    """
    Percent-decode `raw` a single time, strictly.

    Raises:
        TraversalError(INVALID_ENCODING): On a malformed escape, on bytes
            that are not valid UTF-8, or on an embedded NUL.
    """
    if _BAD_ESCAPE.search(raw):
        raise TraversalError(TraversalErrorKind.INVALID_ENCODING)
    try:
        decoded = unquote_to_bytes(raw).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TraversalError(TraversalErrorKind.INVALID_ENCODING) from exc
    if "\x00" in decoded:
        raise TraversalError(TraversalErrorKind.INVALID_ENCODING)
    return decoded


def is_within(path: Path, base: Path) -> bool:
    """Segment-aligned containment: `base` itself, or one of its descendants."""
    return path == base or base in path.parents


def _is_absolute_reference(reference: str) -> bool:
    return reference.startswith("/") or bool(_WINDOWS_DRIVE.match(reference))


def resolve_safe(
    base_dir: Union[str, Path],
    user_input: str | None,
    *,
    verify_symlinks: bool = True,
    allow_parent_segments: bool = False,
) -> Path:
    """
    Resolve `user_input` against `base_dir` and return the canonical path.

    Args:
        base_dir: Absolute directory every result must stay inside.
        user_input: Untrusted reference, possibly percent-encoded.
        verify_symlinks: Also require the real (symlink-resolved) path to be
            inside the real base directory. Touches the filesystem.
        allow_parent_segments: Accept `..` segments that collapse back inside
            the base (leading ones are stripped). Off by default, which
            rejects any reference containing a `..` segment.

    Returns:
        Path: `base_dir` joined with a normalized relative path. A reference
        of `"."` yields `base_dir` itself; callers decide whether directory
        results are acceptable.

    Raises:
        TraversalError: With kind MISSING_INPUT, INVALID_ENCODING or OUTSIDE_BASE.
        ValueError: If `base_dir` is not absolute (a configuration bug).
    """
    base = Path(base_dir)
    if not base.is_absolute():
        raise ValueError("base_dir must be an absolute path")

    # 1. Missing input
    if not user_input:
        raise TraversalError(TraversalErrorKind.MISSING_INPUT)

    # 2. Decode exactly once
    reference = decode_once(user_input).replace("\\", "/")

    if _is_absolute_reference(reference):
        raise TraversalError(TraversalErrorKind.OUTSIDE_BASE)

    if not allow_parent_segments and ".." in reference.split("/"):
        raise TraversalError(TraversalErrorKind.OUTSIDE_BASE)

    # 3. Lexical normalization, then drop leading parent segments
    normalized = posixpath.normpath(reference) if reference else "."
    normalized = _LEADING_PARENTS.sub("", normalized) or "."

    # 4. Join; absolute components were rejected above, so nothing can replace the base
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    candidate = base.joinpath(*parts)

    # 5. Containment, both via relpath and segment-aligned prefix
    relative = os.path.relpath(candidate, base)
    if (
        relative == os.pardir
        or relative.startswith(os.pardir + os.sep)
        or os.path.isabs(relative)
        or not is_within(candidate, base)
    ):
        raise TraversalError(TraversalErrorKind.OUTSIDE_BASE)

    # 6. Symlink escape
    if verify_symlinks:
        real_base = Path(os.path.realpath(base))
        real_candidate = Path(os.path.realpath(candidate))
        if not is_within(real_candidate, real_base):
            raise TraversalError(TraversalErrorKind.OUTSIDE_BASE)

    return candidate
