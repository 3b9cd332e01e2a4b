"""
tagcore/tags.py

Generic tag-line primitives.

A tag field is an ordered list of string tokens. Each token is either a
managed tag (``PREFIX`` + ``KEY=VALUE``) owned by one codec, or free text.
Codecs partition tokens by their prefix, rewrite what they own and put
everything else back untouched.
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

_LINE_BREAK = re.compile(r"\r?\n")

TokenSource = Union[None, str, Sequence[Any]]


def split_tokens(value: TokenSource) -> List[str]:
    """
    Normalize a tag field into an ordered list of non-blank tokens.

    Args:
        value: None, a newline separated string or a sequence of strings

    Returns:
        Tokens in their original order; non-strings and blanks are dropped
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = _LINE_BREAK.split(value)
    else:
        items = value
    return [item for item in items if isinstance(item, str) and item.strip()]


def partition_tokens(tokens: Iterable[str], prefix: str) -> Tuple[List[str], List[str]]:
    """Split tokens into (owned, foreign) by prefix, preserving order."""
    owned: List[str] = []
    foreign: List[str] = []
    for token in tokens:
        (owned if token.startswith(prefix) else foreign).append(token)
    return owned, foreign


def read_key_value(token: str, prefix: str) -> Optional[Tuple[str, str]]:
    """
    Read ``PREFIX KEY=VALUE``.

    The value keeps everything after the first ``=``, so values may contain
    ``=`` themselves. Tokens without ``=`` return None.
    """
    if not token.startswith(prefix):
        return None
    body = token[len(prefix):]
    key, sep, raw = body.partition("=")
    if not sep:
        return None
    return key.strip().upper(), raw


def build_token(prefix: str, key: str, value: Any) -> str:
    return f"{prefix}{key}={value}"


def rebuild_tokens(free: Iterable[str], unknown: Iterable[str], managed: Iterable[str]) -> List[str]:
    """Free text first, then unknown managed tokens, then freshly written ones."""
    return [*free, *unknown, *managed]


def patch_fields(patch: Any) -> Dict[str, Any]:
    """
    Turn a patch into a dict of the fields the caller actually supplied.

    Absent keys mean "keep the current value", while an explicit None means
    "clear". pydantic models are read with ``exclude_unset`` so the same
    rule holds for schema instances.
    """
    if patch is None:
        return {}
    if hasattr(patch, "model_dump"):
        return patch.model_dump(exclude_unset=True)
    return dict(patch)
