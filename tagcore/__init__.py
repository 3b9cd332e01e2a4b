"""
tagcore - tag encoding primitives

Domain-agnostic primitives shared by every tag codec:
token splitting and rebuilding, value coercion, marker blocks and date keys.
"""
from tagcore.tags import (
    split_tokens,
    partition_tokens,
    read_key_value,
    build_token,
    rebuild_tokens,
    patch_fields,
)
from tagcore.coerce import (
    parse_bool,
    parse_number,
    safe_trim,
    round_money,
    format_number,
    encode_value,
    decode_value,
)
from tagcore.blocks import BlockMarkers, BlockMatch, find_first_block

__all__ = [
    "split_tokens",
    "partition_tokens",
    "read_key_value",
    "build_token",
    "rebuild_tokens",
    "patch_fields",
    "parse_bool",
    "parse_number",
    "safe_trim",
    "round_money",
    "format_number",
    "encode_value",
    "decode_value",
    "BlockMarkers",
    "BlockMatch",
    "find_first_block",
]
