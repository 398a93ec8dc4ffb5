"""Addressable read protocol.

Exposes the Draft as a virtual file system: path parsing, resolution,
bounded reads with pagination, index and full text and the discovery
summary.
"""
from __future__ import annotations

from carddraft.read.full_text import build_auto_full_text, build_full_text, estimate_tokens
from carddraft.read.index_text import build_read_index_text
from carddraft.read.paths import (
    DEFAULT_ROOT_NAME,
    normalize_path_segment,
    parse_dot_path,
    parse_file_path,
    parse_index_segment,
    pick_root_name,
)
from carddraft.read.protocol import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_READS,
    VCARD_READ_PREFIX,
    VCARD_READ_RESULT_PREFIX,
    ReadDisplayMessage,
    ReadRequest,
    ReadRequestResult,
    build_read_item,
    build_read_request_text,
    build_read_result,
    build_read_result_text,
    is_read_display_message_text,
    normalize_read_request,
    parse_read_display_message,
    read_one,
)
from carddraft.read.resolver import (
    Resolved,
    build_readable_snapshot,
    read_index_text,
    resolve_file_content,
)
from carddraft.read.summary import (
    FileNode,
    build_file_system_summary,
    build_file_tree,
    build_unique_names,
)

__all__ = [
    "DEFAULT_ROOT_NAME",
    "normalize_path_segment",
    "parse_dot_path",
    "parse_file_path",
    "parse_index_segment",
    "pick_root_name",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "MAX_READS",
    "VCARD_READ_PREFIX",
    "VCARD_READ_RESULT_PREFIX",
    "ReadDisplayMessage",
    "ReadRequest",
    "ReadRequestResult",
    "build_read_item",
    "build_read_request_text",
    "build_read_result",
    "build_read_result_text",
    "is_read_display_message_text",
    "normalize_read_request",
    "parse_read_display_message",
    "read_one",
    "Resolved",
    "build_readable_snapshot",
    "read_index_text",
    "resolve_file_content",
    "build_read_index_text",
    "build_full_text",
    "build_auto_full_text",
    "estimate_tokens",
    "FileNode",
    "build_file_system_summary",
    "build_file_tree",
    "build_unique_names",
]
