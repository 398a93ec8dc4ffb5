"""Regex-script find pattern helpers.

A script stores its find pattern either ``raw`` (pattern and flags
separate) or ``slash`` (a JavaScript-style literal ``/body/flags`` in
``pattern``).  These helpers resolve both into a ``(pattern, flags)``
pair, build the canonical slash literal used by the external format, and
check that a pattern compiles.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from carddraft.model.nodes import FindStyle, RegexFind

ALLOWED_FLAGS = "gimsuy"

_PY_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

# JavaScript named groups "(?<name>" become "(?P<name>"; lookbehinds are left alone.
_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?![=!])")
_JS_NAMED_BACKREF = re.compile(r"\\k<([A-Za-z_][A-Za-z0-9_]*)>")


@dataclass(frozen=True)
class ResolvedFind:
    """A find pattern reduced to body and flags, plus normalization warnings."""

    pattern: str
    flags: str
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class CompileCheck:
    """Outcome of ``try_compile_regex``."""

    ok: bool
    error: str | None = None


def sanitize_flags(flags: str) -> str:
    """Keep only allowed flag letters, each once, in first-seen order."""
    out: list[str] = []
    for ch in flags:
        if ch in ALLOWED_FLAGS and ch not in out:
            out.append(ch)
    return "".join(out)


def find_last_unescaped_slash(text: str) -> int:
    """Return the index of the last ``/`` not preceded by an odd run of backslashes.

    Index 0 is never considered (it is the opening delimiter); ``-1``
    means no closing delimiter was found.
    """
    for i in range(len(text) - 1, 0, -1):
        if text[i] != "/":
            continue
        backslashes = 0
        j = i - 1
        while j >= 0 and text[j] == "\\":
            backslashes += 1
            j -= 1
        if backslashes % 2 == 0:
            return i
    return -1


def resolve_find_regex(find: RegexFind) -> ResolvedFind:
    """Reduce ``find`` to a compilable ``(pattern, flags)`` pair.

    For ``slash`` style the pattern is split at its closing delimiter.
    Invalid flag letters are dropped and reported as warnings; a slash
    pattern that cannot be split falls back to raw handling.
    """
    warnings: list[str] = []

    def _raw(pattern: str) -> ResolvedFind:
        flags = sanitize_flags(find.flags)
        if flags != find.flags:
            warnings.append("flags contained invalid characters and were stripped.")
        return ResolvedFind(pattern=pattern, flags=flags, warnings=tuple(warnings))

    if find.style is not FindStyle.SLASH:
        return _raw(find.pattern)

    source = find.pattern
    if not source.startswith("/"):
        warnings.append("style=slash but the pattern does not start with '/'; treated as raw.")
        return _raw(source)

    last = find_last_unescaped_slash(source)
    if last <= 0:
        warnings.append("could not parse the slash literal; treated as raw.")
        return ResolvedFind(pattern=source[1:], flags=sanitize_flags(find.flags), warnings=tuple(warnings))

    body = source[1:last]
    flags_raw = source[last + 1:]
    flags = sanitize_flags(flags_raw)
    if flags != flags_raw:
        warnings.append("slash literal flags contained invalid characters and were stripped.")
    return ResolvedFind(pattern=body, flags=flags, warnings=tuple(warnings))


def build_find_regex_string(find: RegexFind) -> str:
    """Render ``find`` as the canonical ``/pattern/flags`` literal.

    Already-escaped ``\\/`` sequences are collapsed to ``/`` before every
    ``/`` is escaped again, so export/import/export is stable.
    """
    resolved = resolve_find_regex(find)
    body = resolved.pattern.replace("\\/", "/").replace("/", "\\/")
    return f"/{body}/{resolved.flags}"


def to_python_pattern(pattern: str) -> str:
    """Translate the JavaScript-only named-group syntax to Python's."""
    translated = _JS_NAMED_GROUP.sub("(?P<", pattern)
    return _JS_NAMED_BACKREF.sub(r"(?P=\1)", translated)


def try_compile_regex(pattern: str, flags: str = "") -> CompileCheck:
    """Check that ``pattern`` compiles with ``flags``.

    ``g``, ``u`` and ``y`` have no compile-time meaning in Python and are
    ignored; ``i``, ``m`` and ``s`` map to their ``re`` counterparts.
    """
    py_flags = 0
    for ch in flags:
        py_flags |= _PY_FLAGS.get(ch, 0)
    try:
        re.compile(to_python_pattern(pattern), py_flags)
    except re.error as exc:
        return CompileCheck(ok=False, error=str(exc))
    return CompileCheck(ok=True)
