"""
L1 Domain — Marked block text transforms (pure, no I/O).

A marked block is a comment line (the marker) immediately followed
by a directive line, appended to a shell rc file.  Earlier versions
of the installer sometimes left only one half of the pair behind,
so removal also recognises an orphan marker and an orphan directive.

Matching is lenient: markers compare case- and whitespace-insensitively;
directives additionally treat ``.`` as ``source`` and ``$HOME`` /
``${HOME}`` as ``~``, and ignore quoting.
"""

from __future__ import annotations

import re

_WS_RE = re.compile(r"\s+")
_HOME_RE = re.compile(r"\$\{HOME\}|\$HOME")


def normalize_marker(line: str) -> str:
    return _WS_RE.sub(" ", line.strip()).lower()


def normalize_directive(line: str) -> str:
    """Canonical form of a ``source <path>`` line."""
    text = _WS_RE.sub(" ", line.strip())
    text = text.replace('"', "").replace("'", "")
    if text.startswith(". "):
        text = "source " + text[2:]
    return _HOME_RE.sub("~", text)


def _is_marker(line: str, marker: str) -> bool:
    return normalize_marker(line) == normalize_marker(marker)


def _is_directive(line: str, directive: str) -> bool:
    return normalize_directive(line) == normalize_directive(directive)


def has_block(text: str, marker: str, directive: str) -> bool:
    """True when ``text`` sources the directive.

    That is the marker directly followed by the directive, or a bare
    directive left by an earlier version.  An orphan marker alone
    does not count.
    """
    return any(_is_directive(line, directive) for line in text.splitlines())


def has_remnant(text: str, marker: str, directive: str) -> bool:
    """True when either half of the block is present in ``text``."""
    for line in text.splitlines():
        if _is_marker(line, marker) or _is_directive(line, directive):
            return True
    return False


def add_block(text: str, marker: str, directive: str) -> tuple[str, bool]:
    """Append the block unless the directive is already present.

    An orphan marker is repaired in place by inserting the directive
    right after it.

    Returns:
        ``(new_text, changed)``.
    """
    if has_block(text, marker, directive):
        return text, False

    lines = text.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if _is_marker(line, marker):
            if not line.endswith("\n"):
                lines[i] = line + "\n"
            lines.insert(i + 1, f"{directive}\n")
            return "".join(lines), True

    parts = text
    if parts and not parts.endswith("\n"):
        parts += "\n"
    if parts.strip():
        parts += "\n"
    parts += f"{marker}\n{directive}\n"
    return parts, True


def remove_block(text: str, marker: str, directive: str) -> tuple[str, bool]:
    """Remove the block, orphan markers and orphan directives.

    Trailing blank lines at EOF are collapsed afterwards so repeated
    add/remove cycles never grow the file.

    Returns:
        ``(new_text, changed)``.
    """
    lines = text.splitlines()
    kept: list[str] = []
    changed = False

    i = 0
    while i < len(lines):
        line = lines[i]
        if _is_marker(line, marker):
            changed = True
            if i + 1 < len(lines) and _is_directive(lines[i + 1], directive):
                i += 2
            else:
                i += 1
            continue
        if _is_directive(line, directive):
            changed = True
            i += 1
            continue
        kept.append(line)
        i += 1

    if not changed:
        return text, False

    while kept and not kept[-1].strip():
        kept.pop()
    return ("\n".join(kept) + "\n") if kept else "", True
