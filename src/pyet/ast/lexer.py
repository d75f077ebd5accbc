"""Lexer - splits template text into an ordered list of fragments.

Recognized tags:
    <% code %>    statement(s), spliced into the render body
    <%= expr %>   expression, HTML-escaped on output
    <%- expr %>   expression, written as is
    <%# text %>   comment, dropped
    <%%           literal "<%" in text

Tags do not nest. The first "%>" after an opening "<%" closes the tag, so
code cannot contain the sequence "%>" (write it as "%" ">" in a string).
"""

from __future__ import annotations

import logging
import re

from pyet.ast.spec import TAG_MARKERS, Fragment, FragmentKind
from pyet.exceptions import LexError

log = logging.getLogger(__name__)

OPEN_TAG = "<%"
CLOSE_TAG = "%>"
LITERAL_OPEN = "<%%"

# Backslashes right before a line break join the two lines
LINE_CONTINUATION = re.compile(r"\\+\r?\n")
TRAILING_BACKSLASHES = re.compile(r"\\+\Z")
CODE_CONTINUATION = re.compile(r"\\\r?\n\s*\Z")


class Lexer:
    """Tokenizes template text into Fragments, preserving source order."""

    def __init__(self, name: str = "<template>"):
        self.name = name

    def tokenize(self, text: str) -> list[Fragment]:
        """Split text into fragments.

        Args:
            text: Raw template text.

        Returns:
            Fragments in source order. Empty text gives an empty list.

        Raises:
            LexError: If a tag is opened but never closed.
        """
        fragments: list[Fragment] = []
        pending: list[str] = []
        pending_start = 0
        pos = 0
        lines = _LineCounter(text)

        while True:
            start = text.find(OPEN_TAG, pos)
            if start == -1:
                pending.append(text[pos:])
                self._flush_text(fragments, pending, lines.at(pending_start), final=True)
                break

            if text.startswith(LITERAL_OPEN, start):
                pending.append(text[pos:start] + OPEN_TAG)
                pos = start + len(LITERAL_OPEN)
                continue

            pending.append(text[pos:start])
            self._flush_text(fragments, pending, lines.at(pending_start))

            marker = text[start + len(OPEN_TAG) : start + len(OPEN_TAG) + 1]
            kind = TAG_MARKERS.get(marker, FragmentKind.EVALUATE)
            body_start = start + len(OPEN_TAG) + (1 if marker in TAG_MARKERS else 0)

            end = text.find(CLOSE_TAG, body_start)
            if end == -1:
                column = start - text.rfind("\n", 0, start)
                raise LexError("Unterminated tag", lines.at(start), column, self.name)

            fragments.append(
                Fragment(
                    kind=kind,
                    content=_clean_code(text[body_start:end], kind),
                    line=lines.at(start),
                )
            )
            pos = end + len(CLOSE_TAG)
            pending_start = pos

        log.debug(f"Tokenized {self.name}: {len(fragments)} fragments")
        return fragments

    def _flush_text(
        self,
        fragments: list[Fragment],
        pending: list[str],
        line: int,
        final: bool = False,
    ) -> None:
        """Emit buffered literal text as a single TEXT fragment."""
        chunk = LINE_CONTINUATION.sub("", "".join(pending))
        if final:
            chunk = TRAILING_BACKSLASHES.sub("", chunk)
        pending.clear()
        if chunk:
            fragments.append(
                Fragment(
                    kind=FragmentKind.TEXT,
                    content=chunk,
                    line=line,
                )
            )


def _clean_code(raw: str, kind: FragmentKind) -> str:
    """Trim whitespace and a trailing line continuation from tag content."""
    code = CODE_CONTINUATION.sub("", raw).strip()
    if kind in (FragmentKind.INTERPOLATE_ESCAPED, FragmentKind.INTERPOLATE_RAW):
        # "<%= x; %>" is the same as "<%= x %>"
        code = code.rstrip(";").rstrip()
    return code


class _LineCounter:
    """1-based line numbers for offsets visited in increasing order.

    Each stretch of text is scanned once, so lexing stays linear.
    """

    def __init__(self, text: str):
        self.text = text
        self.offset = 0
        self.line = 1

    def at(self, offset: int) -> int:
        self.line += self.text.count("\n", self.offset, offset)
        self.offset = offset
        return self.line


def tokenize(text: str, name: str = "<template>") -> list[Fragment]:
    """Convenience wrapper around Lexer.tokenize."""
    return Lexer(name).tokenize(text)
