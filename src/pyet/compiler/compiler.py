"""Compiler - transforms a fragment list into an executable template body.

The body is the source of a single ``async def`` generator: literal text and
interpolations become ``yield`` statements, and code from ``<% %>`` tags is
spliced in between them, so a loop opened in one tag repeats every fragment
up to the tag that closes it.

Python blocks are indentation based, so block structure is tracked here:

    <% for item in items: %>      a line ending in ":" opens a block
    <% if item: %>...<% else: %>  else/elif/except/finally continue it
    <% end %>                     "end" (or "}") closes it

match blocks take their case clauses the way if takes elif, and one end
closes the whole statement:

    <% match x: %><% case 1: %>one<% case _: %>other<% end %>

Only whitespace may sit between a match tag and its first case.

Code is tokenized before it is indented, so lines continuing a multi-line
string literal are spliced untouched and a trailing comment does not hide
the ":" of a block opener.

Names assigned by template code are declared global in the body, so
assignments land in the render's namespace as they would in a script.
"""

from __future__ import annotations

import ast
import io
import logging
import os
import re
import tokenize
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pyet.ast.lexer import Lexer
from pyet.ast.spec import Fragment, FragmentKind
from pyet.compiler.spec import (
    BODY_FUNCTION,
    ESCAPE_HELPER,
    RAW_HELPER,
    VALUE_HELPER,
    CompiledTemplate,
)
from pyet.exceptions import CompileError

log = logging.getLogger(__name__)

INDENT = "    "
END_MARKERS = {"end", "}"}
CONTINUATION = re.compile(r"^(else|elif|except|finally)\b")
RESERVED_NAMES = {BODY_FUNCTION, ESCAPE_HELPER, RAW_HELPER, VALUE_HELPER}

# Block kinds; match and case are soft keywords, so they are recognized by tokens
BLOCK = "block"
MATCH = "match"
CASE = "case"

# Tokens that never decide whether a line opens a block
LAYOUT_TOKENS = {
    tokenize.NL,
    tokenize.COMMENT,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENDMARKER,
}

# Lines emitted before the first fragment: the def and the global declaration
HEADER_LINES = 2


@dataclass
class _Block:
    """An open block: where to emit continuation clauses, where to return on end."""

    restore: str  # indent to return to after "end"
    clause: str  # indent of the line that opened the block
    line: int  # template line of the opener
    kind: str = BLOCK


@dataclass
class _TagCode:
    """Code of one <% %> tag, split into lines indented relative to its first."""

    lines: List[str]
    verbatim: Set[int] = field(default_factory=set)  # lines inside a string literal
    head: str = ""  # first token
    head_opens: bool = False  # first line ends with ":"
    opener: Optional[int] = None  # first line of a trailing block opener
    keyword: str = ""  # first token of that opener


class Compiler:
    """Compiles Fragments into a CompiledTemplate."""

    def compile(
        self, fragments: List[Fragment], name: str = "<template>"
    ) -> CompiledTemplate:
        """Compile fragments into an executable body.

        Args:
            fragments: Fragments in source order, as produced by the Lexer.
            name: Template name, used as the code filename in tracebacks.

        Returns:
            CompiledTemplate ready to stream.

        Raises:
            CompileError: On unbalanced blocks or invalid Python in a tag.
        """
        self._name = name
        self._lines: List[Tuple[str, int]] = []  # (source line, template line)
        self._indent = INDENT
        self._blocks: List[_Block] = []

        for fragment in fragments:
            self._emit_fragment(fragment)

        if self._blocks:
            block = self._blocks[-1]
            raise CompileError("Block is never closed with <% end %>", block.line, name)

        # Keeps the body an async generator even with no output
        self._lines.append((f"{INDENT}return", 0))
        self._lines.append((f"{INDENT}yield ''", 0))

        body_source = "\n".join(line for line, _ in self._lines)
        assigned = self._collect_assigned(body_source)
        header = [
            f"async def {BODY_FUNCTION}():",
            f"{INDENT}global {', '.join(sorted(assigned))}" if assigned else f"{INDENT}pass",
        ]
        source = "\n".join(header) + "\n" + body_source + "\n"

        line_map: Dict[int, int] = {}
        for index, (_, template_line) in enumerate(self._lines, start=HEADER_LINES + 1):
            if template_line:
                line_map[index] = template_line

        try:
            code = compile(source, name, "exec")
        except SyntaxError as exc:
            raise CompileError(
                f"Invalid Python in template: {exc.msg}",
                line_map.get(exc.lineno or 0),
                name,
            ) from exc

        log.debug(f"Compiled {name}: {len(fragments)} fragments, {len(self._lines)} lines")
        return CompiledTemplate(
            name=name,
            fragments=list(fragments),
            source=source,
            code=code,
            line_map=line_map,
        )

    def _emit_fragment(self, fragment: Fragment) -> None:
        """Translate one fragment into body lines."""
        kind = fragment.kind
        if self._blocks and self._blocks[-1].kind == MATCH:
            if kind is FragmentKind.COMMENT or (
                kind is FragmentKind.TEXT and not fragment.content.strip()
            ):
                return
            if kind is not FragmentKind.EVALUATE:
                raise CompileError(
                    "Only a case clause may follow match", fragment.line, self._name
                )

        if kind is FragmentKind.TEXT:
            self._emit(f"yield {fragment.content!r}", fragment.line)
        elif kind is FragmentKind.INTERPOLATE_ESCAPED:
            self._emit_interpolation(ESCAPE_HELPER, fragment)
        elif kind is FragmentKind.INTERPOLATE_RAW:
            self._emit_interpolation(RAW_HELPER, fragment)
        elif kind is FragmentKind.EVALUATE:
            self._emit_code(fragment)
        # COMMENT contributes nothing

    def _emit_interpolation(self, helper: str, fragment: Fragment) -> None:
        if not fragment.content:
            raise CompileError("Empty expression tag", fragment.line, self._name)
        # Inside the parentheses indentation is free, so the expression is kept
        # as written; it may span lines or end in a comment
        self._emit(f"yield {helper}(await {VALUE_HELPER}((", fragment.line)
        for offset, line in enumerate(fragment.content.split("\n")):
            self._lines.append((line, fragment.line + offset))
        self._emit(")))", fragment.line)

    def _emit_code(self, fragment: Fragment) -> None:
        """Splice statements from a <% %> tag, tracking block structure."""
        code = fragment.content
        if not code:
            return

        if code.rstrip(";").rstrip() in END_MARKERS:
            if not self._blocks:
                raise CompileError("Unexpected <% end %> with no open block", fragment.line, self._name)
            self._indent = self._blocks.pop().restore
            return

        try:
            tag = _split_code(code)
        except (tokenize.TokenError, SyntaxError) as exc:
            raise CompileError(
                f"Invalid Python in template: {exc.args[0]}", fragment.line, self._name
            ) from exc

        top = self._blocks[-1] if self._blocks else None
        is_case = tag.head == CASE and tag.head_opens
        restore = self._indent
        if is_case and top is not None and top.kind == MATCH:
            # First case: stays in the match body and takes over its end
            restore = self._blocks.pop().restore
        elif CONTINUATION.match(tag.lines[0]) or (
            is_case and top is not None and top.kind == CASE
        ):
            if top is None:
                raise CompileError(
                    f"'{tag.lines[0].strip()}' without an open block", fragment.line, self._name
                )
            block = self._blocks.pop()
            restore = block.restore
            self._indent = block.clause

        for offset, line in enumerate(tag.lines):
            if offset in tag.verbatim:
                self._lines.append((line, fragment.line + offset))
            elif line.strip():
                self._emit(line, fragment.line + offset)

        if tag.opener is None:
            self._indent = restore
            return

        opener = tag.lines[tag.opener]
        clause = self._indent + opener[: len(opener) - len(opener.lstrip())]
        kind = tag.keyword if tag.keyword in (MATCH, CASE) else BLOCK
        self._blocks.append(
            _Block(restore=restore, clause=clause, line=fragment.line + tag.opener, kind=kind)
        )
        self._indent = clause + INDENT
        if kind != MATCH:
            self._emit("pass", fragment.line + len(tag.lines) - 1)

    def _emit(self, line: str, template_line: int) -> None:
        self._lines.append((f"{self._indent}{line}", template_line))

    def _collect_assigned(self, body_source: str) -> Set[str]:
        """Names bound by template code at body level."""
        wrapped = f"async def {BODY_FUNCTION}():\n{body_source}\n"
        try:
            tree = ast.parse(wrapped, filename=self._name)
        except SyntaxError as exc:
            template_line = None
            if exc.lineno is not None and 1 < exc.lineno <= len(self._lines) + 1:
                template_line = self._lines[exc.lineno - 2][1] or None
            raise CompileError(
                f"Invalid Python in template: {exc.msg}", template_line, self._name
            ) from exc

        names: Set[str] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
                names.add(node.id)
        return names - RESERVED_NAMES


def _split_code(code: str) -> _TagCode:
    """Split tag code into lines and find the block it opens, if any.

    Raises:
        tokenize.TokenError, SyntaxError: If the code cannot be tokenized.
    """
    verbatim, head_opens = _scan_strings(code)
    tag = _TagCode(
        lines=_normalize_indent(code.split("\n"), verbatim, head_opens),
        verbatim=verbatim,
        head_opens=head_opens,
    )

    start: Optional[tokenize.TokenInfo] = None  # first token of the current logical line
    last: Optional[Tuple[tokenize.TokenInfo, tokenize.TokenInfo]] = None
    for token in _tokens("\n".join(tag.lines)):
        if token.type in LAYOUT_TOKENS:
            continue
        if token.type == tokenize.NEWLINE:
            start = None
            continue
        if start is None:
            start = token
            if not tag.head:
                tag.head = token.string
        last = (token, start)

    if last is not None and _is_colon(last[0]):
        tag.opener = last[1].start[0] - 1
        tag.keyword = last[1].string
    return tag


def _scan_strings(code: str) -> Tuple[Set[int], bool]:
    """Find the lines that continue a multi-line string literal.

    The code is tokenized inside brackets, where its own indentation does not
    matter. Also reports whether the first line ends with ":".
    """
    verbatim: Set[int] = set()
    starts: List[int] = []  # rows of open f-strings
    head_last: Optional[tokenize.TokenInfo] = None
    # Row 1 is the bracket; code line i sits on row i + 2
    for token in _tokens(f"(\n{code}\n)"):
        if token.start[0] == 2 and token.type not in LAYOUT_TOKENS:
            head_last = token

        kind = tokenize.tok_name[token.type]
        if kind.endswith("STRING_START"):
            starts.append(token.start[0])
            continue
        if kind.endswith("STRING_END"):
            first = starts.pop()
        elif token.type == tokenize.STRING:
            first = token.start[0]
        else:
            continue
        verbatim.update(range(first - 1, token.end[0] - 1))

    return verbatim, head_last is not None and _is_colon(head_last)


def _normalize_indent(lines: List[str], verbatim: Set[int], nest: bool) -> List[str]:
    """Indent tag lines relative to the first line.

    The first line starts right after "<%", so its original indentation is
    gone; the remaining lines are dedented as a group, and nested under the
    first line when it opens a block and they are not indented already.
    Lines in ``verbatim`` are string content and stay as written.
    """
    tail = [i for i in range(1, len(lines)) if i not in verbatim and lines[i].strip()]
    if not tail:
        return lines
    margin = os.path.commonprefix([_leading(lines[i]) for i in tail])
    nested = nest and not _leading(lines[tail[0]])[len(margin) :]

    result = [lines[0]]
    for index, line in enumerate(lines[1:], start=1):
        if index in verbatim:
            result.append(line)
        elif not line.strip():
            result.append("")
        else:
            line = line[len(margin) :]
            result.append(INDENT + line if nested else line)
    return result


def _leading(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _is_colon(token: tokenize.TokenInfo) -> bool:
    return token.type == tokenize.OP and token.string == ":"


def _tokens(source: str):
    return tokenize.generate_tokens(io.StringIO(source).readline)


def compile_template(text: str, name: str = "<template>") -> CompiledTemplate:
    """Lex and compile template text in one step."""
    fragments = Lexer(name).tokenize(text)
    return Compiler().compile(fragments, name=name)
