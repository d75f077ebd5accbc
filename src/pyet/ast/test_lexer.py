import time

import pytest

from pyet.ast.lexer import Lexer, tokenize
from pyet.ast.spec import Fragment, FragmentKind
from pyet.exceptions import LexError


def kinds(fragments):
    return [f.kind for f in fragments]


def test_empty_template_has_no_fragments():
    assert tokenize("") == []


def test_plain_text_is_one_fragment():
    assert tokenize("normal test") == [Fragment(FragmentKind.TEXT, "normal test", 1)]


@pytest.mark.parametrize(
    "source, kind",
    [
        ("<% param %>", FragmentKind.EVALUATE),
        ("<%= param %>", FragmentKind.INTERPOLATE_ESCAPED),
        ("<%- param %>", FragmentKind.INTERPOLATE_RAW),
        ("<%# param %>", FragmentKind.COMMENT),
    ],
)
def test_tag_kinds(source, kind):
    assert tokenize(source) == [Fragment(kind, "param", 1)]


@pytest.mark.parametrize(
    "source",
    ["<%=param%>", "<%= param %>", "<%= param; %>", "<%=param;%>", "<%=\n  param\n%>"],
)
def test_spacing_and_semicolon_variants_are_equivalent(source):
    (fragment,) = tokenize(source)
    assert fragment.kind is FragmentKind.INTERPOLATE_ESCAPED
    assert fragment.content == "param"


def test_text_and_tags_keep_source_order():
    fragments = tokenize("<% if x: %>a<% end %>")
    assert kinds(fragments) == [
        FragmentKind.EVALUATE,
        FragmentKind.TEXT,
        FragmentKind.EVALUATE,
    ]
    assert [f.content for f in fragments] == ["if x:", "a", "end"]


def test_fragment_lines():
    fragments = tokenize("a\n<%= x %>\nb")
    assert [f.line for f in fragments] == [1, 2, 2]


def test_unterminated_tag_reports_position():
    with pytest.raises(LexError) as excinfo:
        Lexer("page.ejs").tokenize("ab\n  <%= x")
    assert excinfo.value.line == 2
    assert excinfo.value.column == 3
    assert "page.ejs" in str(excinfo.value)


def test_first_close_tag_ends_the_tag():
    fragments = tokenize("<%= '%>' %>")
    assert fragments[0].content == "'"
    assert fragments[1] == Fragment(FragmentKind.TEXT, "' %>", 1)


def test_literal_open_tag():
    assert tokenize("a <%% b") == [Fragment(FragmentKind.TEXT, "a <% b", 1)]


def test_backslash_before_newline_joins_lines():
    assert tokenize("a\\\nb")[0].content == "ab"
    assert tokenize("a\\\r\nb")[0].content == "ab"


def test_trailing_backslashes_removed_after_tag():
    fragments = tokenize("<%= param %>console.log(`${param}`)\\\\")
    assert fragments[1].content == "console.log(`${param}`)"


def test_backslash_in_middle_of_line_kept():
    assert tokenize("a\\b")[0].content == "a\\b"


def test_code_line_continuation_trimmed():
    (fragment,) = tokenize("<%= x \\\n%>")
    assert fragment.content == "x"


def test_large_template_lexes_in_linear_time():
    source = ("line\n" * 20 + "<%= x %>") * 8500
    started = time.perf_counter()
    fragments = tokenize(source)
    elapsed = time.perf_counter() - started

    assert len(fragments) == 2 * 8500
    assert fragments[-1].line == 20 * 8500 + 1
    assert elapsed < 3
