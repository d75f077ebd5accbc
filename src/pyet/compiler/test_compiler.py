"""Tests for the compiler module."""

import asyncio

import pytest

from pyet.ast.spec import Fragment, FragmentKind
from pyet.compiler import Compiler, compile_template
from pyet.exceptions import CompileError


def run(source, **namespace):
    """Compile source and collect its output."""
    template = compile_template(source)

    async def collect():
        return "".join([chunk async for chunk in template.stream(namespace)])

    return asyncio.run(collect())


def test_compile_fragments_to_body():
    """Each fragment becomes statements of one async generator."""
    fragments = [
        Fragment(FragmentKind.TEXT, "Hello "),
        Fragment(FragmentKind.INTERPOLATE_ESCAPED, "name"),
        Fragment(FragmentKind.COMMENT, "ignored"),
    ]
    template = Compiler().compile(fragments, name="hello.ejs")

    assert template.name == "hello.ejs"
    assert template.filename == "hello.ejs"
    assert "yield 'Hello '" in template.source
    assert "ignored" not in template.source


def test_text_only():
    assert run("normal test") == "normal test"
    assert run("") == ""


def test_for_loop_repeats_enclosed_fragments():
    for n in range(4):
        assert run("<% for i in range(n): %>T<% end %>", n=n) == "T" * n


def test_nested_loops():
    source = "<% for i in range(a): %><% for j in range(b): %>T<% end %><% end %>"
    assert run(source, a=2, b=2) == "T" * 4
    assert run(source, a=3, b=0) == ""


def test_brace_closes_block():
    assert run("<% if param: %>test<% } %>", param=True) == "test"
    assert run("<% if param: %>test<% } %>", param=False) == ""


def test_if_elif_else():
    source = "<% if n > 1: %>many<% elif n == 1: %>one<% else: %>none<% end %>"
    assert run(source, n=5) == "many"
    assert run(source, n=1) == "one"
    assert run(source, n=0) == "none"


def test_try_except_blocks():
    source = "<% try: %><%= 1 // n %><% except ZeroDivisionError: %>div0<% end %>"
    assert run(source, n=1) == "1"
    assert run(source, n=0) == "div0"


def test_empty_block_compiles():
    assert run("<% if True: %><% end %>after") == "after"


def test_multiline_statement_tag():
    source = """<%
total = 0
for n in numbers:
    total += n
%><%= total %>"""
    assert run(source, numbers=[1, 2, 3]) == "6"


def test_block_opened_by_nested_line_closes_with_one_end():
    source = "<% for a in xs:\n  if a: %>x<% end %>."
    assert run(source, xs=[1, 0, 2]) == "xx."


def test_assignment_updates_parameter():
    assert run("<% count = count + 1 %><%= count %>", count=1) == "2"


def test_interpolation_with_comment():
    assert run("<%= value  # shown %>", value="v") == "v"


def test_escaped_and_raw_interpolation():
    assert run("<%= v %>", v="<b>&</b>") == "&lt;b&gt;&amp;&lt;/b&gt;"
    assert run("<%- v %>", v="<b>&</b>") == "<b>&</b>"
    assert run("<%= v %>|<%- v %>", v=None) == "|"
    assert run("<%- v %>", v=42) == "42"


def test_awaitable_values_are_awaited():
    async def later():
        return "<later>"

    assert run("<%= later() %>", later=later) == "&lt;later&gt;"


def test_unclosed_block():
    with pytest.raises(CompileError) as excinfo:
        compile_template("a\n<% for i in x: %>b")
    assert excinfo.value.line == 2


def test_unexpected_end():
    with pytest.raises(CompileError):
        compile_template("a<% end %>")


def test_continuation_without_block():
    with pytest.raises(CompileError):
        compile_template("<% else: %>")


def test_invalid_python_reports_template_line():
    with pytest.raises(CompileError) as excinfo:
        compile_template("first\nsecond\n<% x = = 1 %>")
    assert excinfo.value.line == 3
    assert isinstance(excinfo.value.__cause__, SyntaxError)


def test_empty_expression_tag():
    with pytest.raises(CompileError):
        compile_template("<%= %>")


def test_line_map_points_at_template_lines():
    template = compile_template("a\n<%= x %>")
    assert 2 in template.line_map.values()


def test_multiline_string_in_statement_tag_is_kept():
    assert run('<% s = """a\nb""" %><%- s %>') == "a\nb"
    assert run('<% s = """a\nb""" %><%= s %>') == "a\nb"


def test_multiline_string_in_interpolation_is_kept():
    assert run('<%- """a\nb""" %>') == "a\nb"


def test_multiline_string_inside_block_is_kept():
    source = '<% for _ in range(2): %><% s = """x\ny""" %><%- s %>|<% end %>'
    assert run(source) == "x\ny|x\ny|"


def test_multiline_string_in_multiline_tag_is_kept():
    source = '<%\nfor n in ns:\n    text = """\n  keep\n"""\n%><%- text %>'
    assert run(source, ns=[1]) == "\n  keep\n"


def test_block_opener_with_trailing_comment():
    source = "<% if x:  # note %>yes<% end %>"
    assert run(source, x=True) == "yes"
    assert run(source, x=False) == ""


def test_end_with_semicolon_closes_block():
    assert run("<% if x: %>y<% end; %>", x=True) == "y"
    assert run("<% if x: %>y<% }; %>", x=False) == ""


def test_match_case_clauses():
    source = "<% match n: %>\n<% case 1: %>one<% case 2 | 3: %>few<% case _: %>many<% end %>."
    assert run(source, n=1) == "one."
    assert run(source, n=3) == "few."
    assert run(source, n=9) == "many."


def test_text_between_match_and_case():
    with pytest.raises(CompileError):
        compile_template("<% match n: %>text<% case 1: %>one<% end %>")
