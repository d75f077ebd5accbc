"""pyet - Python Embedded Templates

EJS-style templates whose code tags hold Python:

    <% for user in users: %>
      <li><%= user.name %></li>
    <% end %>
"""

from pyet._version import __version__
from pyet.ast import Fragment, FragmentKind, Lexer, tokenize
from pyet.compiler import CompiledTemplate, Compiler, IncludeResolver, compile_template
from pyet.config import RenderOptions, load_options
from pyet.engine import (
    render,
    render_file,
    render_file_to_string,
    render_template,
    render_to_string,
)
from pyet.exceptions import (
    CompileError,
    IncludeError,
    LexError,
    LoaderError,
    PyetError,
    TemplateLoadError,
    TemplateNotFoundError,
)
from pyet.loader import FileLoader
from pyet.stream import RenderStream

__all__ = [
    "__version__",
    # lexing
    "Fragment",
    "FragmentKind",
    "Lexer",
    "tokenize",
    # compiling
    "CompiledTemplate",
    "Compiler",
    "IncludeResolver",
    "compile_template",
    # rendering
    "RenderOptions",
    "RenderStream",
    "FileLoader",
    "load_options",
    "render",
    "render_file",
    "render_file_to_string",
    "render_template",
    "render_to_string",
    # errors
    "CompileError",
    "IncludeError",
    "LexError",
    "LoaderError",
    "PyetError",
    "TemplateLoadError",
    "TemplateNotFoundError",
]
