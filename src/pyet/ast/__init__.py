"""Template lexing - text to fragments."""

from pyet.ast.lexer import Lexer, tokenize
from pyet.ast.spec import Fragment, FragmentKind

__all__ = ["Lexer", "tokenize", "Fragment", "FragmentKind"]
