"""pyet Compiler - transforms fragments into executable template bodies."""

from pyet.compiler.compiler import Compiler, compile_template
from pyet.compiler.resolver import IncludeResolver
from pyet.compiler.spec import CompiledTemplate

__all__ = ["Compiler", "compile_template", "IncludeResolver", "CompiledTemplate"]
