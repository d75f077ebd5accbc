"""Compiler IR spec - the executable body of a template."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import CodeType
from typing import Any, AsyncGenerator, Callable, Dict, List, Mapping

from pyet.ast.spec import Fragment
from pyet.compiler.runtime import escape_value, raw_value, resolve_value

# Names the generated body uses; prefixed so they never shadow template params
BODY_FUNCTION = "__pyet_body__"
ESCAPE_HELPER = "__pyet_escape__"
RAW_HELPER = "__pyet_raw__"
VALUE_HELPER = "__pyet_value__"


@dataclass
class CompiledTemplate:
    """A template compiled to a Python async generator.

    The generator yields text chunks in source order; parameters are bound as
    the globals of the generated code, so template code sees them as free
    variables.
    """

    name: str
    fragments: List[Fragment]
    source: str  # generated Python source
    code: CodeType
    line_map: Dict[int, int] = field(default_factory=dict)  # body line -> template line

    @property
    def filename(self) -> str:
        return self.code.co_filename

    def template_line(self, body_line: int) -> int | None:
        """Map a line of the generated source back to the template."""
        return self.line_map.get(body_line)

    def stream(self, namespace: Mapping[str, Any]) -> AsyncGenerator[str, None]:
        """Start executing the body against namespace.

        Nothing runs until the returned iterator is advanced.
        """
        scope: Dict[str, Any] = dict(namespace)
        scope.update(
            {
                ESCAPE_HELPER: escape_value,
                RAW_HELPER: raw_value,
                VALUE_HELPER: resolve_value,
            }
        )
        exec(self.code, scope)
        body: Callable[[], AsyncGenerator[str, None]] = scope[BODY_FUNCTION]
        return body()
