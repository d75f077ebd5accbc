from dataclasses import dataclass
from enum import Enum


class FragmentKind(str, Enum):
    """Kind of a lexical unit, decided by the tag that delimits it."""

    TEXT = "text"
    EVALUATE = "evaluate"  # <% ... %>
    INTERPOLATE_ESCAPED = "interpolate_escaped"  # <%= ... %>
    INTERPOLATE_RAW = "interpolate_raw"  # <%- ... %>
    COMMENT = "comment"  # <%# ... %>


# Character following "<%" -> fragment kind
TAG_MARKERS = {
    "=": FragmentKind.INTERPOLATE_ESCAPED,
    "-": FragmentKind.INTERPOLATE_RAW,
    "#": FragmentKind.COMMENT,
}


@dataclass(frozen=True)
class Fragment:
    """One piece of a template: literal text or the code inside a tag."""

    kind: FragmentKind
    content: str
    line: int = 1  # source line the fragment starts on
