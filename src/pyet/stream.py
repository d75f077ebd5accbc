"""RenderStream - the byte stream returned by a render.

The stream is the single boundary between template code and the caller.
Output is produced only as the stream is consumed. An exception raised by
template code is re-raised from the stream unchanged (same type, same
message) with a note naming the template line it came from.
"""

from __future__ import annotations

import inspect
import logging
from types import TracebackType
from typing import Any, AsyncGenerator, Optional, Protocol

from pyet.compiler.spec import CompiledTemplate

log = logging.getLogger(__name__)


class Writer(Protocol):
    """Anything with write(bytes); an asyncio.StreamWriter also has drain()."""

    def write(self, data: bytes) -> Any: ...


class RenderStream:
    """Async iterator of UTF-8 (or configured encoding) output chunks."""

    def __init__(
        self,
        template: CompiledTemplate,
        body: AsyncGenerator[str, None],
        encoding: str = "utf-8",
    ):
        self.template = template
        self.encoding = encoding
        self._body = body
        self._done = False

    @property
    def done(self) -> bool:
        """True once the body finished, failed, or was closed."""
        return self._done

    def __aiter__(self) -> RenderStream:
        return self

    async def __anext__(self) -> bytes:
        if self._done:
            raise StopAsyncIteration
        while True:
            try:
                chunk = await self._body.__anext__()
            except StopAsyncIteration:
                self._done = True
                raise
            except Exception as exc:
                self._done = True
                self._annotate(exc)
                log.debug(f"Render of {self.template.name} failed: {exc!r}")
                raise
            if chunk:
                return chunk.encode(self.encoding)

    async def read(self) -> bytes:
        """Drain the stream and return all output."""
        return b"".join([chunk async for chunk in self])

    async def text(self) -> str:
        """Drain the stream and return all output as text."""
        return (await self.read()).decode(self.encoding)

    async def copy_to(self, writer: Writer) -> int:
        """Write every chunk to writer as it is produced.

        Awaits writer.drain() after each chunk when the writer has one, so a
        slow consumer pauses the render.

        Returns:
            Number of bytes written.
        """
        written = 0
        drain = getattr(writer, "drain", None)
        async for chunk in self:
            result = writer.write(chunk)
            if inspect.isawaitable(result):
                await result
            if drain is not None:
                await drain()
            written += len(chunk)
        return written

    async def aclose(self) -> None:
        """Stop rendering. Template code after the current point never runs."""
        self._done = True
        await self._body.aclose()

    async def __aenter__(self) -> RenderStream:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    def _annotate(self, exc: Exception) -> None:
        """Add the template location of the failure to exc's notes."""
        line = self._failing_line(exc)
        where = f"line {line}" if line is not None else "unknown line"
        exc.add_note(f"while rendering {self.template.name}, {where}")

    def _failing_line(self, exc: Exception) -> Optional[int]:
        # Outermost frame of this template's body; deeper ones belong to includes
        tb = exc.__traceback__
        while tb is not None:
            if tb.tb_frame.f_code.co_filename == self.template.filename:
                return self.template.template_line(tb.tb_lineno)
            tb = tb.tb_next
        return None
