"""Render Engine - lex, compile and execute templates.

    stream = await render("Hello <%= name %>!", {"name": "world"})
    async for chunk in stream:
        ...

Lexing and compiling happen when render() is awaited, so LexError and
CompileError surface before any output. Template code runs only as the
returned stream is consumed; its exceptions are raised from the stream.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pyet.compiler.compiler import compile_template
from pyet.compiler.resolver import IncludeResolver
from pyet.compiler.spec import CompiledTemplate
from pyet.config import RenderOptions
from pyet.loader import FileLoader
from pyet.stream import RenderStream

log = logging.getLogger(__name__)

INCLUDE_BINDING = "include"


def render_template(
    template: CompiledTemplate,
    namespace: Optional[Mapping[str, Any]] = None,
    *,
    options: Optional[RenderOptions] = None,
    base_dir: Optional[Path] = None,
) -> RenderStream:
    """Start rendering an already compiled template.

    Args:
        template: Result of compile_template().
        namespace: Parameters visible to template code. An "include" entry
            replaces the default include resolver for the whole render.
        options: Render options.
        base_dir: Directory includes resolve against.

    Returns:
        RenderStream producing the output.
    """
    options = options or RenderOptions()
    scope = dict(namespace or {})
    if INCLUDE_BINDING not in scope:
        scope[INCLUDE_BINDING] = IncludeResolver(
            base_dir=base_dir or options.include_base or Path.cwd(),
            loader=FileLoader(options.encoding),
            options=options,
        )
    else:
        log.debug(f"Using caller-supplied include for {template.name}")
    return RenderStream(template, template.stream(scope), options.encoding)


async def render(
    source: str,
    namespace: Optional[Mapping[str, Any]] = None,
    *,
    options: Optional[RenderOptions] = None,
    name: str = "<template>",
    base_dir: Optional[Path] = None,
) -> RenderStream:
    """Render template text.

    Raises:
        LexError: If a tag is not terminated.
        CompileError: If blocks are unbalanced or a tag holds invalid Python.
    """
    template = compile_template(source, name=name)
    return render_template(template, namespace, options=options, base_dir=base_dir)


async def render_file(
    path: str | Path,
    namespace: Optional[Mapping[str, Any]] = None,
    *,
    options: Optional[RenderOptions] = None,
) -> RenderStream:
    """Render a template file; includes resolve against its directory.

    Raises:
        TemplateNotFoundError: If the file does not exist.
        TemplateLoadError: If the file cannot be read.
    """
    options = options or RenderOptions()
    p = Path(path)
    text = await FileLoader(options.encoding).read(p)
    return await render(text, namespace, options=options, name=str(p), base_dir=p.parent)


async def render_to_string(
    source: str,
    namespace: Optional[Mapping[str, Any]] = None,
    *,
    options: Optional[RenderOptions] = None,
    name: str = "<template>",
    base_dir: Optional[Path] = None,
) -> str:
    """Render template text and return the whole output."""
    stream = await render(source, namespace, options=options, name=name, base_dir=base_dir)
    return await stream.text()


async def render_file_to_string(
    path: str | Path,
    namespace: Optional[Mapping[str, Any]] = None,
    *,
    options: Optional[RenderOptions] = None,
) -> str:
    """Render a template file and return the whole output."""
    stream = await render_file(path, namespace, options=options)
    return await stream.text()
