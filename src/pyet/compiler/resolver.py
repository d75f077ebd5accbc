"""Resolver - the default include() binding of a render.

Templates include other templates with

    <%- include("header.ejs", {"title": title}) %>

The reference is resolved against the including template's directory and
the included template sees only the parameters passed to include(), plus
the include binding itself.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Mapping, Optional

from pyet.config import RenderOptions
from pyet.exceptions import IncludeError, LoaderError
from pyet.loader import FileLoader

log = logging.getLogger(__name__)


class IncludeResolver:
    """Loads and renders included templates relative to a base directory."""

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        loader: Optional[FileLoader] = None,
        options: Optional[RenderOptions] = None,
        depth: int = 0,
    ):
        """Initialize resolver.

        Args:
            base_dir: Directory relative references resolve against.
            loader: File loader used to read included templates.
            options: Options applied to every included render.
            depth: Number of includes above the template using this resolver.
        """
        self.options = options or RenderOptions()
        self.base_dir = base_dir or Path.cwd()
        self.loader = loader or FileLoader(self.options.encoding)
        self.depth = depth

    def __call__(
        self, reference: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any
    ) -> Awaitable[str]:
        """Render another template and return (an awaitable of) its text.

        Interpolation tags await the result, so ``<%- include("x") %>`` works
        directly; statement tags need ``await include("x")``.
        """
        forwarded = dict(params or {})
        forwarded.update(kwargs)
        return self.include(reference, forwarded)

    def resolve_path(self, reference: str) -> Path:
        """Resolve an include reference to a file path.

        Absolute references are used as is; relative ones are joined to
        base_dir. default_extension is appended to references without a suffix.
        """
        p = Path(reference)
        if self.options.default_extension and not p.suffix:
            p = p.with_suffix(self.options.default_extension)
        if p.is_absolute():
            return p
        return self.base_dir / p

    def child(self, base_dir: Path) -> IncludeResolver:
        """Resolver for templates included from a file in base_dir."""
        return IncludeResolver(
            base_dir=base_dir,
            loader=self.loader,
            options=self.options,
            depth=self.depth + 1,
        )

    async def include(self, reference: str, params: Mapping[str, Any]) -> str:
        """Load, render and return an included template.

        Raises:
            IncludeError: If the file cannot be loaded or includes nest too deep.
        """
        if self.depth >= self.options.max_include_depth:
            raise IncludeError(
                reference,
                f"include depth exceeds {self.options.max_include_depth}",
            )

        path = self.resolve_path(reference)
        log.debug(f"Including {reference} -> {path} (depth {self.depth + 1})")
        try:
            text = await self.loader.read(path)
        except LoaderError as e:
            raise IncludeError(reference, str(e)) from e

        namespace = dict(params)
        namespace.setdefault("include", self.child(path.parent))

        # Imported here: the engine itself builds IncludeResolvers
        from pyet.engine import render_to_string

        return await render_to_string(
            text, namespace, options=self.options, name=str(path)
        )
