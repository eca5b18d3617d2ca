"""Container descriptor generation.

Renders ``Dockerfile.j2`` into the project root: a ``node:lts`` image that
installs dependencies, copies the sources, exposes the configured port and
runs the manifest's ``start`` script.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .templates import TemplateRenderer


class DockerGenerator:
    """Generates the project's Dockerfile."""

    TEMPLATE = "Dockerfile.j2"
    OUTPUT = "Dockerfile"

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def render(self, context: dict[str, Any]) -> str:
        """Return the Dockerfile content for *context* (needs ``port``)."""
        return self.renderer.render(self.TEMPLATE, context)

    async def generate(self, output_dir: Path, context: dict[str, Any]) -> Path:
        """Write the Dockerfile to *output_dir*.

        Args:
            output_dir: Project root directory.
            context: Template rendering context; ``port`` is exposed.

        Returns:
            The written Dockerfile path.
        """
        return await self.renderer.render_to_file(
            self.TEMPLATE, Path(output_dir) / self.OUTPUT, context
        )
