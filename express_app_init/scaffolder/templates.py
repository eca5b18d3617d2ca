"""Jinja2 template rendering for the generated Express project.

Two layers live here:

* ``TemplateRenderer`` loads ``.j2`` files from ``scaffolder/templates/`` and
  renders them with a context dict.
* ``TemplateRegistry`` maps a :class:`VariantKey` to the content of the three
  generated source modules (data-access, route and entry).  The data-access
  choice is a single lookup in ``DATA_ACCESS_VARIANTS``, which holds one entry
  per ``(database kind, ORM)`` combination; a key missing from the table is an
  :class:`InvalidSelectionError`, never a silently skipped file.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from express_app_init.config import DEFAULT_PORT, DatabaseKind, VariantKey

from .errors import InvalidSelectionError


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

API_BASE_PATH = "/api"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Templates keep their trailing newline and block tags swallow the line
    they sit on, so ``{% if typed %}`` switches read cleanly in the sources.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"data_access/postgres.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(write_file, out, content)
        return out

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Variant table
# ---------------------------------------------------------------------------


class FileKind(str, Enum):
    DATA_ACCESS = "data_access"
    ROUTE = "route"
    ENTRY = "entry"


class DataAccessVariant(str, Enum):
    """Shape of the generated ``config/db`` module."""

    ORM_DATASOURCE = "prisma_datasource"
    ORM_CLIENT = "prisma_client"
    MANAGED_SDK = "supabase_client"
    POSTGRES_DRIVER = "postgres"
    MYSQL_DRIVER = "mysql"
    MONGODB_DRIVER = "mongodb"
    NONE = "none"

    @property
    def template(self) -> str | None:
        if self is DataAccessVariant.NONE:
            return None
        return f"data_access/{self.value}.j2"


DATA_ACCESS_VARIANTS: dict[tuple[DatabaseKind, bool], DataAccessVariant] = {
    (DatabaseKind.NONE, False): DataAccessVariant.NONE,
    (DatabaseKind.NONE, True): DataAccessVariant.NONE,
    (DatabaseKind.MANAGED, True): DataAccessVariant.ORM_DATASOURCE,
    (DatabaseKind.MANAGED, False): DataAccessVariant.MANAGED_SDK,
    (DatabaseKind.POSTGRES, True): DataAccessVariant.ORM_CLIENT,
    (DatabaseKind.POSTGRES, False): DataAccessVariant.POSTGRES_DRIVER,
    (DatabaseKind.MYSQL, True): DataAccessVariant.ORM_CLIENT,
    (DatabaseKind.MYSQL, False): DataAccessVariant.MYSQL_DRIVER,
    (DatabaseKind.MONGODB, True): DataAccessVariant.ORM_CLIENT,
    (DatabaseKind.MONGODB, False): DataAccessVariant.MONGODB_DRIVER,
}

# Provider names written into the ORM schema for local databases.
ORM_PROVIDERS: dict[DatabaseKind, str] = {
    DatabaseKind.POSTGRES: "postgresql",
    DatabaseKind.MYSQL: "mysql",
    DatabaseKind.MONGODB: "mongodb",
}


def data_access_variant(variant: VariantKey) -> DataAccessVariant:
    """Look up the data-access shape for *variant*.

    Raises:
        InvalidSelectionError: If the database kind is not in the catalog.
    """
    try:
        return DATA_ACCESS_VARIANTS[(variant.database_kind, bool(variant.orm))]
    except (KeyError, TypeError):
        raise InvalidSelectionError(
            f"Invalid database selection: {variant.database_kind!r}"
        ) from None


# ---------------------------------------------------------------------------
# TemplateRegistry
# ---------------------------------------------------------------------------


class TemplateRegistry:
    """Produces generated source modules for a variant key."""

    _FIXED_TEMPLATES: dict[FileKind, str] = {
        FileKind.ROUTE: "route.j2",
        FileKind.ENTRY: "entry.j2",
    }

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def template_for(self, kind: FileKind, variant: VariantKey) -> str | None:
        """Template path for *kind*, or ``None`` when no file is generated."""
        if kind == FileKind.DATA_ACCESS:
            return data_access_variant(variant).template
        return self._FIXED_TEMPLATES[FileKind(kind)]

    def generate(
        self,
        kind: FileKind,
        variant: VariantKey,
        params: dict[str, Any] | None = None,
    ) -> str | None:
        """Render the module of *kind* for *variant*.

        Args:
            kind: Which module to produce.
            variant: Language mode, database kind and ORM presence.
            params: Extra context; ``port`` is the configured server port.

        Returns:
            The module source, or ``None`` for a data-access module when no
            database is configured.
        """
        template = self.template_for(kind, variant)
        if template is None:
            return None
        context = {
            "typed": variant.typed,
            "port": DEFAULT_PORT,
            "default_port": DEFAULT_PORT,
            "base_path": API_BASE_PATH,
            **(params or {}),
        }
        return self.renderer.render(template, context)

    @staticmethod
    def output_path(kind: FileKind, variant: VariantKey) -> str:
        """Project-relative path of the module of *kind*."""
        ext = "ts" if variant.typed else "js"
        return {
            FileKind.DATA_ACCESS: f"config/db.{ext}",
            FileKind.ROUTE: f"routes/route.{ext}",
            FileKind.ENTRY: f"server.{ext}",
        }[FileKind(kind)]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
