"""express-app-init configuration.

Two pydantic v2 models live here:

* ``ProjectConfig`` -- the immutable record of every choice made for one
  scaffolding run (project name, port, language mode, database, add-ons...).
* ``Config`` -- tool-level settings (output directory, executable names,
  dry-run flag) that can be read from environment variables.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_PORT = 3000


# ---------------------------------------------------------------------------
# Choice enums
# ---------------------------------------------------------------------------


class LanguageMode(str, Enum):
    """Source flavour of the generated project."""

    TYPED = "typed"
    UNTYPED = "untyped"


class DatabaseKind(str, Enum):
    NONE = "none"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    MANAGED = "managed"


class DatabaseLocality(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class VariantKey(NamedTuple):
    """Configuration dimensions that select generated template content."""

    language_mode: LanguageMode
    database_kind: DatabaseKind
    orm: bool

    @property
    def typed(self) -> bool:
        return self.language_mode == LanguageMode.TYPED


# ---------------------------------------------------------------------------
# Managed backend credentials
# ---------------------------------------------------------------------------


class ManagedDatabaseCredentials(BaseModel):
    """Connection parts for the managed backend's Postgres database (ORM case)."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str
    host: str
    port: int = Field(default=5432, ge=1, le=65535)
    database: str

    @property
    def database_url(self) -> str:
        """Connection URL; user and password are percent-encoded."""
        return (
            f"postgresql://{quote(self.username, safe='')}:{quote(self.password, safe='')}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class ManagedApiCredentials(BaseModel):
    """URL and API key for the managed backend's SDK (no ORM)."""

    model_config = ConfigDict(frozen=True)

    url: str
    key: str


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Every resolved choice for one scaffolding run.

    Instances are frozen: the assembler and every component it calls only
    read from them.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Project (and directory) name")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    language_mode: LanguageMode = Field(default=LanguageMode.TYPED)
    init_git: bool = Field(default=True)
    setup_orm: bool = Field(default=False, description="Set up Prisma")
    use_managed_backend: bool = Field(default=False, description="Set up Supabase")
    create_container_file: bool = Field(default=True, description="Write a Dockerfile")
    autoreload: bool = Field(default=True, description="Install nodemon and a dev script")
    database_kind: DatabaseKind = Field(default=DatabaseKind.NONE)
    database_locality: DatabaseLocality = Field(default=DatabaseLocality.LOCAL)
    addons: frozenset[str] = Field(default_factory=frozenset)
    managed_database: Optional[ManagedDatabaseCredentials] = None
    managed_api: Optional[ManagedApiCredentials] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("project name must not be empty")
        return value

    @field_validator("addons")
    @classmethod
    def _known_addons(cls, value: frozenset[str]) -> frozenset[str]:
        from express_app_init.scaffolder.dependencies import ADDON_CATALOG

        unknown = sorted(value - set(ADDON_CATALOG))
        if unknown:
            raise ValueError(f"unknown add-on(s): {', '.join(unknown)}")
        return value

    @model_validator(mode="after")
    def _check_managed_backend(self) -> "ProjectConfig":
        is_managed = self.database_kind == DatabaseKind.MANAGED
        if self.use_managed_backend != is_managed:
            raise ValueError(
                "use_managed_backend must be set exactly when database_kind is 'managed'"
            )
        if is_managed and self.setup_orm and self.managed_database is None:
            raise ValueError("managed backend with ORM requires managed_database credentials")
        if is_managed and not self.setup_orm and self.managed_api is None:
            raise ValueError("managed backend without ORM requires managed_api credentials")
        return self

    # -- Derived values ----------------------------------------------------

    @property
    def typed(self) -> bool:
        return self.language_mode == LanguageMode.TYPED

    @property
    def source_ext(self) -> str:
        """File extension of generated source modules."""
        return "ts" if self.typed else "js"

    @property
    def entry_file(self) -> str:
        return f"server.{self.source_ext}"

    @property
    def variant_key(self) -> VariantKey:
        return VariantKey(self.language_mode, self.database_kind, self.setup_orm)

    # -- Serialisation -----------------------------------------------------

    def save(self, path: str | Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: str | Path) -> "ProjectConfig":
        """Load and validate a configuration previously written by :meth:`save`."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------


_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Tool-level settings for express-app-init.

    Holds the executables used for external commands and where projects are
    created.  Instances are typically built by the CLI via :meth:`from_env`.
    """

    output_dir: Path = Field(default=Path("."))
    npm_command: str = Field(default="npm")
    npx_command: str = Field(default="npx")
    git_command: str = Field(default="git")
    dry_run: bool = Field(default=False)

    # ------------------------------------------------------------------
    # Command lines
    # ------------------------------------------------------------------

    def npm_init(self) -> list[str]:
        return [self.npm_command, "init", "-y"]

    def npm_install(self, packages: list[str], *, dev: bool = False) -> list[str]:
        cmd = [self.npm_command, "install"]
        if dev:
            cmd.append("-D")
        return cmd + list(packages)

    def orm_init(self) -> list[str]:
        return [self.npx_command, "prisma", "init"]

    def git_init(self) -> list[str]:
        return [self.git_command, "init"]

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            EAI_OUTPUT_DIR, EAI_NPM, EAI_NPX, EAI_GIT, EAI_DRY_RUN.
        """
        return cls(
            output_dir=Path(os.environ.get("EAI_OUTPUT_DIR", ".")),
            npm_command=os.environ.get("EAI_NPM") or "npm",
            npx_command=os.environ.get("EAI_NPX") or "npx",
            git_command=os.environ.get("EAI_GIT") or "git",
            dry_run=os.environ.get("EAI_DRY_RUN", "").strip().lower() in _TRUTHY,
        )
