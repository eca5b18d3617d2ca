"""Main scaffolding orchestrator.

Takes a ``ProjectConfig`` and materialises an Express backend project:
directory tree, default files, npm manifest and scripts, optional Prisma and
Docker setup, database configuration, route and entry modules, optional
add-on packages and a git repository.

Phases run strictly in order and none is entered twice::

    CreateTree -> InitManifest -> InstallBaseDeps -> WriteManifestScripts
    -> [OrmInit] -> [ContainerFile] -> DatabaseBranch -> WriteRouteAndEntry
    -> [ExtraDeps] -> [VcsInit] -> Done

A fatal failure stops the run where it happened; nothing written so far is
rolled back.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable

from express_app_init.config import (
    Config,
    DatabaseKind,
    DatabaseLocality,
    ProjectConfig,
)
from express_app_init.utils import (
    load_json,
    print_info,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
)

from .commands import (
    Command,
    CommandExecutor,
    CommandRunner,
    DryRunExecutor,
    SubprocessExecutor,
)
from .dependencies import DependencyResolver, DependencySet
from .docker_gen import DockerGenerator
from .env_file import (
    MONGODB_LOCAL_URI,
    MONGODB_REMOTE_URI,
    MYSQL_DEFAULTS,
    ORM_DATABASE_URLS,
    POSTGRES_DEFAULTS,
    EnvFile,
)
from .errors import PhaseOrderError, ProjectExistsError
from .templates import (
    ORM_PROVIDERS,
    DataAccessVariant,
    FileKind,
    TemplateRegistry,
    TemplateRenderer,
    data_access_variant,
    write_file,
)


PROJECT_DIRECTORIES: tuple[str, ...] = (
    "config",
    "controller",
    "lib",
    "utils",
    "queries",
    "routes",
    "middlewares",
    "models",
)

ENV_FILE = ".env"
MANIFEST_FILE = "package.json"
ORM_SCHEMA_FILE = "prisma/schema.prisma"

TSCONFIG: dict[str, Any] = {
    "compilerOptions": {
        "target": "ES6",
        "module": "commonjs",
        "rootDir": "./",
        "outDir": "dist",
        "esModuleInterop": True,
    },
}


class Phase(IntEnum):
    CREATE_TREE = 1
    INIT_MANIFEST = 2
    INSTALL_BASE_DEPS = 3
    WRITE_MANIFEST_SCRIPTS = 4
    ORM_INIT = 5
    CONTAINER_FILE = 6
    DATABASE_BRANCH = 7
    WRITE_ROUTE_AND_ENTRY = 8
    EXTRA_DEPS = 9
    VCS_INIT = 10
    DONE = 11


PHASE_NAMES: dict[Phase, str] = {
    Phase.CREATE_TREE: "Create project tree",
    Phase.INIT_MANIFEST: "Initialize npm project",
    Phase.INSTALL_BASE_DEPS: "Install dependencies",
    Phase.WRITE_MANIFEST_SCRIPTS: "Write package.json scripts",
    Phase.ORM_INIT: "Set up Prisma",
    Phase.CONTAINER_FILE: "Create Dockerfile",
    Phase.DATABASE_BRANCH: "Configure database",
    Phase.WRITE_ROUTE_AND_ENTRY: "Write route and server modules",
    Phase.EXTRA_DEPS: "Install optional packages",
    Phase.VCS_INIT: "Initialize Git",
    Phase.DONE: "Done",
}

_DATABASE_LABELS: dict[DatabaseKind, str] = {
    DatabaseKind.POSTGRES: "Postgres",
    DatabaseKind.MYSQL: "MySQL",
    DatabaseKind.MONGODB: "MongoDB",
    DatabaseKind.MANAGED: "Supabase",
}

_DATASOURCE_PROVIDER = re.compile(r'(datasource\s+\w+\s*\{[^}]*?provider\s*=\s*)"[^"]*"')


@dataclass
class AssemblyResult:
    """What a run produced."""

    project_root: Path
    phases: list[Phase] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    dependencies: DependencySet = field(default_factory=DependencySet)
    commands: list[str] = field(default_factory=list)
    data_access: DataAccessVariant = DataAccessVariant.NONE


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


class ProjectAssembler:
    """Scaffolds one project from a ``ProjectConfig``.

    Given a configuration, creates:
    - the project root and its eight fixed subdirectories
    - ``.gitignore``, ``server.md``, ``.env`` and (typed) ``tsconfig.json``
    - ``package.json`` with ``main`` and ``start``/``dev`` scripts
    - an optional Dockerfile and Prisma setup
    - ``config/db``, ``routes/route`` and ``server`` modules
    and installs the resolved npm packages.

    External commands go through an executor; pass a
    :class:`DryRunExecutor` (or set ``Config.dry_run``) to only record them.
    """

    def __init__(
        self,
        config: ProjectConfig,
        settings: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or Config()
        if executor is None:
            executor = DryRunExecutor() if self.settings.dry_run else SubprocessExecutor()
        self.executor = executor
        self.renderer = TemplateRenderer()
        self.registry = TemplateRegistry(self.renderer)
        self.docker_gen = DockerGenerator(self.renderer)
        self.resolver = DependencyResolver(config)
        self.phases: list[Phase] = []
        self.artifacts: list[str] = []
        self.root = Path()
        self.runner = CommandRunner(self.executor, self.root)

    # -- Public API --------------------------------------------------------

    async def assemble(self, output_dir: str | Path | None = None) -> AssemblyResult:
        """Generate the project inside *output_dir*.

        Args:
            output_dir: Parent directory; defaults to ``settings.output_dir``.
                A subdirectory named after the project is created inside it.

        Raises:
            ProjectExistsError: If the project directory already exists.
            CommandError: If a fatal external command fails.
            InvalidSelectionError: If the database selection has no generator.
        """
        cfg = self.config
        variant = data_access_variant(cfg.variant_key)

        parent = Path(output_dir) if output_dir is not None else self.settings.output_dir
        self.root = parent / cfg.name
        self.runner = CommandRunner(self.executor, self.root)

        await self._create_tree()
        await self._init_manifest()
        await self._install_base_deps()
        await self._write_manifest_scripts()
        if cfg.setup_orm:
            await self._orm_init()
        if cfg.create_container_file:
            await self._container_file()
        await self._database_branch(variant)
        await self._write_route_and_entry()
        if cfg.addons:
            await self._extra_deps()
        else:
            print_warning("No packages selected. Skipping installation.")
        if cfg.init_git:
            await self._vcs_init()
        self._done()

        return AssemblyResult(
            project_root=self.root,
            phases=list(self.phases),
            artifacts=list(self.artifacts),
            dependencies=self.resolver.resolve(),
            commands=self.runner.executed,
            data_access=variant,
        )

    # -- Phase bookkeeping -------------------------------------------------

    def _enter(self, phase: Phase) -> None:
        if self.phases and phase <= self.phases[-1]:
            raise PhaseOrderError(
                f"Cannot enter phase {phase.name} after {self.phases[-1].name}"
            )
        self.phases.append(phase)
        print_phase_header(len(self.phases), PHASE_NAMES[phase])

    async def _write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        await asyncio.to_thread(write_file, path, content)
        if relative not in self.artifacts:
            self.artifacts.append(relative)
        return path

    async def _install(self, deps: DependencySet, label: str) -> None:
        commands: list[Command] = []
        if deps.runtime:
            commands.append(Command(
                f"Installing {label} dependencies...",
                tuple(self.settings.npm_install(deps.runtime)),
            ))
        if deps.dev:
            commands.append(Command(
                f"Installing {label} dev dependencies...",
                tuple(self.settings.npm_install(deps.dev, dev=True)),
            ))
        await self.runner.submit(*commands)

    def _update_env(self, update: Callable[[EnvFile], Any]) -> None:
        """Read ``.env`` from disk, apply *update*, and write it back.

        The file is re-read each time because external tools (``prisma
        init``) may have changed it since the last write.
        """
        env_path = self.root / ENV_FILE
        env = EnvFile.load(env_path)
        update(env)
        env.save(env_path)
        if ENV_FILE not in self.artifacts:
            self.artifacts.append(ENV_FILE)

    # -- Phases ------------------------------------------------------------

    async def _create_tree(self) -> None:
        self._enter(Phase.CREATE_TREE)
        if self.root.exists():
            raise ProjectExistsError(str(self.root))

        print_info(f"Creating project directory: {self.root}")
        self.root.mkdir(parents=True)
        for directory in PROJECT_DIRECTORIES:
            (self.root / directory).mkdir()

        ctx = {"project_name": self.config.name, "typed": self.config.typed}
        await self._write(".gitignore", self.renderer.render("gitignore.j2", ctx))
        await self._write("server.md", self.renderer.render("server.md.j2", ctx))
        await self._write(ENV_FILE, "")
        if self.config.typed:
            await self._write("tsconfig.json", json.dumps(TSCONFIG, indent=2) + "\n")

    async def _init_manifest(self) -> None:
        self._enter(Phase.INIT_MANIFEST)
        await self.runner.submit(
            Command("Initializing npm project...", tuple(self.settings.npm_init()))
        )

    async def _install_base_deps(self) -> None:
        self._enter(Phase.INSTALL_BASE_DEPS)
        await self._install(self.resolver.stage("base"), "base")

    async def _write_manifest_scripts(self) -> None:
        self._enter(Phase.WRITE_MANIFEST_SCRIPTS)
        cfg = self.config
        manifest_path = self.root / MANIFEST_FILE
        if manifest_path.exists():
            manifest = load_json(manifest_path)
        else:
            print_warning(f"{MANIFEST_FILE} not found; writing a minimal manifest.")
            manifest = {"name": _slugify(cfg.name), "version": "1.0.0"}

        manifest["main"] = cfg.entry_file
        manifest["scripts"] = {"start": manifest_start_script(cfg)}
        dev_script = manifest_dev_script(cfg)
        if dev_script is not None:
            manifest["scripts"]["dev"] = dev_script

        await asyncio.to_thread(save_json, manifest, manifest_path)
        if MANIFEST_FILE not in self.artifacts:
            self.artifacts.append(MANIFEST_FILE)

    async def _orm_init(self) -> None:
        self._enter(Phase.ORM_INIT)
        await self._install(self.resolver.stage("orm"), "Prisma")
        await self.runner.submit(
            Command("Initializing Prisma...", tuple(self.settings.orm_init()))
        )

    async def _container_file(self) -> None:
        self._enter(Phase.CONTAINER_FILE)
        await self.docker_gen.generate(self.root, {"port": self.config.port})
        self.artifacts.append(DockerGenerator.OUTPUT)

    async def _database_branch(self, variant: DataAccessVariant) -> None:
        self._enter(Phase.DATABASE_BRANCH)
        cfg = self.config
        kind = cfg.database_kind

        if variant is DataAccessVariant.NONE:
            print_info("Skipping DB configuration setup.")
            return

        print_info(f"Setting up {_DATABASE_LABELS[DatabaseKind(kind)]}...")
        await self._install(self.resolver.stage("database"), "database")

        handler = self._database_handlers()[variant]
        handler()

        content = self.registry.generate(
            FileKind.DATA_ACCESS, cfg.variant_key, {"port": cfg.port}
        )
        if content is not None:
            await self._write(
                TemplateRegistry.output_path(FileKind.DATA_ACCESS, cfg.variant_key),
                content,
            )

    async def _write_route_and_entry(self) -> None:
        self._enter(Phase.WRITE_ROUTE_AND_ENTRY)
        cfg = self.config
        self._update_env(lambda env: env.set(PORT=str(cfg.port)))
        for kind in (FileKind.ROUTE, FileKind.ENTRY):
            content = self.registry.generate(kind, cfg.variant_key, {"port": cfg.port})
            await self._write(TemplateRegistry.output_path(kind, cfg.variant_key), content or "")

    async def _extra_deps(self) -> None:
        self._enter(Phase.EXTRA_DEPS)
        names = ", ".join(addon.name for addon in self.resolver.selected_addons())
        print_info(f"Installing selected packages: {names}")
        await self._install(self.resolver.stage("addons"), "optional")
        print_success("Selected packages installed successfully!")

    async def _vcs_init(self) -> None:
        self._enter(Phase.VCS_INIT)
        results = await self.runner.submit(
            Command("Initializing Git...", tuple(self.settings.git_init()), fatal=False)
        )
        if all(result.ok for result in results):
            print_success("Git has been initialized.")

    def _done(self) -> None:
        self._enter(Phase.DONE)
        cfg = self.config
        deps = self.resolver.resolve()
        print_summary_table(
            {
                "Project": str(self.root),
                "Language": "TypeScript" if cfg.typed else "JavaScript",
                "Port": str(cfg.port),
                "Database": cfg.database_kind.value,
                "Prisma": "yes" if cfg.setup_orm else "no",
                "Dockerfile": "yes" if cfg.create_container_file else "no",
                "Dependencies": ", ".join(deps.runtime) or "-",
                "Dev dependencies": ", ".join(deps.dev) or "-",
            },
            title=f"{cfg.name} scaffolded",
        )
        print_success("Project setup complete!")

    # -- Database sub-cases ------------------------------------------------

    def _database_handlers(self) -> dict[DataAccessVariant, Callable[[], None]]:
        return {
            DataAccessVariant.ORM_DATASOURCE: self._managed_with_orm,
            DataAccessVariant.MANAGED_SDK: self._managed_sdk,
            DataAccessVariant.ORM_CLIENT: self._local_with_orm,
            DataAccessVariant.POSTGRES_DRIVER: lambda: self._local_defaults(POSTGRES_DEFAULTS),
            DataAccessVariant.MYSQL_DRIVER: lambda: self._local_defaults(MYSQL_DEFAULTS),
            DataAccessVariant.MONGODB_DRIVER: self._mongodb_driver,
        }

    def _managed_with_orm(self) -> None:
        creds = self.config.managed_database
        assert creds is not None  # checked by ProjectConfig
        self._update_env(lambda env: env.set(DATABASE_URL=creds.database_url))

    def _managed_sdk(self) -> None:
        creds = self.config.managed_api
        assert creds is not None  # checked by ProjectConfig
        self._update_env(
            lambda env: env.set({"SUPABASE_URL": creds.url, "SUPABASE_KEY": creds.key})
        )

    def _local_with_orm(self) -> None:
        kind = DatabaseKind(self.config.database_kind)
        self._set_orm_provider(ORM_PROVIDERS[kind])
        self._update_env(lambda env: env.set(DATABASE_URL=ORM_DATABASE_URLS[kind.value]))

    def _local_defaults(self, block: str) -> None:
        self._update_env(lambda env: env.append_raw(block))

    def _mongodb_driver(self) -> None:
        if self.config.database_locality == DatabaseLocality.LOCAL:
            self._local_defaults(MONGODB_LOCAL_URI)
        else:
            self._local_defaults(MONGODB_REMOTE_URI)

    def _set_orm_provider(self, provider: str) -> None:
        """Point the Prisma schema's datasource at *provider*."""
        schema_path = self.root / ORM_SCHEMA_FILE
        if not schema_path.exists():
            print_warning(f"{ORM_SCHEMA_FILE} not found; set the datasource provider to \"{provider}\" manually.")
            return
        schema = schema_path.read_text(encoding="utf-8")
        updated = _DATASOURCE_PROVIDER.sub(
            lambda m: f'{m.group(1)}"{provider}"', schema, count=1
        )
        schema_path.write_text(updated, encoding="utf-8")
        if ORM_SCHEMA_FILE not in self.artifacts:
            self.artifacts.append(ORM_SCHEMA_FILE)


# ---------------------------------------------------------------------------
# Manifest scripts
# ---------------------------------------------------------------------------


def manifest_start_script(config: ProjectConfig) -> str:
    if config.typed:
        return f"ts-node {config.entry_file}"
    return f"node {config.entry_file}"


def manifest_dev_script(config: ProjectConfig) -> str | None:
    """The autoreload ``dev`` script, or ``None`` when autoreload is off."""
    if not config.autoreload:
        return None
    if config.typed:
        return f"nodemon --exec ts-node {config.entry_file}"
    return f"nodemon {config.entry_file}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _slugify(text: str) -> str:
    """Convert text to an npm-package-safe slug (hyphenated)."""
    slug = re.sub(r"[^a-z0-9._]+", "-", text.lower().strip())
    return slug.strip("-") or "server"
