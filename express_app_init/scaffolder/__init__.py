"""express-app-init scaffolder -- generates Express backend projects.

This package maps a ``ProjectConfig`` to a project directory: generated
source modules (``TemplateRegistry``), npm packages (``DependencyResolver``),
``.env`` entries (``EnvFile``) and external commands (``CommandRunner``), all
sequenced by ``ProjectAssembler``.

Quick usage::

    from express_app_init.config import ProjectConfig
    from express_app_init.scaffolder import ProjectAssembler

    config = ProjectConfig(name="my-api", port=4000, language_mode="untyped")
    result = await ProjectAssembler(config).assemble("/tmp/output")
"""

from express_app_init.scaffolder.commands import (
    Command,
    CommandRunner,
    DryRunExecutor,
    SubprocessExecutor,
)
from express_app_init.scaffolder.dependencies import DependencyResolver, DependencySet, resolve
from express_app_init.scaffolder.env_file import EnvFile, append_raw, set_keys
from express_app_init.scaffolder.errors import (
    CommandError,
    InvalidSelectionError,
    PhaseOrderError,
    ProjectExistsError,
    ScaffoldError,
)
from express_app_init.scaffolder.generator import AssemblyResult, Phase, ProjectAssembler
from express_app_init.scaffolder.templates import FileKind, TemplateRegistry, TemplateRenderer

__all__ = [
    "AssemblyResult",
    "Command",
    "CommandError",
    "CommandRunner",
    "DependencyResolver",
    "DependencySet",
    "DryRunExecutor",
    "EnvFile",
    "FileKind",
    "InvalidSelectionError",
    "Phase",
    "PhaseOrderError",
    "ProjectAssembler",
    "ProjectExistsError",
    "ScaffoldError",
    "SubprocessExecutor",
    "TemplateRegistry",
    "TemplateRenderer",
    "append_raw",
    "resolve",
    "set_keys",
]
