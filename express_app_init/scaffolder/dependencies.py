"""npm dependency resolution for the generated project.

The resolver turns a :class:`ProjectConfig` into ordered, de-duplicated
runtime and dev package lists.  Packages are grouped into *stages* that match
the assembler phases installing them (``base`` before the ORM, the database
driver, then optional add-ons); a package contributed by an earlier stage is
never repeated in a later one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from express_app_init.config import DatabaseKind, ProjectConfig


BASE_RUNTIME: tuple[str, ...] = ("express", "dotenv")


@dataclass(frozen=True)
class FeaturePackages:
    """Packages a feature contributes.

    ``typed_dev`` entries are only installed in typed mode.  A feature whose
    packages ship their own declarations simply has an empty ``typed_dev``.
    """

    runtime: tuple[str, ...] = ()
    dev: tuple[str, ...] = ()
    typed_dev: tuple[str, ...] = ()


@dataclass(frozen=True)
class AddOn:
    name: str
    type_package: Optional[str] = None


# ---------------------------------------------------------------------------
# Catalogs
# ---------------------------------------------------------------------------

FEATURE_PACKAGES: dict[str, FeaturePackages] = {
    "typescript": FeaturePackages(
        typed_dev=("typescript", "@types/node", "@types/express", "ts-node", "tsconfig-paths"),
    ),
    "autoreload": FeaturePackages(dev=("nodemon",)),
    "orm": FeaturePackages(runtime=("prisma", "@prisma/client")),
    DatabaseKind.MANAGED.value: FeaturePackages(runtime=("@supabase/supabase-js",)),
    DatabaseKind.POSTGRES.value: FeaturePackages(runtime=("pg",), typed_dev=("@types/pg",)),
    DatabaseKind.MYSQL.value: FeaturePackages(runtime=("mysql2",)),
    DatabaseKind.MONGODB.value: FeaturePackages(runtime=("mongoose", "mongodb")),
}

ADDON_CATALOG: dict[str, AddOn] = {
    addon.name: addon
    for addon in (
        AddOn("jsonwebtoken", "@types/jsonwebtoken"),
        AddOn("bcrypt", "@types/bcrypt"),
        AddOn("cors", "@types/cors"),
        AddOn("cookie-parser", "@types/cookie-parser"),
        AddOn("nodemailer", "@types/nodemailer"),
    )
}

STAGES: tuple[str, ...] = ("base", "orm", "database", "addons")


# ---------------------------------------------------------------------------
# DependencySet
# ---------------------------------------------------------------------------


@dataclass
class DependencySet:
    """Runtime and dev package lists without duplicates, in first-seen order."""

    runtime: list[str] = field(default_factory=list)
    dev: list[str] = field(default_factory=list)

    def add_runtime(self, *packages: str) -> None:
        for pkg in packages:
            if pkg not in self.runtime:
                self.runtime.append(pkg)

    def add_dev(self, *packages: str) -> None:
        for pkg in packages:
            if pkg not in self.dev:
                self.dev.append(pkg)

    def merge(self, other: "DependencySet") -> None:
        self.add_runtime(*other.runtime)
        self.add_dev(*other.dev)

    def without(self, seen: "DependencySet") -> "DependencySet":
        """Return a copy minus every package already present in *seen*."""
        return DependencySet(
            runtime=[p for p in self.runtime if p not in seen.runtime],
            dev=[p for p in self.dev if p not in seen.dev],
        )

    def is_empty(self) -> bool:
        return not self.runtime and not self.dev


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class DependencyResolver:
    """Collects the packages required by a project configuration."""

    def __init__(self, config: ProjectConfig) -> None:
        self.config = config

    def _feature(self, deps: DependencySet, name: str) -> None:
        packages = FEATURE_PACKAGES[name]
        deps.add_runtime(*packages.runtime)
        deps.add_dev(*packages.dev)
        if self.config.typed:
            deps.add_dev(*packages.typed_dev)

    def _stage_packages(self, stage: str) -> DependencySet:
        deps = DependencySet()
        if stage == "base":
            deps.add_runtime(*BASE_RUNTIME)
            if self.config.typed:
                self._feature(deps, "typescript")
            if self.config.autoreload:
                self._feature(deps, "autoreload")
        elif stage == "orm":
            if self.config.setup_orm:
                self._feature(deps, "orm")
        elif stage == "database":
            kind = self.config.database_kind
            if kind != DatabaseKind.NONE:
                self._feature(deps, kind.value)
        elif stage == "addons":
            for addon in self.selected_addons():
                deps.add_runtime(addon.name)
                if self.config.typed and addon.type_package:
                    deps.add_dev(addon.type_package)
        else:
            raise ValueError(f"Unknown dependency stage: {stage}")
        return deps

    def selected_addons(self) -> list[AddOn]:
        """Selected add-ons in catalog order."""
        return [addon for name, addon in ADDON_CATALOG.items() if name in self.config.addons]

    def stages(self) -> dict[str, DependencySet]:
        """Packages per install stage; later stages skip earlier packages."""
        seen = DependencySet()
        result: dict[str, DependencySet] = {}
        for stage in STAGES:
            deps = self._stage_packages(stage).without(seen)
            seen.merge(deps)
            result[stage] = deps
        return result

    def stage(self, name: str) -> DependencySet:
        return self.stages()[name]

    def resolve(self) -> DependencySet:
        """All packages of every stage, in install order."""
        total = DependencySet()
        for deps in self.stages().values():
            total.merge(deps)
        return total


def resolve(config: ProjectConfig) -> DependencySet:
    """Resolve the full dependency set for *config*."""
    return DependencyResolver(config).resolve()
