"""Interactive collection of a :class:`ProjectConfig`.

Asks every question in a fixed order using ``rich.prompt``.  Invalid input
(empty name, port outside 1-65535) is rejected here and asked again; it never
reaches the scaffolder.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from express_app_init.config import (
    DEFAULT_PORT,
    DatabaseKind,
    DatabaseLocality,
    LanguageMode,
    ManagedApiCredentials,
    ManagedDatabaseCredentials,
    ProjectConfig,
)
from express_app_init.scaffolder.dependencies import ADDON_CATALOG
from express_app_init.utils import console as default_console


LOCAL_DATABASES = [DatabaseKind.POSTGRES.value, DatabaseKind.MYSQL.value, DatabaseKind.MONGODB.value]

# The prompt offers "atlas" for a hosted MongoDB cluster.
MONGO_LOCALITIES = {"local": DatabaseLocality.LOCAL, "atlas": DatabaseLocality.REMOTE}


def ask_text(message: str, console: Console, default: str | None = None, password: bool = False) -> str:
    """Ask until a non-empty answer is given."""
    while True:
        if default is None:
            answer = Prompt.ask(message, console=console, password=password)
        else:
            answer = Prompt.ask(message, console=console, default=default, password=password)
        if answer and answer.strip():
            return answer.strip()
        console.print("[red]A value is required.[/red]")


def ask_port(message: str, console: Console, default: int = DEFAULT_PORT) -> int:
    """Ask for a TCP port, re-prompting until it lies in 1-65535."""
    while True:
        port = IntPrompt.ask(message, console=console, default=default)
        if 0 < port <= 65535:
            return port
        console.print("[red]Please enter a valid port number (1-65535)[/red]")


def collect_project_config(console: Console | None = None) -> ProjectConfig:
    """Run the prompt sequence and return the resulting configuration."""
    console = console or default_console
    console.print("\n[bold green]Welcome to express-app-init![/bold green]\n")

    name = ask_text("Project Name", console, default="server")
    port = ask_port("Port Number", console)
    init_git = Confirm.ask("Would you like to initialize Git for this project?", console=console, default=True)
    typed = Confirm.ask("Would you like to use TypeScript?", console=console, default=True)
    setup_orm = Confirm.ask("Would you like to setup Prisma?", console=console, default=False)
    use_managed = Confirm.ask("Would you like to setup Supabase?", console=console, default=False)
    container = Confirm.ask("Would you like to have a Dockerfile?", console=console, default=True)
    autoreload = Confirm.ask("Would you like to install nodemon?", console=console, default=True)

    database_kind = DatabaseKind.NONE
    locality = DatabaseLocality.LOCAL
    managed_database = None
    managed_api = None

    if use_managed:
        database_kind = DatabaseKind.MANAGED
        if setup_orm:
            managed_database = ManagedDatabaseCredentials(
                username=ask_text("Enter your database username", console),
                password=ask_text("Enter your database password", console, password=True),
                host=ask_text("Enter your database host", console),
                port=ask_port("Enter your database port", console, default=5432),
                database=ask_text("Enter your database name", console),
            )
        else:
            managed_api = ManagedApiCredentials(
                url=ask_text("Enter your Supabase URL", console),
                key=ask_text("Enter your Supabase API Key", console, password=True),
            )
    elif Confirm.ask("Would you like to setup local DB?", console=console, default=False):
        selected = Prompt.ask(
            "Which database are you going to use?",
            console=console,
            choices=LOCAL_DATABASES,
            default=DatabaseKind.POSTGRES.value,
        )
        database_kind = DatabaseKind(selected)
        if database_kind == DatabaseKind.MONGODB and not setup_orm:
            answer = Prompt.ask(
                "Is MongoDB local or Atlas?",
                console=console,
                choices=list(MONGO_LOCALITIES),
                default="local",
            )
            locality = MONGO_LOCALITIES[answer]

    console.print("\n[blue]Would you like to install optional packages?[/blue]\n")
    addons = frozenset(
        addon for addon in ADDON_CATALOG
        if Confirm.ask(f"Install {addon}?", console=console, default=False)
    )

    return ProjectConfig(
        name=name,
        port=port,
        language_mode=LanguageMode.TYPED if typed else LanguageMode.UNTYPED,
        init_git=init_git,
        setup_orm=setup_orm,
        use_managed_backend=use_managed,
        create_container_file=container,
        autoreload=autoreload,
        database_kind=database_kind,
        database_locality=locality,
        addons=addons,
        managed_database=managed_database,
        managed_api=managed_api,
    )
