"""Command-line entry point for express-app-init.

Usage::

    express-app-init                      # interactive
    express-app-init -o ~/code            # create the project under ~/code
    express-app-init --config api.json    # reuse a saved configuration
    express-app-init --dry-run            # print commands instead of running them
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from express_app_init.config import Config, ProjectConfig
from express_app_init.prompts import collect_project_config
from express_app_init.scaffolder import ProjectAssembler, ScaffoldError
from express_app_init.utils import console, print_error, print_success


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="express-app-init",
        description="Scaffold an Express backend project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  express-app-init\n"
            "  express-app-init -o ./projects --save-config api.json\n"
            "  express-app-init --config api.json --dry-run\n"
        ),
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Directory in which the project folder is created (default: $EAI_OUTPUT_DIR or .)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Load the project configuration from a JSON file instead of prompting",
    )
    parser.add_argument(
        "--save-config",
        default=None,
        help="Write the collected project configuration to a JSON file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write files but only print the npm/npx/git commands",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``express-app-init`` / ``python -m express_app_init``."""
    args = build_parser().parse_args(argv)

    settings = Config.from_env()
    if args.output:
        settings.output_dir = Path(args.output)
    if args.dry_run:
        settings.dry_run = True

    try:
        if args.config:
            config_path = Path(args.config)
            if not config_path.exists():
                print_error(f"Error: configuration file not found: {config_path}")
                sys.exit(1)
            try:
                project = ProjectConfig.load(config_path)
            except ValidationError as exc:
                print_error(f"Error: invalid configuration file {config_path}:\n{exc}")
                sys.exit(1)
        else:
            project = collect_project_config(console)

        if args.save_config:
            saved = project.save(args.save_config)
            console.print(f"Configuration saved to [bold]{saved}[/bold]")

        assembler = ProjectAssembler(project, settings)
        result = asyncio.run(assembler.assemble())
    except ScaffoldError as exc:
        print_error(f"\n{exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        print_error("\nAborted.")
        sys.exit(130)

    print_success(f"Created {result.project_root}")


if __name__ == "__main__":
    main()
