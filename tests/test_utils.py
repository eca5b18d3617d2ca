"""Unit tests for utility functions (express_app_init.utils).

Tests cover:
- run_command (success, failure, cwd, env vars, capture=False, missing executable)
- format_command
- load_json / save_json (use tmp_path)
- Rich output helpers (print_phase_header, print_summary_table, etc.)
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from express_app_init.utils import (
    format_command,
    load_json,
    print_error,
    print_info,
    print_phase_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    save_json,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command_list(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "print('hello')"]
        )
        assert returncode == 0
        assert "hello" in stdout

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_env(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['EAI_TEST_VAR'])"],
            env={"EAI_TEST_VAR": "test_value"},
        )
        assert returncode == 0
        assert "test_value" in stdout

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_returns_stderr(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('error_msg\\n')"],
        )
        assert "error_msg" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_uncaptured_output_is_empty(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "print('inherited')"], capture=False
        )
        assert returncode == 0
        assert stdout == ""
        assert stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable_raises(self):
        with pytest.raises(OSError):
            await run_command(["nonexistent-binary-12345-xyz"])


# ---------------------------------------------------------------------------
# format_command
# ---------------------------------------------------------------------------


class TestFormatCommand:
    @pytest.mark.unit
    def test_list(self):
        assert format_command(["npm", "install", "-D", "nodemon"]) == "npm install -D nodemon"

    @pytest.mark.unit
    def test_tuple(self):
        assert format_command(("git", "init")) == "git init"


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


class TestJsonIO:
    @pytest.mark.unit
    def test_load_json_dict(self, tmp_path: Path):
        path = tmp_path / "package.json"
        path.write_text('{"name": "api", "version": "1.0.0"}', encoding="utf-8")
        assert load_json(path) == {"name": "api", "version": "1.0.0"}

    @pytest.mark.unit
    def test_load_json_list_wraps_in_dict(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_json(path) == {"_root": [1, 2]}

    @pytest.mark.unit
    def test_load_json_file_not_found(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")

    @pytest.mark.unit
    def test_load_json_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)

    @pytest.mark.unit
    def test_save_json_two_space_indent_and_newline(self, tmp_path: Path):
        path = tmp_path / "package.json"
        save_json({"scripts": {"start": "node server.js"}}, path)
        content = path.read_text(encoding="utf-8")
        assert content.endswith("}\n")
        assert '\n  "scripts": {\n    "start": "node server.js"\n  }' in content

    @pytest.mark.unit
    def test_save_json_creates_parents(self, tmp_path: Path):
        path = tmp_path / "nested" / "dir" / "data.json"
        save_json({"ok": True}, path)
        assert json.loads(path.read_text(encoding="utf-8")) == {"ok": True}


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    """Smoke tests: helpers print without raising."""

    @pytest.mark.unit
    def test_print_phase_header(self):
        print_phase_header(1, "Create project tree")
        print_phase_header(11, "Done")

    @pytest.mark.unit
    def test_print_summary_table(self):
        print_summary_table(
            {"Project": "/tmp/api", "Dependencies": "express, dotenv"},
            title="api scaffolded",
        )

    @pytest.mark.unit
    def test_print_messages_with_brackets(self):
        print_info("[dry-run] npm install -D nodemon")
        print_success("Project setup complete!")
        print_error("[/bold] stray markup")
        print_warning("package.json not found")
