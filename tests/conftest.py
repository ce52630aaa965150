"""Shared fixtures for pydtheme tests."""

import io
import json
import tarfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from pydtheme.config import Config, SyncOptions
from pydtheme.output import OutputFormatter


class ScriptedPrompt:
    """Prompt that answers from dictionaries and records every question."""

    def __init__(
        self,
        ask: Optional[dict[str, str]] = None,
        confirm: Union[bool, dict[str, bool]] = False,
        select: Optional[dict[str, Union[int, str]]] = None,
    ):
        self.ask_answers = ask or {}
        self.confirm_answers = confirm
        self.select_answers = select or {}
        self.questions: list[str] = []

    def ask(self, message: str, default: Optional[str] = None) -> str:
        self.questions.append(message)
        return self.ask_answers.get(message, default or "")

    def confirm(self, message: str, default: bool = False) -> bool:
        self.questions.append(message)
        if isinstance(self.confirm_answers, dict):
            return self.confirm_answers.get(message, default)
        return self.confirm_answers

    def select(self, message: str, options: list[str]) -> str:
        self.questions.append(message)
        choice = self.select_answers.get(message, 0)
        if isinstance(choice, int):
            return options[choice]
        return choice


Responder = Union[dict[str, Any], Callable[[httpx.Request], httpx.Response]]


class FakeSite:
    """In-memory Discourse site served through httpx.MockTransport."""

    def __init__(self, version: str = "3.2.0", themes: Optional[list] = None):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Responder] = {}
        self.route("GET", "/about.json", json={"about": {"version": version}})
        self.route(
            "GET",
            "/admin/customize/themes.json",
            json={"themes": themes if themes is not None else []},
        )
        self.route(
            "POST",
            "/admin/themes/import.json",
            json={"theme": {"id": "6", "name": "Uploaded theme", "theme_fields": []}},
        )

    def route(
        self,
        method: str,
        path: str,
        responder: Optional[Responder] = None,
        **response_kwargs: Any,
    ) -> None:
        if responder is None:
            responder = dict(response_kwargs)
        self.routes[(method, path)] = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, json={"errors": ["not found"]})
        if callable(responder):
            return responder(request)
        return httpx.Response(**{"status_code": 200, **responder})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path == path
        ]


def make_theme_tree(root: Path) -> Path:
    """Create a small theme directory with files that must not be bundled."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "about.json").write_text(json.dumps({"name": "Test theme"}))
    (root / "common").mkdir()
    (root / "common" / "common.scss").write_text("body { color: red; }")
    (root / "node_modules").mkdir()
    (root / "node_modules" / "x").write_text("dependency")
    (root / ".git").mkdir()
    (root / ".git" / "y").write_text("object")
    return root


def make_tar_gz(files: dict[str, str]) -> bytes:
    """Build an in-memory tar.gz from a mapping of path to text."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, text in files.items():
            data = text.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def make_zip(files: dict[str, str]) -> bytes:
    """Build an in-memory zip from a mapping of path to text."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zip_file:
        for name, text in files.items():
            zip_file.writestr(name, text)
    return buffer.getvalue()


def list_files(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


@pytest.fixture
def site():
    """Provide a fake site with default about, themes and import routes."""
    return FakeSite()


@pytest.fixture
def settings_file(tmp_path):
    """Path of a settings file that does not exist yet."""
    return tmp_path / "settings.json"


@pytest.fixture
def options(settings_file):
    return SyncOptions(settings_file=settings_file)


@pytest.fixture
def config(settings_file):
    return Config(settings_file)


@pytest.fixture
def quiet_output():
    return OutputFormatter(quiet=True)


class RecordingOutput(OutputFormatter):
    """OutputFormatter that keeps (level, message) pairs instead of printing."""

    def __init__(self, quiet: bool = False):
        super().__init__(quiet=quiet)
        self.lines: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def progress(self, message: str) -> None:
        self.lines.append(("progress", message))

    def success(self, message: str) -> None:
        self.lines.append(("success", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def messages(self, level: str) -> list[str]:
        return [message for lvl, message in self.lines if lvl == level]


@pytest.fixture
def output():
    return RecordingOutput()
