"""Shared fixtures: on-disk collections and a fake Bruno runner."""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


GET_USERS_BRU = """meta {
  name: Get Users
  type: http
  seq: 1
}

get {
  url: {{baseUrl}}/users
  body: none
  auth: bearer
}

headers {
  Accept: application/json
  X-Trace: abc:123
}

tests {
  test("returns 200", function() {
    expect(res.status).to.equal(200);
  });

  test("returns a list", function() {
    expect(res.body).to.be.an("array");
  });
}
"""

CREATE_USER_BRU = """meta {
  name: Create User
  type: http
  seq: 2
}

post {
  url: {{baseUrl}}/users
  body: json
  auth: none
}

body:json {
  {
    "name": "Ada"
  }
}
"""

DEV_ENV_BRU = """vars {
  baseUrl: http://localhost:3000
  apiToken: {{secretToken}}
}
"""


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def make_collection(
    root: Path,
    manifest: Optional[Dict[str, Any]] = None,
    requests: Optional[Dict[str, str]] = None,
    environments: Optional[Dict[str, str]] = None,
) -> Path:
    """Create a collection directory.

    Args:
        root: Collection directory to create
        manifest: bruno.json content; None writes a valid default
        requests: Relative path -> .bru content
        environments: Environment name -> .bru content
    """
    root.mkdir(parents=True, exist_ok=True)
    if manifest is None:
        manifest = {"version": "1", "name": "Users API", "type": "collection"}
    write_file(root / "bruno.json", json.dumps(manifest))
    for rel_path, content in (requests or {}).items():
        write_file(root / rel_path, content)
    for name, content in (environments or {}).items():
        write_file(root / "environments" / f"{name}.bru", content)
    return root


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config discovery away from the real home and working directory."""
    for var in ("BRUNO_MCP_CONFIG", "BRUNO_CLI_PATH", "BRUNO_MCP_LOG_LEVEL", "BRUNO_MCP_ALLOWED_PATHS"):
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield
    package_logger = logging.getLogger("bruno_mcp")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def collection(tmp_path) -> Path:
    """A two-request collection with one environment."""
    return make_collection(
        tmp_path / "api",
        requests={
            "Get Users.bru": GET_USERS_BRU,
            "users/Create User.bru": CREATE_USER_BRU,
        },
        environments={"dev": DEV_ENV_BRU},
    )


class FakeRunner:
    """Stands in for ``subprocess.run`` when the Bruno CLI is invoked.

    Writes ``report`` to the ``--output`` file (as JSON unless it is str or bytes)
    and returns the configured stdout, stderr and exit code.
    """

    def __init__(self):
        self.report: Any = None
        self.stdout = ""
        self.stderr = ""
        self.returncode = 0
        self.raises: Optional[BaseException] = None
        self.calls: List[Dict[str, Any]] = []
        self.output_files: List[str] = []

    def __call__(self, args, **kwargs):
        self.calls.append({"args": list(args), **kwargs})
        if self.raises is not None:
            raise self.raises

        if "--output" in args:
            output = args[args.index("--output") + 1]
            self.output_files.append(output)
            if isinstance(self.report, bytes):
                Path(output).write_bytes(self.report)
            elif self.report is not None:
                content = self.report if isinstance(self.report, str) else json.dumps(self.report)
                Path(output).write_text(content, encoding="utf-8")

        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)

    @property
    def last_args(self) -> List[str]:
        return self.calls[-1]["args"]


@pytest.fixture
def fake_runner(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner
