import asyncio
import json

import pytest

from freshgate.core.config import CheckerConfig


class FakeRunner:
    """Stands in for the package manager, keyed by subcommand (outdated/audit)."""

    def __init__(self, outputs=None, errors=None, delays=None):
        self.outputs = outputs or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.calls = []

    async def __call__(self, argv, cwd):
        self.calls.append(list(argv))
        command = argv[1]
        if command in self.delays:
            await asyncio.sleep(self.delays[command])
        if command in self.errors:
            raise self.errors[command]
        output = self.outputs.get(command, "")
        return output if isinstance(output, str) else json.dumps(output)


@pytest.fixture
def project(tmp_path):
    (tmp_path / "package.json").write_text('{"name": "demo"}', encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_config(project):
    def _make(**overrides):
        values = {"project_path": project, "verbose": False, "network_timeout": 1.0}
        values.update(overrides)
        return CheckerConfig(**values)

    return _make


@pytest.fixture
def fake_runner():
    return FakeRunner
