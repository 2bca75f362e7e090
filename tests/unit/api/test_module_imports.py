"""API modules import cleanly in any order."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[3] / "src"


@pytest.mark.parametrize(
    "module",
    [
        "api.dependencies.auth",
        "api.dependencies.services",
        "api.v1",
        "api.v1.routes.documents",
        "api.v1.routes.notifications",
        "api.v1.routes.users",
        "main",
    ],
)
def test_imports_first_in_fresh_interpreter(module: str) -> None:
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=SRC,
        env={**os.environ, "PYTHONPATH": str(SRC), "RATE_LIMIT_ENABLED": "false"},
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert result.returncode == 0, result.stderr
