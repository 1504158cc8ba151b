"""Every entry module must import on its own, in a fresh interpreter."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[2] / "src"


def _import_alone(module):
    env = {**os.environ, "PYTHONPATH": str(SRC), "PROTEAN_ENV": "test"}
    return subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=SRC.parent,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )


@pytest.mark.parametrize(
    "module",
    [
        "marketplace.api",
        "marketplace.api.carts",
        "marketplace.api.catalog",
        "marketplace.api.orders",
        "app",
        "server",
        "manage",
    ],
)
def test_module_imports_in_a_fresh_interpreter(module):
    result = _import_alone(module)
    assert result.returncode == 0, result.stderr


def test_api_package_does_not_pull_in_the_routers():
    result = subprocess.run(
        [
            sys.executable,
            "-c",
            "import sys, marketplace.api; assert 'marketplace.api.carts' not in sys.modules",
        ],
        cwd=SRC.parent,
        env={**os.environ, "PYTHONPATH": str(SRC)},
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
