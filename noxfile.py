"""Nox sessions orchestrating logfanout unit suites."""

from __future__ import annotations

from pathlib import Path

import nox


PYTHON_VERSIONS = ["3.11"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = ["tests_unit_logfanout"]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the package and the testing toolchain inside the session environment."""

    session.install("-e", ".[test]")


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_logfanout)")
def tests_unit_logfanout(session: nox.Session) -> None:
    """Execute logfanout unit suites under coverage."""

    _install_test_requirements(session)

    targets = session.posargs or ["tests/unit/logfanout"]
    session.run("coverage", "run", "--source=logfanout", "-m", "pytest", *targets)
    session.run("coverage", "report", "-m")
