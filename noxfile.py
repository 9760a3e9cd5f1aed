from __future__ import annotations

import nox

nox.options.default_venv_backend = "virtualenv"
nox.options.error_on_missing_interpreters = False
nox.options.sessions = ["tests", "lint", "typecheck"]

PYTHONS = ["3.10", "3.11", "3.12", "3.13"]


def _install_dev(session: nox.Session) -> None:
    session.install("-e", ".[dev]")


@nox.session(python=PYTHONS)
def tests(session: nox.Session) -> None:
    _install_dev(session)
    args = session.posargs or ["--cov=linearcmd", "--cov-report=term-missing", "--cov-report=xml"]
    session.run("pytest", *args)


@nox.session
def lint(session: nox.Session) -> None:
    _install_dev(session)
    session.run("ruff", "check", "src", "tests")


@nox.session
def typecheck(session: nox.Session) -> None:
    _install_dev(session)
    session.run("mypy")


@nox.session
def smoke(session: nox.Session) -> None:
    """Installed entry point starts and parses every command group."""
    session.install(".")
    session.run("linear-cmd", "--version")
    for group in ("account", "issue", "project", "document"):
        session.run("linear-cmd", group, "--help", silent=True)


@nox.session
def build(session: nox.Session) -> None:
    _install_dev(session)
    session.run("python", "-m", "build")
