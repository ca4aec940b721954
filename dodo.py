"""
Doit file to wrap development workflow commands.
"""

import shutil
from pathlib import Path

from doit.task import Task
from doit.tools import create_folder

PACKAGE = "live_state"
SOURCES = [PACKAGE, "test", "dodo.py"]

OUT_PATH = Path("__out__")

# coverage of test run
COV_PATH = OUT_PATH / "test"
COV_HTML_PATH = COV_PATH / "html"
COV_XML_PATH = COV_PATH / "coverage.xml"
JUNIT_PATH = COV_PATH / "junit.xml"

# typing coverage of package
MYPY_PATH = OUT_PATH / "mypy"


def _cmd(*args: str | Path) -> str:
    return " ".join(str(a) for a in args)


def _rmtree(path: Path):
    if path.exists():
        shutil.rmtree(path)


def task_test() -> Task:
    """
    Run test suite with coverage of package.
    """

    return Task(
        "test",
        actions=[
            (create_folder, [COV_PATH]),
            _cmd(
                "pytest",
                f"--cov={PACKAGE}",
                f"--cov-report=html:{COV_HTML_PATH}",
                f"--cov-report=xml:{COV_XML_PATH}",
                f"--junitxml={JUNIT_PATH}",
            ),
        ],
        targets=[COV_XML_PATH, JUNIT_PATH],
        file_dep=[],
        clean=[(_rmtree, [COV_PATH])],
    )


def task_format() -> Task:
    """
    Format sources and sort pyproject.toml.
    """

    return Task(
        "format",
        actions=[
            _cmd(
                "autoflake",
                "--remove-all-unused-imports",
                "--in-place",
                "--recursive",
                *SOURCES,
            ),
            _cmd("isort", *SOURCES),
            _cmd("black", *SOURCES),
            _cmd("toml-sort", "--in-place", "pyproject.toml"),
        ],
        targets=[],
        file_dep=[],
    )


def task_check() -> Task:
    """
    Type check package.
    """

    return Task(
        "check",
        actions=[
            (create_folder, [MYPY_PATH]),
            _cmd("mypy", "--html-report", MYPY_PATH, PACKAGE),
            _cmd("pyright", PACKAGE),
        ],
        targets=[],
        file_dep=[],
        clean=[(_rmtree, [MYPY_PATH])],
    )
