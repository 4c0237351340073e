# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Create the development environment with uv, including test and dev extras."""
    print("Syncing environment with uv...")
    ctx.run("uv sync --extra test --extra dev")
    print("Environment ready.")


@task
def clean(ctx):
    """
    Remove untracked files and directories (build output, caches, .venv).
    Lists them first and asks before deleting.
    """

    ctx.run("git clean -nfdx")

    response = (
        input("Are you sure you want to remove all untracked files? (y/n) [n]: ")
        .strip()
        .lower()
    )
    if response == "y":
        ctx.run("git clean -fdx")


@task
def lint(ctx):
    """
    Static checks: ruff lint and format check over sources and tests, mypy over sources.
    """
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """
    Run tests with coverage information.
    """
    ctx.run("pytest --cov=webbrick --cov-report=term-missing", pty=True)


@task
def mock(ctx, brick_id=3, port=8080, announce="127.0.0.1:2552"):
    """
    Serve a mock brick locally and announce it to a listener on this host.
    """
    ctx.run(
        f"webbrick mock --brick-id {brick_id} --port {port} --announce {announce}",
        pty=True,
    )


@task
def build_package(ctx):
    """
    Build sdist and wheel with uv.
    """

    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task
def release(ctx):
    """Run CI, build package, and publish to PyPI using uv."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    print("Running checks...")
    ctx.run("invoke lint test")

    print("Building package...")
    ctx.run("invoke build-package")

    print("Publishing to PyPI...")
    ctx.run(f"uv publish --token {token}")
