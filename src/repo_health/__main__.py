"""Entry point: python -m repo_health"""

from repo_health.cli import cli


if __name__ == "__main__":
    cli()
