"""Entry point for `python -m cqgateway`."""

from cqgateway.cli.commands import app

if __name__ == "__main__":
    app()
