"""Entry point for running the labeler as a module.

Allows running the application with:
    python -m labeler run

This delegates to the Typer CLI app.
"""

from labeler.cli import app

if __name__ == "__main__":
    app()
