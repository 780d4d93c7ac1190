"""CLI commands for shortline.

Provides command-line interface using Typer:
- shortline serve: Run the API server
- shortline init-db: Create the relational schema

Usage:
    shortline --help
    shortline init-db
    shortline serve --port 8080
"""

import typer

from shortline.cli.db_cmd import app as db_app
from shortline.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="shortline",
    help="shortline: short-video service consistency core",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(db_app, name="init-db")


@app.callback()
def callback() -> None:
    """shortline: short-video service consistency core."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
