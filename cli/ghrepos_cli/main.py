from __future__ import annotations

import typer

from .commands import config_cmd, repos_cmd
from .logging_ import setup_logging


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="ghrepos",
        help="List a GitHub user's repositories.",
        no_args_is_help=True,
    )

    app.command("repos")(repos_cmd.repos)
    app.add_typer(config_cmd.app, name="config")

    @app.callback()
    def _main(
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)

    return app


app = _build_app()
