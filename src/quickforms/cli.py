from __future__ import annotations

import typer

from quickforms.app import create_app
from quickforms.config import Settings
from quickforms.errors import ValidationError
from quickforms.logging_config import setup_logging
from quickforms.storage import init_storage
from quickforms.stores import UserStore

cli = typer.Typer(add_completion=False)


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    settings = Settings()
    setup_logging(settings.log_level)
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    uvicorn.run(create_app(settings), host=resolved_host, port=resolved_port)


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    ctx.obj = {"host": host, "port": port}
    if ctx.invoked_subcommand is None:
        run_server(host, port)


@cli.command()
def run(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


@cli.command("create-user")
def create_user(
    name: str = typer.Option(..., help="Display name"),
    email: str = typer.Option(..., help="Sign-in email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    """Register an account without going through the web sign-up page."""
    settings = Settings()
    setup_logging(settings.log_level)
    storage = init_storage(settings)
    try:
        user = UserStore(storage).register(name, email, password)
    except ValidationError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1)
    finally:
        storage.close()
    typer.echo(f"Created user {user['email']} ({user['id']})")


if __name__ == "__main__":
    cli()
