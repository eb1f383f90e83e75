"""CLI commands for AIcademy.

- init-db: Create the database schema
- serve: Run the Web API
- demo-setup / demo-cleanup: Manage demo accounts and content
- confirm-email: Confirm an account when email confirmation is required
- list-classes: Show classes with their join codes
- check-llm: Check the tutor's chat-completion server
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from aicademy.db.database import get_db, get_db_path, init_db

app = typer.Typer(
    name="aicademy",
    help="Learning management backend with an AI tutor.",
    no_args_is_help=True,
)

console = Console()


def _init(db: str | None) -> None:
    init_db(Path(db) if db else None)


@app.command(name="init-db")
def init_db_command(
    db: str | None = typer.Option(None, "--db", help="Database file (defaults to config)"),
) -> None:
    """Create the database file and schema."""
    _init(db)
    console.print(f"[green]✓ Database ready[/green] [dim]{get_db_path()}[/dim]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API with uvicorn."""
    import uvicorn

    console.print(f"[bold]AIcademy API[/bold] on http://{host}:{port}")
    uvicorn.run("aicademy.web.api:app", host=host, port=port, reload=reload)


@app.command(name="demo-setup")
def demo_setup(
    db: str | None = typer.Option(None, "--db", help="Database file (defaults to config)"),
) -> None:
    """Create the demo accounts and seed their classes and modules."""
    from aicademy.core.demo import setup_demo_content

    _init(db)
    result = setup_demo_content()

    console.print("[green]✓ Demo content ready[/green]")
    console.print(f"  [dim]teacher:[/dim]     {result.teacher_id}")
    console.print(f"  [dim]student:[/dim]     {result.student_id}")
    console.print(
        f"  [dim]created:[/dim]     {result.classes_created} classes, "
        f"{result.modules_created} modules, {result.assignments_created} assignments"
    )


@app.command(name="demo-cleanup")
def demo_cleanup(
    db: str | None = typer.Option(None, "--db", help="Database file (defaults to config)"),
) -> None:
    """Delete timestamped demo accounts."""
    from aicademy.core.demo import cleanup_demo_accounts

    _init(db)
    deleted = cleanup_demo_accounts()
    if deleted:
        console.print(f"[green]✓ Deleted {deleted} demo account(s)[/green]")
    else:
        console.print("[yellow]No demo accounts to clean up[/yellow]")


@app.command(name="confirm-email")
def confirm_email_command(
    email: str = typer.Argument(..., help="Account email"),
    db: str | None = typer.Option(None, "--db", help="Database file (defaults to config)"),
) -> None:
    """Confirm an account's email so it can sign in."""
    from aicademy.auth.provider import confirm_email, get_user_by_email

    _init(db)
    with get_db() as conn:
        user = get_user_by_email(conn, email)
        if user is not None:
            confirm_email(conn, user.id)

    if user is None:
        console.print(f"[red]✗ No account for {email}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓ Confirmed {user.email}[/green]")


@app.command(name="list-classes")
def list_classes(
    db: str | None = typer.Option(None, "--db", help="Database file (defaults to config)"),
) -> None:
    """List every class with its teacher and join code."""
    from aicademy.db.classes_repository import list_all_classes

    _init(db)
    with get_db() as conn:
        rows = list_all_classes(conn)

    if not rows:
        console.print("[yellow]No classes yet[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Class")
    table.add_column("Code")
    table.add_column("Teacher")
    table.add_column("Members", justify="right")
    for cls, teacher_name, members in rows:
        table.add_row(cls.name, cls.code, teacher_name, str(members))
    console.print(table)


@app.command(name="check-llm")
def check_llm(
    provider: str | None = typer.Option(None, "--provider", help="Provider name from config"),
) -> None:
    """Check that the tutor's chat-completion server answers."""
    from aicademy.llm.client import LLMClient

    client = LLMClient(provider=provider)
    if client.is_available():
        console.print(
            f"[green]✓ {client.config.provider} available[/green] "
            f"[dim]{client.config.base_url} ({client.config.model})[/dim]"
        )
    else:
        console.print(f"[red]✗ {client.config.provider} not reachable at {client.config.base_url}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
