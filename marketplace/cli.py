"""Marketplace CLI tool."""

import typer

app = typer.Typer(name="marketplace", help="Marketplace API CLI")
db_app = typer.Typer(help="Database management commands")
token_app = typer.Typer(help="Access token utilities")
app.add_typer(db_app, name="db")
app.add_typer(token_app, name="token")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    from marketplace.db.base import Base
    from marketplace.db.session import engine
    import marketplace.models  # noqa: F401  (registers every model)

    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed roles, modules with admin permissions, and the super-admin."""
    from marketplace.db.session import SessionLocal
    from marketplace.db.seeds.seed_roles import seed_roles
    from marketplace.db.seeds.seed_modules import seed_modules
    from marketplace.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_roles(db)
        seed_modules(db)
        seed_super_admin(db)
    finally:
        db.close()


@token_app.command("issue")
def token_issue(
    email: str = typer.Argument(..., help="Principal email"),
    principal_type: str = typer.Option("user", "--type", "-t", help="Principal type"),
):
    """Print an access token for an existing principal."""
    from marketplace.db.session import SessionLocal
    from marketplace.core.security import create_access_token
    from marketplace.core.exceptions import AuthenticationError
    from marketplace.services.principal_resolver import principal_resolver

    db = SessionLocal()
    try:
        try:
            principal = principal_resolver.find_by_email(db, principal_type, email)
        except AuthenticationError:
            typer.echo(f"Unknown principal type '{principal_type}'", err=True)
            raise typer.Exit(code=1)
        if principal is None:
            typer.echo(f"No {principal_type} with email {email}", err=True)
            raise typer.Exit(code=1)
        typer.echo(create_access_token(principal, principal_type))
    finally:
        db.close()


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("marketplace.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
