"""EmployDEX CLI tool (employdex)."""

import typer

app = typer.Typer(name="employdex", help="EmployDEX administration CLI")
db_app = typer.Typer(help="Database management commands")
users_app = typer.Typer(help="User account commands")
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")


@db_app.command("init")
def db_init():
    """Create all tables."""
    import employdex.models  # noqa: F401
    from employdex.db.base import Base
    from employdex.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo(f"✅ Tables created on {engine.url.render_as_string(hide_password=True)}")


@db_app.command("seed")
def db_seed(
    sample: bool = typer.Option(False, "--sample", help="Also seed demo roles and users"),
):
    """Seed permissions, system roles, feature toggles, admin, and sample data."""
    from employdex.db.session import SessionLocal
    from employdex.db.seeds.seed_rbac import seed_rbac
    from employdex.db.seeds.seed_admin import seed_admin
    from employdex.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        seed_rbac(db)
        seed_admin(db)
        if sample:
            seed_sample_data(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset():
    """Drop and recreate every table (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP all tables. Continue?")
    if not confirm:
        raise typer.Abort()
    import employdex.models  # noqa: F401
    from employdex.db.base import Base
    from employdex.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Database reset")


@users_app.command("set-password")
def set_password(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Set a user's password, bypassing the reset flow."""
    from employdex.core.security import hash_password
    from employdex.db.session import SessionLocal, transaction
    from employdex.models import User
    from employdex.schemas.schemas import check_password_strength

    try:
        check_password_strength(password)
    except ValueError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            typer.echo(f"❌ No user with email {email}")
            raise typer.Exit(code=1)
        with transaction(db):
            user.hashed_password = hash_password(password)
    finally:
        db.close()
    typer.echo(f"✅ Password updated for {email}")


@app.command("hash-password")
def hash_password_cmd(
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Print a bcrypt hash for the given password."""
    from employdex.core.security import hash_password

    typer.echo(hash_password(password))


@app.command("check-permissions")
def check_permissions():
    """Show each role's permission count against the catalog."""
    from employdex.db.session import SessionLocal
    from employdex.models import Role
    from employdex.services import rbac_service

    db = SessionLocal()
    try:
        catalog = rbac_service.catalog_ids(db)
        typer.echo(f"Catalog: {len(catalog)} permissions")
        problems = 0
        for role in db.query(Role).order_by(Role.name).all():
            granted = rbac_service.role_permission_ids(db, role.id)
            flag = ""
            if role.is_admin and granted != catalog:
                flag = f"  ❌ missing {len(catalog - granted)}"
                problems += 1
            typer.echo(f"  [{role.id}] {role.name}: {len(granted)}/{len(catalog)}{flag}")
    finally:
        db.close()
    if problems:
        raise typer.Exit(code=1)
    typer.echo("✅ Admin role holds every permission")


@app.command("login")
def login(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    base_url: str = typer.Option("http://localhost:8000", help="API base URL"),
):
    """Log in against a running server and print the bearer token."""
    import httpx

    resp = httpx.post(
        f"{base_url}/api/authentication/login",
        json={"identifier": {"kind": "email", "value": email}, "password": password},
        timeout=30,
    )
    if resp.status_code != 200:
        typer.echo(f"❌ {resp.status_code}: {resp.json().get('error')}")
        raise typer.Exit(code=1)
    typer.echo(resp.json()["token"])


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the API server."""
    import uvicorn
    from employdex.core.config import settings
    from employdex.core.exceptions import ConfigurationError

    try:
        settings.validate_jwt_secret()
    except ConfigurationError as e:
        typer.echo(f"❌ {e.message}")
        raise typer.Exit(code=1)
    uvicorn.run("employdex.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
