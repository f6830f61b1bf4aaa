"""Kanvaro operator CLI (kanvaroctl)."""

import typer

app = typer.Typer(name="kanvaroctl", help="Kanvaro CLI")
db_app = typer.Typer(help="Database management commands")
cleanup_app = typer.Typer(help="Run cleanup jobs once")
app.add_typer(db_app, name="db")
app.add_typer(cleanup_app, name="cleanup")


@db_app.command("init")
def db_init():
    """Create all tables."""
    from kanvaro.db.session import init_db

    init_db()
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed the default organization and super-admin."""
    from kanvaro.db.session import SessionLocal
    from kanvaro.db.seeds.seed_organization import seed_organization
    from kanvaro.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        org = seed_organization(db)
        seed_super_admin(db, org)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@cleanup_app.command("timers")
def cleanup_timers():
    """Stop timers that exceeded their session cap."""
    from kanvaro.db.session import SessionLocal
    from kanvaro.services.timer_service import timer_service

    db = SessionLocal()
    try:
        result = timer_service.cleanup_expired_timers(db)
    finally:
        db.close()
    typer.echo(
        f"✅ Checked {result['total_checked']}: stopped {result['stopped']}, "
        f"skipped {result['skipped']}, errors {result['errors']}"
    )
    for item in result["results"]:
        if item["status"] == "error":
            typer.echo(f"  ❌ timer {item['timer_id']}: {item['error']}")


@cleanup_app.command("notifications")
def cleanup_notifications(
    organization_id: int = typer.Option(None, help="Only this organization"),
):
    """Delete notifications past retention."""
    from kanvaro.db.session import SessionLocal
    from kanvaro.services.notification_service import notification_service

    db = SessionLocal()
    try:
        details = notification_service.cleanup_expired(db, organization_id=organization_id)
    finally:
        db.close()
    for d in details:
        typer.echo(f"  {d['organization']}: {d['deleted_count']} deleted ({d['retention_days']} days)")
    typer.echo(f"✅ Deleted {sum(d['deleted_count'] for d in details)} notifications")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
):
    """Run the API server."""
    import uvicorn

    uvicorn.run("kanvaro.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
