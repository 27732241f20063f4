"""Flask CLI commands (``flask --app authz.flask_app <command>``)."""
import click
from flask import current_app
from flask.cli import with_appcontext

from authz.core.domains import USER_ROLE
from authz.extensions import db


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create the association tables if they do not exist."""
    from authz.core import models  # noqa: F401  (registers the tables on the metadata)

    db.create_all()
    tables = ", ".join(sorted(db.metadata.tables))
    print(f"[init-db] Tables ready: {tables}")


@click.command("grant-admin")
@click.argument("user_id")
@click.option("--role", "role_id", default=None, help="Administrator role id (defaults to the first of ADMIN_ROLES)")
@with_appcontext
def grant_admin_command(user_id, role_id):
    """Bootstrap an administrator by assigning an admin role to USER_ID."""
    cfg = current_app.config["APP_CONFIG"]
    role_id = role_id or (cfg.admin_roles[0] if cfg.admin_roles else None)
    if not role_id:
        raise click.UsageError("ADMIN_ROLES is empty; pass --role explicitly")
    if role_id not in cfg.admin_roles:
        click.echo(f"[grant-admin] WARNING: {role_id} is not listed in ADMIN_ROLES", err=True)

    engine = current_app.extensions["authz"]
    created = engine.service(USER_ROLE).assign(user_id, role_id)
    state = "granted" if created else "already held"
    print(f"[grant-admin] {user_id}: {role_id} {state}")
