"""CLI tools for casework administration."""

import click
from sqlalchemy.orm import Session

from casework.core.permissions import ROLE_DEFAULTS
from casework.core.security import create_access_token
from casework.db.enums import Role as RoleName
from casework.db.models import CaseType, ExecutiveLevel, Role, User, WorkflowStage
from casework.db.session import SessionLocal, engine
from casework.services import user_service
from casework.services.workflow_stage_service import DEFAULT_STAGE_DEFS

DEFAULT_CASE_TYPES = [
    ("baaseteen", "Baaseteen case type"),
    ("shnd", "SHND case type"),
    ("ces", "CES case type"),
    ("medical", "Medical assistance cases"),
    ("education", "Educational support cases"),
    ("financial", "Financial assistance cases"),
    ("housing", "Housing support cases"),
    ("other", "Other types of cases"),
]

DEFAULT_EXECUTIVE_LEVELS = [
    (1, "Executive Level 1", "First level executive approval"),
    (2, "Executive Level 2", "Second level executive approval"),
    (3, "Executive Level 3", "Third level executive approval"),
]


def seed_defaults(db: Session) -> dict[str, int]:
    """
    Insert built-in roles, the default stage catalog, executive levels and
    case types. Existing rows (matched by name or key) are left alone.

    Returns the number of rows created per kind. Does not commit.
    """
    created = {"roles": 0, "stages": 0, "executive_levels": 0, "case_types": 0}

    for role_name in RoleName:
        if db.query(Role).filter(Role.name == role_name.value).first():
            continue
        grants = {k: list(v) for k, v in ROLE_DEFAULTS.get(role_name.value, {}).items()}
        db.add(Role(name=role_name.value, permissions=grants, is_active=True, is_system_role=True))
        created["roles"] += 1

    for sort_order, stage_def in enumerate(DEFAULT_STAGE_DEFS, start=1):
        exists = db.query(WorkflowStage).filter(
            WorkflowStage.stage_key == stage_def["stage_key"],
            WorkflowStage.case_type_id.is_(None),
        ).first()
        if exists:
            continue
        db.add(WorkflowStage(sort_order=sort_order, is_active=True, **stage_def))
        created["stages"] += 1

    for level_number, name, description in DEFAULT_EXECUTIVE_LEVELS:
        if db.query(ExecutiveLevel).filter(ExecutiveLevel.level_number == level_number).first():
            continue
        db.add(ExecutiveLevel(
            level_number=level_number,
            name=name,
            description=description,
            sort_order=level_number,
            is_active=True,
        ))
        created["executive_levels"] += 1

    for sort_order, (name, description) in enumerate(DEFAULT_CASE_TYPES, start=1):
        if db.query(CaseType).filter(CaseType.name == name).first():
            continue
        db.add(CaseType(name=name, description=description, sort_order=sort_order, is_active=True))
        created["case_types"] += 1

    db.flush()
    return created


@click.group()
def cli():
    """Casework CLI tools."""
    pass


@cli.command()
def init_db():
    """
    Create all tables directly from the models.

    For local development and tests; deployed databases use `alembic upgrade head`.
    """
    from casework.db.base import Base
    import casework.db.models  # noqa: F401

    Base.metadata.create_all(engine)
    click.echo("✓ Tables created")


@cli.command("seed-defaults")
def seed_defaults_command():
    """Seed built-in roles, stages, executive levels and case types."""
    db = SessionLocal()
    try:
        created = seed_defaults(db)
        db.commit()
        for kind, count in created.items():
            click.echo(f"✓ {kind}: {count} created")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()



@cli.command()
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--full-name", required=True)
@click.option("--role", default=RoleName.SUPER_ADMIN.value, show_default=True)
def create_user(username: str, email: str, full_name: str, role: str):
    """
    Create a user with a primary role.

    Example:
        casework create-user --username admin --email admin@example.com --full-name "Admin"
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(
            db, {"username": username, "email": email, "full_name": full_name, "role": role}
        )
        click.echo(f"✓ Created user {user.username} (id {user.id}, role {user.role})")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to issue a token for")
@click.option("--hours", type=int, default=None, help="Lifetime; defaults to JWT_EXPIRES_HOURS")
def issue_token(email: str, hours: int | None):
    """Print a bearer token for an active user."""
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user or not user.is_active:
            click.echo(f"❌ Active user not found: {email}")
            return
        click.echo(create_access_token(user.id, user.token_version, expires_hours=hours))
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        casework revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user_service.revoke_all_sessions(db, user.id)
        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {old_version + 1}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
