"""
CLI tests.

Tests cover:
- seed_defaults creates the default catalog once
- seed-defaults, create-user, issue-token and revoke-sessions commands
"""

from click.testing import CliRunner

from casework.cli import DEFAULT_CASE_TYPES, cli, seed_defaults
from casework.core.security import decode_access_token
from casework.db.enums import Role
from casework.db.models import User, WorkflowStage


def test_seed_defaults_is_idempotent(db):
    first = seed_defaults(db)
    db.commit()
    second = seed_defaults(db)

    assert first == {
        "roles": len(Role),
        "stages": 8,
        "executive_levels": 3,
        "case_types": len(DEFAULT_CASE_TYPES),
    }
    assert second == {"roles": 0, "stages": 0, "executive_levels": 0, "case_types": 0}


def test_seeded_stage_catalog_order(db, seed):
    stages = db.query(WorkflowStage).order_by(WorkflowStage.sort_order).all()

    assert [s.stage_key for s in stages] == [
        "draft",
        "case_assignment",
        "counseling",
        "cover_letter",
        "welfare_review",
        "executive_approval",
        "finance_disbursement",
        "completed",
    ]
    assert all(s.case_type_id is None for s in stages)


def test_seed_command(db):
    result = CliRunner().invoke(cli, ["seed-defaults"])

    assert result.exit_code == 0
    assert "stages: 8 created" in result.output

    result = CliRunner().invoke(cli, ["seed-defaults"])
    assert "stages: 0 created" in result.output


def test_create_user_issue_and_revoke(db, seed):
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["create-user", "--username", "root", "--email", "root@example.com", "--full-name", "Root"],
    )
    assert result.exit_code == 0
    assert "Created user root" in result.output

    db.expire_all()
    user = db.query(User).filter(User.username == "root").one()
    assert user.role == Role.SUPER_ADMIN.value

    result = runner.invoke(cli, ["issue-token", "--email", "root@example.com"])
    payload = decode_access_token(result.output.strip())
    assert payload["sub"] == str(user.id)
    assert payload["token_version"] == user.token_version

    result = runner.invoke(cli, ["revoke-sessions", "--email", "root@example.com"])
    assert "Token version: 1 → 2" in result.output


def test_issue_token_for_unknown_user(db, seed):
    result = CliRunner().invoke(cli, ["issue-token", "--email", "nobody@example.com"])

    assert "Active user not found" in result.output
