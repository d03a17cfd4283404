import json
import click

from tutor_backend.database import get_session_factory
from tutor_backend.interface.teacher_permissions import TeacherPermissionList
from tutor_backend.permissions.evaluator import has_permission
from tutor_backend.permissions.ledger import TeacherPermissionLedger

def _session():
    return get_session_factory()()

@click.command()
@click.option("--teacher", "-t", "teacher_id", required=True)
@click.option("--material", "-m", "exam_material_id", required=True)
@click.option("--action", "-a", "action", default="view", show_default=True)
def check(teacher_id, exam_material_id, action):

    db = _session()
    try:
        allowed = has_permission(db, teacher_id, exam_material_id, action)
    finally:
        db.close()

    click.echo(f"{action}: {'granted' if allowed else 'denied'}")
    if not allowed:
        raise SystemExit(1)

@click.command()
def expired():
    """List grants still flagged active whose expiry has passed."""

    db = _session()
    try:
        grants = TeacherPermissionLedger(db).expired()

        if len(grants) == 0:
            click.echo("No expired permissions")
            return

        for grant in grants:
            entry = TeacherPermissionList.model_validate(grant, from_attributes=True)
            click.echo(f"{entry.id}  {entry.teacher_name}  {entry.exam_material_id}  {entry.permission_type.value}  expired {entry.expires_at.isoformat()}")
    finally:
        db.close()

@click.command()
def stats():

    db = _session()
    try:
        result = TeacherPermissionLedger(db).stats()
    finally:
        db.close()

    click.echo(json.dumps(result.model_dump(), indent=2))

@click.group()
def permissions():
    pass

permissions.add_command(check,"check")
permissions.add_command(expired,"expired")
permissions.add_command(stats,"stats")
