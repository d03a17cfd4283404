import click

from tutor_backend.database import get_engine
from tutor_backend.model import Base

@click.command()
def init_db():
    """Create all tables on the configured database. Use alembic for managed deployments."""

    engine = get_engine()
    Base.metadata.create_all(engine)

    click.echo(f"Created tables: {', '.join(sorted(Base.metadata.tables.keys()))}")
