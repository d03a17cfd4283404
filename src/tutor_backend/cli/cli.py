import click

from .db import init_db
from .permissions import permissions

@click.group()
def cli():
    pass

cli.add_command(init_db,"init-db")
cli.add_command(permissions,"permissions")

if __name__ == '__main__':
    cli()
