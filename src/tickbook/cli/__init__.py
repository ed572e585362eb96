import click

from tickbook.version import __version__


@click.group()
@click.version_option(version=__version__)
def cli() -> None: ...


from . import config, pool, position, tick  # noqa: F401, E402
