import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.orm import configure_mappers

from ..models.mixins import (
    DeletableMixin,
    LifecycleDateTimeMixin,
    PositionAwareMixin,
    UniqueActiveMixin,
)
from ..utils.logging_utils import get_logger

logger = get_logger("cli")

CAPABILITIES = (
    ("lifecycle", LifecycleDateTimeMixin),
    ("deletable", DeletableMixin),
    ("sortable", PositionAwareMixin),
    ("unique-active", UniqueActiveMixin),
)


def capabilities_of(class_):
    return [name for name, mixin in CAPABILITIES if issubclass(class_, mixin)]


def iter_mapped_classes(bases):
    seen = set()
    for base in bases:
        registry = getattr(base, "registry", None)
        if registry is None:
            continue
        for mapper in sorted(registry.mappers, key=lambda m: m.class_.__name__):
            if mapper.class_ in seen:
                continue
            seen.add(mapper.class_)
            yield mapper


@click.group("behaviors")
def behaviors_command():
    """Inspect ORM behaviors applied to mapped models."""


@behaviors_command.command("list")
@click.option("--capability", "-c", type=click.Choice([name for name, _ in CAPABILITIES]), default=None,
              help="Only show models with this capability")
@with_appcontext
def list_command(capability):
    """List mapped models with their table name and capabilities."""
    extension = current_app.extensions.get("orm_behaviors")
    if extension is None:
        raise click.ClickException("orm_behaviors extension is not initialised on this app")

    configure_mappers()

    shown = 0
    for mapper in iter_mapped_classes(extension.models):
        caps = capabilities_of(mapper.class_)
        if capability and capability not in caps:
            continue
        table = getattr(mapper.local_table, "name", str(mapper.local_table))
        click.echo(f"{mapper.class_.__name__}\t{table}\t{', '.join(caps) or '-'}")
        shown += 1

    if not shown:
        click.echo("ℹ No mapped models found")
    logger.info("Listed %s mapped models", shown, extra={"capability": capability})
