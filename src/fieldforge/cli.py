"""CLI main entry point."""

import json
import logging
from pathlib import Path

import click

from .config import Config, write_default_config
from .errors import AuthoringValidationError, FieldforgeException
from .log import setup as setup_log
from .preview import PreviewHost
from .storages import get_storage
from .transfer import export_schema, import_schema

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "fieldforge.toml"


def load_config(config_path: str, required: bool = False) -> Config:
    """Load the configuration file, or fall back to defaults when it is absent."""
    if not required and not Path(config_path).exists():
        return Config()
    return Config.load_from_file(config_path)


def read_document(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot read {path}: {e}")


def echo_errors(errors: list[str]):
    for error in errors:
        click.echo(f"  - {error}", err=True)


@click.group()
@click.option("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
@click.pass_context
def cli(ctx, config: str):
    """fieldforge - endpoint type form schema authoring tool."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    try:
        cfg = load_config(config)
    except FieldforgeException as e:
        raise click.ClickException(str(e))
    ctx.obj["config"] = cfg
    setup_log(logfile=cfg.log.file, console_level=cfg.log.level)


@cli.command(name="validate")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def validate(file: str):
    """Statically validate a schema document."""
    try:
        schema = import_schema(read_document(file), require_fields=True)
    except AuthoringValidationError as e:
        click.echo(f"{file}: {len(e.errors)} problem(s) found", err=True)
        echo_errors(e.errors)
        raise click.ClickException("Validation failed")
    click.echo(f"{file}: OK ({schema.type_code}, {len(schema.fields)} field(s))")


@cli.command(name="preview")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", "-m", default=None, help="Render only this mode")
@click.option("--values", "values_json", default=None, help="Form values as a JSON object")
@click.option("--raw", is_flag=True, default=False, help="Print the raw schema document")
@click.pass_context
def preview(ctx, file: str, mode: str | None, values_json: str | None, raw: bool):
    """Show how a schema renders in each of its modes."""
    cfg = ctx.obj["config"]
    values = None
    if values_json:
        try:
            values = json.loads(values_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e.msg}", param_hint="--values")
        if not isinstance(values, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--values")

    try:
        schema = import_schema(read_document(file))
        host = PreviewHost(schema, values=values, default_label=cfg.preview.default_label)
        if raw:
            click.echo(host.raw())
            return
        click.echo(host.render_text(modes=[mode] if mode else None), nl=False)
    except AuthoringValidationError as e:
        echo_errors(e.errors)
        raise click.ClickException("Invalid schema")
    except KeyError as e:
        raise click.ClickException(e.args[0])


@cli.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_(ctx, file: str):
    """Validate a schema document and save it to storage."""
    cfg = ctx.obj["config"]
    try:
        schema = import_schema(read_document(file), require_fields=True)
        location = get_storage(config=cfg).save(schema)
        click.echo(f"Imported '{schema.type_code}' to {location}")
    except AuthoringValidationError as e:
        click.echo(f"{file}: import rejected", err=True)
        echo_errors(e.errors)
        raise click.ClickException("Import rejected")
    except FieldforgeException as e:
        logger.error(f"Import failed: {e}", exc_info=True)
        raise click.ClickException(str(e))


@cli.command(name="export")
@click.argument("type_code")
@click.option("--output", "-o", default=None, help="Write to this file instead of stdout")
@click.pass_context
def export(ctx, type_code: str, output: str | None):
    """Export a stored schema as JSON."""
    cfg = ctx.obj["config"]
    try:
        content = export_schema(get_storage(config=cfg).load(type_code))
    except FieldforgeException as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if output is None:
        click.echo(content)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content + "\n", encoding="utf-8")
    click.echo(f"Exported '{type_code}' to {path}")


@cli.command(name="list")
@click.pass_context
def list_(ctx):
    """List stored schemas."""
    cfg = ctx.obj["config"]
    try:
        storage = get_storage(config=cfg)
        click.echo("typeCode\ttypeName\tfields")
        for type_code in storage.list():
            schema = storage.load(type_code)
            click.echo(f"{schema.type_code}\t{schema.type_name}\t{len(schema.fields)}")
    except FieldforgeException as e:
        logger.error(f"Listing failed: {e}", exc_info=True)
        raise click.ClickException(str(e))


@cli.command(name="init-config")
@click.argument("path", default=DEFAULT_CONFIG_PATH)
def init_config(path: str):
    """Write a default configuration file."""
    try:
        written = write_default_config(path)
    except FieldforgeException as e:
        raise click.ClickException(str(e))
    click.echo(f"Wrote {written}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
