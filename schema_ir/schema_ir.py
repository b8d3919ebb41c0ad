import json
import logging
from pathlib import Path

import click

from .cli_utils import load_target, reconstruct_command_line
from .errors import SchemaIRError
from .pipeline import ConversionConfig, SchemaConverter, collect_types
from .tags import collect_rpc_methods


def _load_config(path: str | None) -> ConversionConfig:
    if path is None:
        return ConversionConfig()
    with open(path) as f:
        try:
            return ConversionConfig.from_dict(json.load(f))
        except (SchemaIRError, TypeError, json.JSONDecodeError) as e:
            raise click.ClickException(f"Invalid configuration {Path(path).name}: {e}") from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log each conversion step")
def schema_ir(verbose):
    """Convert between Python types, OpenAPI schemas and Protobuf definitions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@schema_ir.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--version", "openapi_version", default=None, type=click.Choice(["3.0", "3.1"]))
@click.option("--union-style", default=None, type=click.Choice(["oneOf", "anyOf"]))
@click.option("--coerce-symbols", is_flag=True, default=False, help="Emit Symbol types as strings")
@click.option("--full-document", is_flag=True, default=False, help="Wrap schemas in a complete OpenAPI document")
@click.argument("target", type=str)
@click.argument("output", type=click.Path(resolve_path=True))
def openapi(config, openapi_version, union_style, coerce_symbols, full_document, target, output):
    """Write the OpenAPI schemas of the types in TARGET (module[:Name,...])."""
    config = _load_config(config)
    if coerce_symbols:
        config.coerce_symbols_to_strings = True
    module, names = load_target(target)

    converter = SchemaConverter(config)
    try:
        document = converter.build(collect_types(module, names))
        out = converter.to_openapi(document, openapi_version, union_style, full_document=full_document)
    except (SchemaIRError, KeyError) as e:
        raise click.ClickException(str(e)) from e

    with open(output, "w") as f:
        json.dump(out, f, indent=2)
        f.write("\n")


@schema_ir.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--package", "-p", default=None, type=str, help="Protobuf package name")
@click.option("--coerce-symbols", is_flag=True, default=False, help="Emit Symbol types as strings")
@click.argument("target", type=str)
@click.argument("output", type=click.Path(resolve_path=True))
def protobuf(config, package, coerce_symbols, target, output):
    """Write the .proto definition of the types and rpc methods in TARGET."""
    config = _load_config(config)
    if coerce_symbols:
        config.coerce_symbols_to_strings = True
    module, names = load_target(target)

    converter = SchemaConverter(config)
    try:
        document = converter.build(collect_types(module, names))
        out = converter.to_proto_text(document, package, collect_rpc_methods(module))
    except (SchemaIRError, KeyError) as e:
        raise click.ClickException(str(e)) from e

    with open(output, "w") as f:
        f.write(out)


@schema_ir.command()
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.argument("path", type=click.Path(exists=True, resolve_path=True))
@click.argument("output", type=click.Path(resolve_path=True))
def declarations(config, path, output):
    """Write Python declarations for an OpenAPI (.json) or Protobuf (.proto) file."""
    config = _load_config(config)
    converter = SchemaConverter(config)

    with open(path) as f:
        source = f.read()
    try:
        if Path(path).suffix == ".proto":
            document = converter.from_proto(source)
        else:
            document = converter.from_openapi(json.loads(source))
        out = converter.to_module(document, f"Generated by {reconstruct_command_line(declarations)}")
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{Path(path).name} is not valid JSON: {e}") from e
    except SchemaIRError as e:
        raise click.ClickException(str(e)) from e

    with open(output, "w") as f:
        f.write(out)
