"""
CLI helpers: loading target modules and rebuilding the command line.
"""

import importlib
import os
import sys
from pathlib import Path
from types import ModuleType

import click

PROGRAM_NAME = "schema_ir"


def load_target(target: str) -> tuple[ModuleType, list[str] | None]:
    """
    Import the module named by a ``module[:Name,Name]`` target.

    Args:
        target: Dotted module path, optionally followed by a comma separated list of type names

    Returns:
        The module and the requested names (None for all declarations)
    """
    module_name, _, names = target.partition(":")
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import module '{module_name}': {e}", param_hint="TARGET") from e
    requested = [name.strip() for name in names.split(",") if name.strip()] if names else None
    return module, requested


def reconstruct_command_line(click_command: click.Command) -> str:
    """
    Reconstruct the command line from the current Click context.

    Args:
        click_command: Click command object for introspection

    Returns:
        Reconstructed command line string
    """
    try:
        ctx = click.get_current_context()
        cli_args = ctx.params
    except RuntimeError:
        return PROGRAM_NAME

    cmd_parts = [PROGRAM_NAME, click_command.name or ""]
    arguments = []
    options = []

    for param in click_command.params:
        value = cli_args.get(param.name)
        if not value:
            continue

        # paths are shown by file name only
        if isinstance(value, (str, Path)):
            path_obj = Path(str(value))
            formatted_value = path_obj.name if path_obj.exists() else str(value)
        else:
            formatted_value = str(value)

        if isinstance(param, click.Argument):
            arguments.append(formatted_value)
        elif isinstance(param, click.Option):
            if value == param.default:
                continue
            flag = param.opts[0] if param.opts else f"--{param.name}"
            if param.is_flag:
                options.append(flag)
            else:
                options.extend([flag, formatted_value])

    return " ".join(part for part in cmd_parts + arguments + options if part)
