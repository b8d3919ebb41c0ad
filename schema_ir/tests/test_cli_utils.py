#!/usr/bin/env python3

import click
import pytest

from schema_ir.cli_utils import load_target, reconstruct_command_line
from schema_ir.schema_ir import declarations


class TestCliUtils:
    """Test cases for CLI utilities"""

    def test_reconstruct_command_line_without_context(self):
        """Without an active Click context the program name is returned"""
        assert reconstruct_command_line(declarations) == "schema_ir"

    def test_reconstruct_command_line_with_context(self):
        """Arguments are listed after the subcommand, paths by file name"""
        with click.Context(declarations) as ctx:
            ctx.params = {"config": None, "path": "/does/not/exist/api.json", "output": "models.py"}
            result = reconstruct_command_line(declarations)
        assert result == "schema_ir declarations /does/not/exist/api.json models.py"

    def test_load_target(self):
        module, names = load_target("json:loads, dumps")
        assert module.__name__ == "json"
        assert names == ["loads", "dumps"]

    def test_load_target_without_names(self):
        module, names = load_target("json")
        assert names is None

    def test_load_target_missing_module(self):
        with pytest.raises(click.BadParameter):
            load_target("no_such_module_for_schema_ir")


if __name__ == "__main__":
    pytest.main([__file__])
