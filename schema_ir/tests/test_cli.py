#!/usr/bin/env python3

import json

import pytest
from click.testing import CliRunner

from schema_ir.schema_ir import schema_ir

MODELS = '''
from dataclasses import dataclass
from enum import Enum

from schema_ir import rpc


class Status(Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass
class User:
    """A registered user."""

    id: int
    status: Status
    nickname: str | None = None


@rpc(request=User, response=User)
def save_user(user): ...
'''

BROKEN_MODELS = '''
from enum import Enum


class Mixed(Enum):
    A = 1
    B = "b"
'''

USER_PROTO = """\
syntax = "proto3";

package api;

enum Status {
  STATUS_ACTIVE = 0;
}

message User {
  int64 id = 1;
  Status status = 2;
}
"""


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """A working directory importable as a module root"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.syspath_prepend(str(tmp_path))
    return tmp_path


def write_module(workspace, name, source):
    (workspace / f"{name}.py").write_text(source)
    return name


class TestOpenApiCommand:
    def test_writes_schemas(self, workspace):
        module = write_module(workspace, "cli_models_openapi", MODELS)
        result = CliRunner().invoke(schema_ir, ["openapi", module, "out.json"])
        assert result.exit_code == 0, result.output

        schemas = json.loads((workspace / "out.json").read_text())
        assert list(schemas) == ["Status", "User"]
        assert schemas["User"]["properties"]["status"] == {"$ref": "#/components/schemas/Status"}
        assert schemas["User"]["properties"]["nickname"] == {"type": "string", "nullable": True}

    def test_version_and_full_document(self, workspace):
        module = write_module(workspace, "cli_models_full", MODELS)
        result = CliRunner().invoke(
            schema_ir, ["openapi", "--version", "3.1", "--full-document", f"{module}:User", "out.json"]
        )
        assert result.exit_code == 0, result.output

        document = json.loads((workspace / "out.json").read_text())
        assert document["openapi"] == "3.1.0"
        user = document["components"]["schemas"]["User"]
        assert user["properties"]["nickname"] == {"type": ["string", "null"]}
        assert user["properties"]["status"]["type"] == "string"

    def test_unknown_type_name(self, workspace):
        module = write_module(workspace, "cli_models_missing", MODELS)
        result = CliRunner().invoke(schema_ir, ["openapi", f"{module}:Missing", "out.json"])
        assert result.exit_code == 1
        assert "Missing" in result.output

    def test_conversion_error(self, workspace):
        module = write_module(workspace, "cli_models_broken", BROKEN_MODELS)
        result = CliRunner().invoke(schema_ir, ["openapi", module, "out.json"])
        assert result.exit_code == 1
        assert "Mixed enum types are not supported" in result.output

    def test_missing_module(self, workspace):
        result = CliRunner().invoke(schema_ir, ["openapi", "no_such_module_for_schema_ir", "out.json"])
        assert result.exit_code == 2
        assert "Cannot import module" in result.output


class TestProtobufCommand:
    def test_writes_proto(self, workspace):
        module = write_module(workspace, "cli_models_proto", MODELS)
        result = CliRunner().invoke(schema_ir, ["protobuf", "--package", "users.v1", module, "users.proto"])
        assert result.exit_code == 0, result.output

        text = (workspace / "users.proto").read_text()
        assert text.startswith('syntax = "proto3";\n\npackage users.v1;\n')
        assert "// A registered user.\nmessage User {" in text
        assert "  optional string nickname = 3;" in text
        assert "service DefaultService {\n  rpc SaveUser(User) returns (User);\n}" in text

    def test_config_file(self, workspace):
        module = write_module(workspace, "cli_models_config", MODELS)
        (workspace / "config.json").write_text(json.dumps({"protobuf_package": "shop", "default_service_name": "Shop"}))
        result = CliRunner().invoke(schema_ir, ["protobuf", "--config", "config.json", module, "shop.proto"])
        assert result.exit_code == 0, result.output

        text = (workspace / "shop.proto").read_text()
        assert "package shop;" in text
        assert "service Shop {" in text

    def test_invalid_config(self, workspace):
        module = write_module(workspace, "cli_models_bad_config", MODELS)
        (workspace / "config.json").write_text(json.dumps({"colour": "blue"}))
        result = CliRunner().invoke(schema_ir, ["protobuf", "--config", "config.json", module, "x.proto"])
        assert result.exit_code == 1
        assert "Unknown configuration key: colour" in result.output


class TestDeclarationsCommand:
    def test_from_openapi(self, workspace):
        spec = {
            "openapi": "3.0.3",
            "components": {
                "schemas": {
                    "Status": {"type": "string", "enum": ["active", "disabled"]},
                    "User": {
                        "type": "object",
                        "properties": {"status": {"$ref": "#/components/schemas/Status"}},
                        "required": ["status"],
                    },
                }
            },
        }
        (workspace / "api.json").write_text(json.dumps(spec))
        result = CliRunner().invoke(schema_ir, ["declarations", "api.json", "models.py"])
        assert result.exit_code == 0, result.output

        code = (workspace / "models.py").read_text()
        assert code.startswith("# Generated by schema_ir declarations api.json")
        assert 'type Status = Literal["active", "disabled"]' in code
        assert "class User(TypedDict):\n    status: Status\n" in code

    def test_from_proto(self, workspace):
        (workspace / "users.proto").write_text(USER_PROTO)
        result = CliRunner().invoke(schema_ir, ["declarations", "users.proto", "models.py"])
        assert result.exit_code == 0, result.output

        code = (workspace / "models.py").read_text()
        assert 'type Status = Literal["ACTIVE"]' in code
        assert "    id: int\n    status: Status\n" in code

    def test_invalid_json(self, workspace):
        (workspace / "api.json").write_text("{not json")
        result = CliRunner().invoke(schema_ir, ["declarations", "api.json", "models.py"])
        assert result.exit_code == 1
        assert "api.json is not valid JSON" in result.output

    def test_parse_error(self, workspace):
        (workspace / "broken.proto").write_text('syntax = "proto2";\n')
        result = CliRunner().invoke(schema_ir, ["declarations", "broken.proto", "models.py"])
        assert result.exit_code == 1
        assert "Only proto3 is supported" in result.output


if __name__ == "__main__":
    pytest.main([__file__])
