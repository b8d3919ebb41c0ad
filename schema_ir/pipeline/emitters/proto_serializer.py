"""
Serializes a ProtoModel to .proto text.
"""

from __future__ import annotations

from pathlib import Path

import jinja2

from ..protobuf_model import ProtoModel

TEMPLATES_DIR = Path(__file__).parent.parent.parent.resolve() / "templates"


class ProtoSerializer:
    """Renders ``syntax``, ``package``, imports, enums, messages then services."""

    def __init__(self):
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(TEMPLATES_DIR / "proto"),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
        )
        self.template = self.jinja_env.get_template("file.proto.jinja2")

    def to_text(self, model: ProtoModel) -> str:
        return self.template.render(model=model)


def proto_to_text(model: ProtoModel) -> str:
    """Convenience wrapper around ProtoSerializer."""
    return ProtoSerializer().to_text(model)
