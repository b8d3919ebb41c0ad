from .ir_builder import BuildContext, IRBuilder, build_document

__all__ = ["BuildContext", "IRBuilder", "build_document"]
