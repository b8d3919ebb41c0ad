from .base import EnumMemberDescriptor, PropertyDescriptor, TypeDescriptor
from .python_types import PythonTypeDescriptor, describe

__all__ = [
    "EnumMemberDescriptor",
    "PropertyDescriptor",
    "PythonTypeDescriptor",
    "TypeDescriptor",
    "describe",
]
