"""Engineering process and workflow template definitions."""

from .loader import (
    feature_development_process,
    load_process,
    load_process_directory,
    parse_process,
)
from .repository import ProcessRepository
from .templates import BUILTIN_TEMPLATE_DIR, TemplateRepository

__all__ = [
    "BUILTIN_TEMPLATE_DIR",
    "ProcessRepository",
    "TemplateRepository",
    "feature_development_process",
    "load_process",
    "load_process_directory",
    "parse_process",
]
