"""
Core conversion components.
"""

from pomshift.core.assembler import CodeAssembler
from pomshift.core.classifier import ClassInfo, ProjectContext, build_project_context
from pomshift.core.converter import ConversionResult, convert_document
from pomshift.core.locator import LocatorDescriptor, LocatorType, emit_locator, parse_locator
from pomshift.core.pipeline import BatchResult, ConversionError, ConversionPipeline
from pomshift.core.source import SourceDocument
from pomshift.core.translator import RULES, ConversionContext, Rule, translate_statement

__all__ = [
    "CodeAssembler",
    "ClassInfo",
    "ProjectContext",
    "build_project_context",
    "ConversionResult",
    "convert_document",
    "LocatorDescriptor",
    "LocatorType",
    "emit_locator",
    "parse_locator",
    "BatchResult",
    "ConversionError",
    "ConversionPipeline",
    "SourceDocument",
    "RULES",
    "ConversionContext",
    "Rule",
    "translate_statement",
]
