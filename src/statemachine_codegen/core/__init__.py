"""Diagram parsing, IR building and the generation pipeline"""

from .model import Diagnostic, MachineCategory, ParsedMachine, ParseResult
from .parser import DiagramParser, parse_file, parse_text
from .semantic import SemanticGenerator, generate_machine

__all__ = [
    'Diagnostic',
    'DiagramParser',
    'MachineCategory',
    'ParseResult',
    'ParsedMachine',
    'SemanticGenerator',
    'generate_machine',
    'parse_file',
    'parse_text',
]
