"""Diagram syntax and business rule validators"""

from .business import BusinessRuleValidator
from .diagram import DiagramValidator, validate_diagram
from .results import ValidationResult

__all__ = ['BusinessRuleValidator', 'DiagramValidator', 'ValidationResult', 'validate_diagram']
