"""Validation results shared by the diagram and business-rule validators."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..core.model import Diagnostic, Severity


@dataclass
class ValidationResult:
    """Results from validating one diagram source or one batch of machines"""
    source: str = ''
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    # alias read by tools/validate.py
    @property
    def passed(self) -> bool:
        return self.is_valid

    def add_error(self, message: str, line=None, suggestion=None, category: str = '') -> Diagnostic:
        issue = Diagnostic(message, Severity.ERROR, line, suggestion, category)
        self.errors.append(issue)
        return issue

    def add_warning(self, message: str, line=None, suggestion=None, category: str = '') -> Diagnostic:
        issue = Diagnostic(message, Severity.WARNING, line, suggestion, category)
        self.warnings.append(issue)
        return issue

    def add(self, issue: Diagnostic) -> None:
        if issue.severity == Severity.ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def merge(self, other: 'ValidationResult') -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def summary(self) -> Dict[str, Any]:
        return {
            'total': len(self.errors) + len(self.warnings),
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'is_valid': self.is_valid,
        }
