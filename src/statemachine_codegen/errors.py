"""
Exception hierarchy for the diagram compiler.

Recoverable problems found while parsing or validating a diagram are never
raised to callers; they are collected as Diagnostic records. The exceptions
here cover the remaining cases:

- DiagramSyntaxError: raised by the statement lexer for a single malformed
  line, always caught by the parser and turned into a diagnostic
- SourceReadError: a diagram source file is missing or cannot be decoded
- ConfigurationError: a configuration value or file is unusable
- EmitterError: a template failed to render for one emitter
"""

from typing import Optional


class CodegenError(Exception):
    """Base class for all compiler errors."""


class DiagramSyntaxError(CodegenError):
    """A single diagram statement could not be parsed."""

    def __init__(self, message: str, line: Optional[int] = None,
                 severity: str = 'warning', suggestion: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.severity = severity
        self.suggestion = suggestion


class SourceReadError(CodegenError):
    """Diagram source could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read diagram source {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigurationError(CodegenError):
    """Invalid generator or validator configuration."""


class EmitterError(CodegenError):
    """An emitter failed to render its artifact."""

    def __init__(self, emitter: str, machine_id: str, reason: str):
        super().__init__(f"{emitter} emitter failed for {machine_id}: {reason}")
        self.emitter = emitter
        self.machine_id = machine_id
        self.reason = reason
