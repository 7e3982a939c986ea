"""
Generated code checker

Parses every emitted Python file with ast before anything is written and
checks the few names other generated files import from it.
"""

import ast
import logging
from typing import Iterable, Set

from ..core.model import FileKind, GeneratedFile
from ..validation.results import ValidationResult

logger = logging.getLogger(__name__)

REQUIRED_MACHINE_NAMES = ('MACHINE_ID', 'INITIAL_STATE', 'create_machine')


def _top_level_names(tree: ast.Module) -> Set[str]:
    names = set()
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            names.update(t.id for t in node.targets if isinstance(t, ast.Name))
        elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            names.add(node.target.id)
    return names


def _count_tests(tree: ast.Module) -> int:
    count = 0
    for node in ast.walk(tree):
        if isinstance(node, ast.FunctionDef) and node.name.startswith('test'):
            count += 1
    return count


class GeneratedCodeValidator:
    """Syntax and structure checks for GeneratedFile contents"""

    def validate_file(self, file: GeneratedFile) -> ValidationResult:
        result = ValidationResult(source=file.path)
        try:
            tree = ast.parse(file.content, filename=file.path)
        except SyntaxError as e:
            result.add_error(f"Syntax error in generated {file.kind.value} file: {e.msg}",
                             line=e.lineno, category='syntax')
            return result

        if file.kind == FileKind.MACHINE:
            names = _top_level_names(tree)
            for required in REQUIRED_MACHINE_NAMES:
                if required not in names:
                    result.add_warning(f"Machine module does not define {required}",
                                       category='structure')
        elif file.kind == FileKind.TEST and _count_tests(tree) == 0:
            result.add_warning('Test module defines no tests', category='structure')
        return result

    def validate_files(self, files: Iterable[GeneratedFile]) -> ValidationResult:
        combined = ValidationResult(source='generated')
        for file in files:
            result = self.validate_file(file)
            for issue in result.errors + result.warnings:
                issue.message = f"{file.path}: {issue.message}"
            combined.merge(result)
        if combined.errors:
            logger.error(f"Generated code check failed with {len(combined.errors)} error(s)")
        return combined
