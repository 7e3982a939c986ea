#!/usr/bin/env python3
"""
Diagram Validator CLI

Static analysis of flowchart diagram files before code generation.

Checks:
1. Syntax: diagram declaration, transitions, node shapes, brackets, classes
2. Naming: PascalCase states and SCREAMING_SNAKE_CASE events
3. Structure: initial state, reachability, dead ends, final states
4. Category rules: navigation in user menus, routing in core machines
5. Batch rules: duplicate machine names, expected machine categories

Usage:
    # Validate one diagram
    statemachine-codegen-validate docs/diagrams/ussd-menu.md

    # Strict mode (naming violations are errors, warnings fail the run)
    statemachine-codegen-validate --strict docs/diagrams/*.md

    # Quiet mode (errors only)
    statemachine-codegen-validate --quiet docs/diagrams/*.md

Exit codes:
    0 - All validations passed
    1 - Errors found
    2 - Warnings found (only in --strict mode)
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Tuple

from ..config import ValidationConfig
from ..core.parser import DiagramParser
from ..errors import SourceReadError
from ..validation.business import BusinessRuleValidator
from ..validation.diagram import DiagramValidator
from ..validation.results import ValidationResult

logger = logging.getLogger(__name__)


def validate_path(path: str, config: ValidationConfig,
                  parser: DiagramParser) -> ValidationResult:
    """Syntax checks plus business rules for the machines in one file."""
    result = DiagramValidator(config).validate_file(path)
    if not result.is_valid or not config.check_business_rules:
        return result
    try:
        parsed = parser.parse_file(path)
    except SourceReadError as e:
        result.add_error(str(e), category='file_read_error')
        return result
    if parsed.machines:
        result.merge(BusinessRuleValidator(config).validate_parsed(parsed.machines, source=path))
    return result


def print_issue(issue, label: str, color: str, hint_color: str, reset: str) -> None:
    location = f"line {issue.line}: " if issue.line else ''
    print(f"{color}  [{label}] {location}{issue.message}{reset}")
    if issue.suggestion:
        print(f"    {hint_color}💡 {issue.suggestion}{reset}")


def print_results(results: List[ValidationResult], quiet: bool = False,
                  use_color: bool = True) -> Tuple[int, int]:
    """Print validation results and return (error_count, warning_count)"""

    # ANSI color codes
    RED = '\033[91m' if use_color else ''
    YELLOW = '\033[93m' if use_color else ''
    GREEN = '\033[92m' if use_color else ''
    BLUE = '\033[94m' if use_color else ''
    RESET = '\033[0m' if use_color else ''
    BOLD = '\033[1m' if use_color else ''

    total_errors = 0
    total_warnings = 0

    for result in results:
        name = Path(result.source).name

        if result.passed and not result.warnings:
            if not quiet:
                print(f"{GREEN}✅ {name}: All validations passed{RESET}")
            continue

        if result.errors:
            print(f"\n{RED}❌ {BOLD}{name}{RESET}")
        elif result.warnings and not quiet:
            print(f"\n{YELLOW}⚠️  {BOLD}{name}{RESET}")

        total_errors += len(result.errors)
        total_warnings += len(result.warnings)
        for error in result.errors:
            print_issue(error, 'ERROR', RED, BLUE, RESET)
        # warnings are counted even when quiet so --strict still sees them
        if not quiet:
            for warning in result.warnings:
                print_issue(warning, 'WARNING', YELLOW, BLUE, RESET)

    return total_errors, total_warnings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Validate flowchart diagrams before code generation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate all diagrams
  statemachine-codegen-validate docs/diagrams/*.md

  # Strict mode (warnings cause failure)
  statemachine-codegen-validate --strict docs/diagrams/*.md

  # Syntax only
  statemachine-codegen-validate --no-business-rules docs/diagrams/*.md
        """
    )
    parser.add_argument('diagrams', nargs='+', help='Diagram files to validate')
    parser.add_argument('--strict', action='store_true',
                        help='Naming violations are errors; warnings fail the run (exit 2)')
    parser.add_argument('--quiet', action='store_true',
                        help='Only show errors, suppress warnings')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colored output')
    parser.add_argument('--no-business-rules', action='store_true',
                        help='Only check diagram syntax')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = replace(ValidationConfig(), strict_mode=args.strict,
                     check_business_rules=not args.no_business_rules)
    diagram_parser = DiagramParser()
    results = [validate_path(path, config, diagram_parser) for path in args.diagrams]

    print("\n" + "=" * 70)
    print("Flowchart Diagram Validation")
    print("=" * 70)

    total_errors, total_warnings = print_results(
        results,
        quiet=args.quiet,
        use_color=not args.no_color
    )

    print("\n" + "=" * 70)
    total_files = len(results)
    passed_files = sum(1 for r in results if r.passed and not r.warnings)

    if total_errors == 0 and total_warnings == 0:
        print(f"✅ All {total_files} diagram(s) passed validation")
        return 0

    print("📊 Summary:")
    print(f"   Diagrams checked: {total_files}")
    print(f"   Passed: {passed_files}")
    print(f"   Errors: {total_errors}")
    print(f"   Warnings: {total_warnings}")
    print("=" * 70 + "\n")

    if total_errors > 0:
        print("❌ Validation failed: Fix errors before generating code")
        return 1
    if args.strict and total_warnings > 0:
        print("⚠️  Strict mode: Warnings present, treating as failure")
        return 2
    print("⚠️  Warnings present but validation passed")
    return 0


if __name__ == '__main__':
    sys.exit(main())
