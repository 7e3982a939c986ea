#!/usr/bin/env python3
"""
State Machine Codegen CLI

Generates state machine modules, pytest suites, demos and services from
flowchart diagrams, and inspects the incremental build manifest.

COMMANDS:
    generate [SOURCES...]   Generate code (default sources come from --config)
    manifest stats          Show manifest statistics
    manifest reset          Forget tracked files (next run regenerates everything)
    manifest export         Print the manifest as JSON

USAGE:
    statemachine-codegen generate docs/diagrams/*.md --output-dir src/machines
    statemachine-codegen --config codegen.yaml generate --force
    statemachine-codegen --config codegen.yaml generate --dry-run --json
    statemachine-codegen --output-dir src/machines manifest stats

Exit codes:
    0 - Generation succeeded (warnings allowed)
    1 - Errors were reported
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from tabulate import tabulate

from ..build.incremental import IncrementalBuildManager
from ..config import GeneratorConfig, load_config
from ..core.compiler import CodeGenerator, GenerationResult
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def build_config(args) -> GeneratorConfig:
    config = load_config(args.config) if args.config else GeneratorConfig()
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.manifest:
        config.manifest_path = args.manifest
    if getattr(args, 'dry_run', False):
        config.dry_run = True
    if getattr(args, 'no_tests', False):
        config.generate_tests = False
    if getattr(args, 'test_style', None):
        config.test_style = args.test_style
    return config


def print_summary(result: GenerationResult) -> None:
    if result.skipped:
        print("✅ Sources unchanged since last run, nothing to generate (use --force to rebuild)")
        return

    rows = [[f.machine_id, f.emitter, f.path, f.line_count, f.size] for f in result.generated_files]
    if rows:
        print(tabulate(rows, headers=['Machine', 'Kind', 'Path', 'Lines', 'Bytes'], tablefmt='grid'))

    for warning in result.warnings:
        print(f"  [WARNING] {warning}")
    for error in result.errors:
        print(f"  [ERROR] {error}")

    stats = result.stats
    print(f"\n📊 {stats['machines_generated']} machine(s), {stats['files_created']} file(s), "
          f"{stats['lines_of_code']} lines in {stats['duration_ms']}ms")
    if result.errors:
        print(f"❌ Generation finished with {len(result.errors)} error(s)")
    else:
        print("✅ Generation finished")


def cmd_generate(args) -> int:
    config = build_config(args)
    generator = CodeGenerator(config)
    result = generator.generate(args.sources or None, force=args.force)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_summary(result)
    return 1 if result.errors else 0


def cmd_manifest(args) -> int:
    config = build_config(args)
    manager = IncrementalBuildManager(config.resolved_manifest_path)

    if args.manifest_command == 'reset':
        manager.reset()
        print(f"Manifest reset: {config.resolved_manifest_path}")
    elif args.manifest_command == 'export':
        print(json.dumps(manager.export_manifest(), indent=2))
    else:
        stats = manager.statistics()
        last_update = stats['last_update']
        rows = [
            ['Manifest', str(config.resolved_manifest_path)],
            ['Source files', stats['source_files']],
            ['Generated files', stats['generated_files']],
            ['Last update', datetime.fromtimestamp(last_update / 1000).isoformat() if last_update else 'never'],
            ['Manifest size', stats['manifest_size']],
        ]
        print(tabulate(rows, tablefmt='grid'))
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Generate state machine code from flowchart diagrams',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  statemachine-codegen generate docs/diagrams/*.md --output-dir src/machines
  statemachine-codegen --config codegen.yaml generate --force
  statemachine-codegen --config codegen.yaml manifest stats
        """
    )
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--output-dir', help='Output directory (overrides config)')
    parser.add_argument('--manifest', help='Manifest path (default: <output-dir>/.generation-manifest.json)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    generate_parser = subparsers.add_parser('generate', help='Generate code from diagrams')
    generate_parser.add_argument('sources', nargs='*', help='Diagram files, directories or glob patterns')
    generate_parser.add_argument('--force', action='store_true', help='Regenerate even if sources are unchanged')
    generate_parser.add_argument('--dry-run', action='store_true', help='Render without writing files')
    generate_parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    generate_parser.add_argument('--no-tests', action='store_true', help='Skip generated test suites')
    generate_parser.add_argument('--test-style', choices=['smoke', 'comprehensive'],
                                 help='Generated smoke test style')

    manifest_parser = subparsers.add_parser('manifest', help='Inspect the incremental build manifest')
    manifest_parser.add_argument('manifest_command', choices=['stats', 'reset', 'export'],
                                 nargs='?', default='stats')
    return parser


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == 'generate':
            return cmd_generate(args)
        return cmd_manifest(args)
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
