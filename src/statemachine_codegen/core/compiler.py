"""
Code Generator - orchestrates one generation run

Pipeline per run:
    sources -> incremental check -> parse -> business validation -> IR
            -> emitters -> generated code check -> file writer -> manifest

Every stage reports problems as diagnostics on the GenerationResult; a
failure in one source file or one emitter never stops the others.

USAGE:
    generator = CodeGenerator(load_config('codegen.yaml'))
    result = generator.generate()
    print(result.stats)
"""

import glob
import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..build.code_check import GeneratedCodeValidator
from ..build.file_writer import FileWriter, FileWriteResult
from ..build.incremental import IncrementalBuildManager
from ..config import GeneratorConfig
from ..emitters import EmitterKind, create_emitters
from ..errors import CodegenError, EmitterError, SourceReadError
from ..validation.business import BusinessRuleValidator
from .ir import GeneratedMachine
from .model import Diagnostic, GeneratedFile, ParsedMachine, Severity
from .parser import DiagramParser
from .semantic import SemanticGenerator

logger = logging.getLogger(__name__)

DIAGRAM_SUFFIXES = ('.md', '.mmd', '.mermaid')


@dataclass
class GenerationResult:
    """Summary of one run, returned even when everything failed"""
    generated_files: List[GeneratedFile] = field(default_factory=list)
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=lambda: {
        'machines_generated': 0,
        'files_created': 0,
        'lines_of_code': 0,
        'duration_ms': 0,
    })
    write_results: List[FileWriteResult] = field(default_factory=list)
    skipped: bool = False

    @property
    def success(self) -> bool:
        return not self.errors

    def add(self, diagnostic: Diagnostic) -> None:
        if diagnostic.severity == Severity.ERROR:
            self.errors.append(diagnostic)
        else:
            self.warnings.append(diagnostic)

    def error(self, message: str, category: str = '') -> None:
        self.add(Diagnostic(message, Severity.ERROR, category=category))

    def warning(self, message: str, category: str = '') -> None:
        self.add(Diagnostic(message, Severity.WARNING, category=category))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generatedFiles': [f.to_dict() for f in self.generated_files],
            'errors': [d.to_dict() for d in self.errors],
            'warnings': [d.to_dict() for d in self.warnings],
            'stats': {
                'machinesGenerated': self.stats['machines_generated'],
                'filesCreated': self.stats['files_created'],
                'linesOfCode': self.stats['lines_of_code'],
                'durationMs': self.stats['duration_ms'],
            },
            'skipped': self.skipped,
        }


def resolve_sources(patterns: Iterable[str]) -> List[str]:
    """Expand glob patterns and directories into an ordered list of diagram paths.

    Plain paths are kept even when missing so the read error is reported.
    Glob matches that are not files are dropped.
    """
    paths: List[str] = []
    for pattern in patterns:
        pattern = str(pattern)
        if any(char in pattern for char in '*?['):
            matches = sorted(p for p in glob.glob(pattern, recursive=True) if Path(p).is_file())
        elif Path(pattern).is_dir():
            matches = sorted(str(p) for p in Path(pattern).rglob('*')
                             if p.is_file() and p.suffix in DIAGRAM_SUFFIXES)
        else:
            matches = [pattern]
        for match in matches:
            if match not in paths:
                paths.append(match)
    return paths


def _with_source(diagnostic: Diagnostic, source: Optional[str]) -> Diagnostic:
    if not source:
        return diagnostic
    return replace(diagnostic, message=f"{Path(source).name}: {diagnostic.message}")


class CodeGenerator:
    """Runs the full diagram-to-code pipeline for a GeneratorConfig"""

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 writer: Optional[FileWriter] = None,
                 manifest: Optional[IncrementalBuildManager] = None):
        self.config = config or GeneratorConfig()
        self.parser = DiagramParser(self.config.parser)
        self.semantic = SemanticGenerator()
        self.business = BusinessRuleValidator(self.config.validation)
        self.code_check = GeneratedCodeValidator()
        self.writer = writer or FileWriter()
        self._manifest = manifest
        self.emitters = create_emitters(self.enabled_kinds(), test_style=self.config.test_style)

    @property
    def manifest(self) -> IncrementalBuildManager:
        if self._manifest is None:
            self._manifest = IncrementalBuildManager(self.config.resolved_manifest_path)
        return self._manifest

    def enabled_kinds(self) -> List[EmitterKind]:
        kinds = [EmitterKind.MACHINE]
        if self.config.generate_tests:
            kinds.append(EmitterKind.SMOKE_TESTS)
            if self.config.include_transition_tests:
                kinds.append(EmitterKind.TRANSITION_TESTS)
            if self.config.include_error_tests:
                kinds.append(EmitterKind.ERROR_TESTS)
        if self.config.generate_demos:
            kinds.append(EmitterKind.DEMO)
        if self.config.generate_services:
            kinds.append(EmitterKind.SERVICE)
        return kinds

    def generate(self, source_paths: Optional[Iterable[str]] = None,
                 force: bool = False) -> GenerationResult:
        """Generate files for every machine in the given (or configured) sources."""
        started = time.monotonic()
        result = GenerationResult()
        try:
            self._run(source_paths, force, result)
        except CodegenError as e:
            logger.error(f"Code generation failed: {e}")
            result.error(str(e), category='generation')
        result.stats['duration_ms'] = int((time.monotonic() - started) * 1000)
        logger.info(f"Generation finished in {result.stats['duration_ms']}ms: "
                    f"{result.stats['files_created']} file(s), {len(result.errors)} error(s), "
                    f"{len(result.warnings)} warning(s)")
        return result

    def _run(self, source_paths: Optional[Iterable[str]], force: bool,
             result: GenerationResult) -> None:
        paths = resolve_sources(source_paths if source_paths is not None else self.config.sources)
        if not paths:
            result.error('No diagram sources given', category='sources')
            return

        if self._can_skip(paths, force):
            logger.info(f"All {len(paths)} source(s) unchanged, skipping generation")
            result.skipped = True
            return

        machines = self._parse_sources(paths, result)
        if not machines:
            result.error('No machines found in diagram sources', category='sources')
            return

        if self.config.validate_business_rules:
            validation = self.business.validate_parsed(machines, source='batch')
            for issue in validation.errors + validation.warnings:
                result.add(issue)
            if validation.errors and self.config.block_on_errors:
                logger.error(f"Business rule validation failed with {len(validation.errors)} "
                             f"error(s), nothing generated")
                return

        files = []
        for parsed in machines:
            generated = self.semantic.generate(parsed)
            files.extend(self._emit(generated, result))
            result.stats['machines_generated'] += 1

        if self.config.check_generated_code:
            files = self._check(files, result)

        result.generated_files = files
        result.stats['files_created'] = len(files)
        result.stats['lines_of_code'] = sum(f.line_count for f in files)

        if self.config.dry_run:
            logger.info(f"Dry run: {len(files)} file(s) not written")
            return

        if self._write(files, result):
            try:
                self.manifest.commit(paths, [f.path for f in files])
            except OSError as e:
                logger.warning(f"Manifest not updated: {e}")
                result.warning(f"Manifest not updated: {e}", category='manifest')

    def compile_text(self, text: str, machine_name: Optional[str] = None) -> GenerationResult:
        """Render files for diagram text without touching the disk."""
        started = time.monotonic()
        result = GenerationResult()
        parsed = self.parser.parse_text(text, machine_name=machine_name)
        for diagnostic in parsed.diagnostics:
            result.add(diagnostic)
        files = []
        for machine in parsed.machines:
            files.extend(self._emit(self.semantic.generate(machine), result))
            result.stats['machines_generated'] += 1
        if self.config.check_generated_code:
            files = self._check(files, result)
        result.generated_files = files
        result.stats['files_created'] = len(files)
        result.stats['lines_of_code'] = sum(f.line_count for f in files)
        result.stats['duration_ms'] = int((time.monotonic() - started) * 1000)
        return result

    def _can_skip(self, paths: List[str], force: bool) -> bool:
        if force or self.config.dry_run or not self.config.incremental:
            return False
        if not all(Path(p).is_file() for p in paths):
            return False
        try:
            if not self.manifest.is_up_to_date(paths):
                return False
            return not self.manifest.detect_changes(paths).has_changes
        except OSError as e:
            logger.warning(f"Change detection failed, regenerating: {e}")
            return False

    def _parse_sources(self, paths: List[str], result: GenerationResult) -> List[ParsedMachine]:
        machines: List[ParsedMachine] = []
        for path in paths:
            try:
                parsed = self.parser.parse_file(path)
            except SourceReadError as e:
                logger.error(str(e))
                result.error(str(e), category='source_read')
                continue
            for diagnostic in parsed.diagnostics:
                result.add(_with_source(diagnostic, path))
            machines.extend(parsed.machines)
        return machines

    def _emit(self, machine: GeneratedMachine, result: GenerationResult) -> List[GeneratedFile]:
        files = []
        for emitter in self.emitters:
            try:
                files.append(emitter.emit(machine, self.config.output_dir))
            except EmitterError as e:
                logger.error(str(e))
                result.error(str(e), category='emitter')
        return files

    def _check(self, files: List[GeneratedFile], result: GenerationResult) -> List[GeneratedFile]:
        """Drop files that do not parse as Python."""
        valid = []
        for file in files:
            check = self.code_check.validate_file(file)
            for issue in check.errors + check.warnings:
                result.add(replace(issue, message=f"{file.path}: {issue.message}"))
            if check.is_valid:
                valid.append(file)
        return valid

    def _write(self, files: List[GeneratedFile], result: GenerationResult) -> bool:
        ok = True
        for file in files:
            written = self.writer.write(file, overwrite=self.config.overwrite,
                                        backup=self.config.backup)
            result.write_results.append(written)
            if not written.success:
                ok = False
                result.error(f"Failed to write {file.path}: {written.message}", category='write')
        return ok


def generate(config: GeneratorConfig, force: bool = False) -> GenerationResult:
    return CodeGenerator(config).generate(force=force)
