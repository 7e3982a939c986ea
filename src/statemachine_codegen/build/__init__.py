"""Incremental build manifest, file writer and generated code checks"""

from .code_check import GeneratedCodeValidator
from .file_writer import FileWriter, FileWriteResult
from .incremental import ChangeDetectionResult, IncrementalBuildManager

__all__ = [
    'ChangeDetectionResult',
    'FileWriteResult',
    'FileWriter',
    'GeneratedCodeValidator',
    'IncrementalBuildManager',
]
