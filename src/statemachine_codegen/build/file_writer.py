"""
File Writer - persists GeneratedFile records

Owns the overwrite and backup policy so the compiler only proposes content.
Failures are reported in FileWriteResult, never raised.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.model import GeneratedFile

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = '.bak'


@dataclass
class FileWriteResult:
    path: str
    success: bool
    written: bool = False
    skipped: bool = False
    backup_path: Optional[str] = None
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'success': self.success,
            'written': self.written,
            'skipped': self.skipped,
            'backup_path': self.backup_path,
            'message': self.message,
        }


class FileWriter:
    """Writes generated files below their proposed paths"""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def write(self, file: GeneratedFile, overwrite: bool = True,
              backup: bool = False) -> FileWriteResult:
        path = Path(file.path)
        backup_path = None
        try:
            if path.exists():
                if path.is_dir():
                    return FileWriteResult(str(path), False, message=f"Path is a directory: {path}")
                if not overwrite:
                    logger.info(f"Skipping existing file: {path}")
                    return FileWriteResult(str(path), True, skipped=True,
                                           message='File exists and overwrite is disabled')
                if backup:
                    backup_path = path.with_name(path.name + BACKUP_SUFFIX)
                    shutil.copy2(path, backup_path)
                    logger.debug(f"Backed up {path} to {backup_path}")

            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(file.content, encoding=self.encoding)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            return FileWriteResult(str(path), False, message=str(e))

        logger.debug(f"Wrote {file.kind.value} file {path} ({file.size} bytes)")
        return FileWriteResult(
            str(path), True, written=True,
            backup_path=str(backup_path) if backup_path else None,
            message=f"Wrote {file.size} bytes",
        )

    def ensure_directory(self, directory) -> bool:
        try:
            Path(directory).mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")
            return False
