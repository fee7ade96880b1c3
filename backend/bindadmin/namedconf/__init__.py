# named.conf lifecycle engine

from .backup import BackupRecord, BackupStore
from .diff import DiffLine, DiffLineKind, DiffResult, DiffStats, diff, diff_files
from .elements import ConfigElement, ElementKind
from .generator import NamedConfGenerator
from .parser import NamedConfParser
from .validator import CheckerRun, NamedConfValidator, ValidationResult, run_checker

__all__ = [
    'BackupRecord',
    'BackupStore',
    'CheckerRun',
    'ConfigElement',
    'DiffLine',
    'DiffLineKind',
    'DiffResult',
    'DiffStats',
    'ElementKind',
    'NamedConfGenerator',
    'NamedConfParser',
    'NamedConfValidator',
    'ValidationResult',
    'diff',
    'diff_files',
    'run_checker',
]
