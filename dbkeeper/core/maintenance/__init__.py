from .results import (
    DEFAULT_AUTOLOAD_LIMIT,
    DEFAULT_REVISION_DAYS,
    OperationResult,
    OperationStatus,
    RunParameters,
    RunReport,
)
from .registry import OperationDescriptor, OperationRegistry
from .store import ContentStore
from .operations import BUILTIN_OPERATIONS, build_registry
from .coordinator import RunCoordinator, create_optimizer

__all__ = [
    'DEFAULT_AUTOLOAD_LIMIT',
    'DEFAULT_REVISION_DAYS',
    'OperationResult',
    'OperationStatus',
    'RunParameters',
    'RunReport',
    'OperationDescriptor',
    'OperationRegistry',
    'ContentStore',
    'BUILTIN_OPERATIONS',
    'build_registry',
    'RunCoordinator',
    'create_optimizer',
]
