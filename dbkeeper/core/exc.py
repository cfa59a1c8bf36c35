class DbKeeperError(Exception):
    """Generic errors."""

    pass


class MaintenanceError(DbKeeperError):
    """Base class for errors raised by the maintenance engine."""

    pass


class DuplicateOperationError(MaintenanceError):
    """
    Raised when an operation id is registered twice.

    This is a programming error in the catalog setup and is expected to abort
    the application at startup.

    """

    def __init__(self, op_id):
        super().__init__(f'operation already registered: {op_id}')
        self.op_id = op_id


class UnknownOperationError(MaintenanceError):
    """
    Raised when a requested operation id is not in the registry.

    The run coordinator records it as a failed result and keeps going.

    """

    def __init__(self, op_id):
        super().__init__(f'unknown operation: {op_id}')
        self.op_id = op_id


class OperationExecutionError(MaintenanceError):
    """
    Raised for a failure inside an operation executor.

    Wraps the original exception in `cause` and never leaves the
    run coordinator.

    """

    def __init__(self, op_id, cause):
        detail = str(cause).strip() or cause.__class__.__name__
        super().__init__(f'{op_id} failed: {cause.__class__.__name__}: {detail}')
        self.op_id = op_id
        self.cause = cause
