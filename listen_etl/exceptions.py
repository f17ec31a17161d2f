"""
Listen Analytics ETL - Error Types
Exceptions raised at module seams; driver errors are chained via ``__cause__``
"""

from typing import Optional


class ListenETLError(Exception):
    """Base class for all pipeline errors"""


class ConfigError(ListenETLError):
    """Invalid or missing configuration value"""


class ConnectionClosedError(ListenETLError):
    """Operation attempted on a store handle after teardown"""


class SchemaError(ListenETLError):
    """A DDL operation that later steps depend on failed"""


class LoadError(ListenETLError):
    """
    A bulk-load job failed

    Attributes:
        table: Target table of the failed job
        cause: First error raised by the source, the rewriter or the COPY channel
    """

    def __init__(self, table: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.table = table
        self.cause = cause
        if message is None:
            message = f"Bulk load into '{table}' failed: {cause}"
        super().__init__(message)


class TaskFailedError(ListenETLError):
    """
    A step of the task sequence failed; remaining steps were not run

    Attributes:
        task_name: Name of the failing step
        index: Zero-based position of the step in the sequence
        cause: Exception raised by the step
    """

    def __init__(self, task_name: str, index: int, cause: BaseException):
        self.task_name = task_name
        self.index = index
        self.cause = cause
        super().__init__(f"Task '{task_name}' (step {index + 1}) failed: {cause}")
