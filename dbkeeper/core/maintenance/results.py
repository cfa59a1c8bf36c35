"""
Value types passed in and out of a maintenance run.

- `RunParameters`: options of one run
- `OperationResult`: outcome of one operation
- `RunReport`: all outcomes of one run, renderable as a text block

"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from dbkeeper.core.utils.date import to_utc_timestring

DEFAULT_REVISION_DAYS = 14
DEFAULT_AUTOLOAD_LIMIT = 20

# width of the separator lines in a rendered report
RULE = '-' * 60


class OperationStatus(Enum):
    SUCCEEDED = 'succeeded'
    SKIPPED = 'skipped'
    FAILED = 'failed'


def _positive_int(name, value):
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f'{name} must be a positive integer, got {value!r}')


@dataclass(frozen=True)
class RunParameters:
    """
    Options handed to every executor of a run.

    ### Attributes:

    - **revision_days** (int): Retention window of `delete_old_revisions`
    - **dry_run** (bool): Suppress all mutating effects
    - **autoload_limit** (int): Number of rows in the autoload report

    ### Raises:

    - **ValueError**: If `revision_days` or `autoload_limit` is not a
      positive integer

    """

    revision_days: int = DEFAULT_REVISION_DAYS
    dry_run: bool = False
    autoload_limit: int = DEFAULT_AUTOLOAD_LIMIT

    def __post_init__(self):
        _positive_int('revision_days', self.revision_days)
        _positive_int('autoload_limit', self.autoload_limit)


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a single operation.

    `rows_affected` counts changed rows, in dry-run mode the rows that would
    have been changed. It is `None` for operations that do not change rows.

    """

    id: str
    status: OperationStatus
    summary: str
    dry_run: bool = False
    label: Optional[str] = None
    rows_affected: Optional[int] = None
    duration_seconds: float = 0.0

    @classmethod
    def succeeded(cls, op_id, summary, **kw):
        return cls(op_id, OperationStatus.SUCCEEDED, summary, **kw)

    @classmethod
    def skipped(cls, op_id, summary, **kw):
        return cls(op_id, OperationStatus.SKIPPED, summary, **kw)

    @classmethod
    def failed(cls, op_id, summary, **kw):
        return cls(op_id, OperationStatus.FAILED, summary, **kw)

    @property
    def ok(self):
        return self.status is not OperationStatus.FAILED

    def render(self):
        title = self.label or self.id
        mark = {
            OperationStatus.SUCCEEDED: '[done]  ',
            OperationStatus.SKIPPED: '[skip]  ',
            OperationStatus.FAILED: '[failed]',
        }[self.status]
        lines = [f'[start] {title}']
        if self.summary:
            lines.append(self.summary.rstrip())
        lines.append(f'{mark} {title} ({self.duration_seconds:.2f}s)')
        return '\n'.join(lines)


@dataclass
class RunReport:
    """
    Aggregated outcome of one run.

    ### Attributes:

    - **requested_ids** (tuple): Ids as requested, empty means all
    - **effective_ids** (tuple): Registered ids that were executed, in order
    - **dry_run** (bool): Mode of the run
    - **parameters** (RunParameters): Parameters handed to the executors
    - **started_at** (datetime): Start of the run (UTC)
    - **finished_at** (datetime): End of the run (UTC)
    - **results** (list): One OperationResult per unknown or executed id

    """

    requested_ids: Tuple[str, ...]
    effective_ids: Tuple[str, ...]
    dry_run: bool
    parameters: RunParameters
    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[OperationResult] = field(default_factory=list)

    def result(self, op_id) -> Optional[OperationResult]:
        for result in self.results:
            if result.id == op_id:
                return result
        return None

    def by_status(self, status) -> List[OperationResult]:
        return [result for result in self.results if result.status is status]

    @property
    def succeeded(self):
        return self.by_status(OperationStatus.SUCCEEDED)

    @property
    def skipped(self):
        return self.by_status(OperationStatus.SKIPPED)

    @property
    def failed(self):
        return self.by_status(OperationStatus.FAILED)

    @property
    def ok(self):
        return len(self.failed) == 0

    @property
    def duration_seconds(self):
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def render(self):
        """
        Render the report as one preformatted text block.

        Front-ends show this block as-is, there is one section per result
        in execution order framed by separator lines.

        """
        requested = ', '.join(self.requested_ids) if self.requested_ids else '(all)'
        lines = [
            f'DB Optimizer {to_utc_timestring(self.started_at)}',
            f'Dry Run: {"YES" if self.dry_run else "NO"}',
            f'Revision days: {self.parameters.revision_days}',
            f'Requested operations: {requested}',
            f'Selected operations: {", ".join(self.effective_ids)}',
            RULE,
        ]
        for result in self.results:
            lines.append(result.render())
            lines.append(RULE)
        lines.append(
            f'Finished: {len(self.succeeded)} succeeded, {len(self.skipped)} skipped, '
            f'{len(self.failed)} failed in {self.duration_seconds:.2f}s'
        )
        return '\n'.join(lines) + '\n'

    def __str__(self):
        return self.render()
