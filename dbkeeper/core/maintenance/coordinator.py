"""
Run coordinator of the maintenance engine.

The coordinator resolves requested operation ids against the registry,
invokes the executors in registry order and collects their outcome into a
`RunReport`. Problems of single operations never escape a run, they are
recorded as failed results instead.

### Example:

```python
optimizer = create_optimizer(store, log=app.log)
report = optimizer.run_selected(['analyze_tables'], dry_run=True)
print(report.render())
```

"""

from collections.abc import Mapping
from dataclasses import replace
from time import perf_counter
from cement.utils.misc import minimal_logger
from dbkeeper.core.exc import OperationExecutionError, UnknownOperationError
from dbkeeper.core.utils.date import utc_now
from .operations import build_registry
from .results import OperationResult, RunParameters, RunReport


def _unique(ids):
    # blank ids are kept, they resolve to unknown operations
    seen = []
    for op_id in ids:
        op_id = op_id.strip() if isinstance(op_id, str) else op_id
        if op_id not in seen:
            seen.append(op_id)
    return seen



class RunCoordinator:
    """
    Execute a selection of registered operations.

    ### Args:

    - **registry** (OperationRegistry): Catalog to resolve ids against
    - **log** (object, optional): Logger with `info`, `warning` and `error`
      methods, defaults to a minimal logger of this module
    - **clock** (callable, optional): Returns the current UTC datetime

    ### Notes:

    : The coordinator does not serialize runs. Overlapping invocations on
      the same database must be prevented by the caller.

    """

    def __init__(self, registry, log=None, clock=utc_now):
        self._registry = registry
        self._log = log if log is not None else minimal_logger(__name__)
        self._clock = clock

    @property
    def registry(self):
        return self._registry

    def get_operations(self):
        return self._registry.list()

    def run_selected(self, requested_ids=None, dry_run=False, parameters=None) -> RunReport:
        """
        Run the requested operations and return the aggregated report.

        ### Args:

        - **requested_ids** (iterable, optional): Operation ids to run, an
          empty or missing selection runs every registered operation
        - **dry_run** (bool): Simulate the operations without changes
        - **parameters** (RunParameters, optional): Parameters handed to the
          executors, a mapping of `RunParameters` fields is accepted as well,
          defaults to `RunParameters()`

        ### Returns:

        - **RunReport**: One result per unknown id followed by one result
          per executed operation in registry order

        ### Notes:

        : The run is a dry run when either `dry_run` or `parameters.dry_run`
          is set. Duplicate ids are collapsed. Unknown ids, blank ones
          included, are recorded as failed results and the run goes on.

        """
        if parameters is None:
            parameters = RunParameters()
        elif isinstance(parameters, Mapping):
            parameters = RunParameters(**parameters)
        dry_run = bool(dry_run or parameters.dry_run)
        if parameters.dry_run != dry_run:
            parameters = replace(parameters, dry_run=dry_run)

        requested_ids = list(requested_ids or ())
        requested = _unique(requested_ids)
        unknown = [op_id for op_id in requested if op_id not in self._registry]
        if requested_ids:
            effective = [d for d in self._registry.list() if d.id in requested]
        else:
            effective = self._registry.list()

        report = RunReport(
            requested_ids=tuple(requested),
            effective_ids=tuple(d.id for d in effective),
            dry_run=dry_run,
            parameters=parameters,
            started_at=self._clock(),
        )
        mode = 'dry run' if dry_run else 'live'
        self._log.info(f'Start maintenance run ({mode}): {", ".join(report.effective_ids) or "-"}')

        for op_id in unknown:
            report.results.append(self._unknown(op_id, dry_run))

        for descriptor in effective:
            report.results.append(self._execute(descriptor, dry_run, parameters))

        report.finished_at = self._clock()
        self._log.info(
            f'Finished maintenance run: {len(report.succeeded)} succeeded, '
            f'{len(report.skipped)} skipped, {len(report.failed)} failed'
        )
        return report

    def _unknown(self, op_id, dry_run):
        err = UnknownOperationError(op_id)
        self._log.warning(str(err))
        return OperationResult.failed(str(op_id), str(err), dry_run=dry_run)

    def _execute(self, descriptor, dry_run, parameters):
        self._log.info(f'[start] {descriptor.label}')
        started = perf_counter()
        try:
            outcome = descriptor.executor(dry_run, parameters)
        except Exception as cause:
            err = OperationExecutionError(descriptor.id, cause)
            self._log.error(str(err))
            outcome = OperationResult.failed(descriptor.id, str(err))
        duration = perf_counter() - started

        if isinstance(outcome, OperationResult):
            result = outcome
        else:
            result = OperationResult.succeeded(descriptor.id, '' if outcome is None else str(outcome))
        result = replace(
            result,
            id=descriptor.id,
            label=descriptor.label,
            dry_run=dry_run,
            duration_seconds=duration,
        )
        self._log.info(f'[{result.status.value}] {descriptor.label} ({duration:.2f}s)')
        return result


def create_optimizer(store, log=None, clock=utc_now):
    """
    Build the registry of built-in operations on a data store and return a
    ready coordinator.

    ### Args:

    - **store** (ContentStore): Database the operations work on
    - **log** (object, optional): Logger handed to the coordinator

    ### Returns:

    - **RunCoordinator**: Coordinator over the full built-in catalog

    """
    return RunCoordinator(build_registry(store), log=log, clock=clock)
