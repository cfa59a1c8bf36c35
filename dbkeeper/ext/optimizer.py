"""
Optimizer extension of dbkeeper.

Puts the maintenance engine at the application's disposal as
`app.optimizer`. The run coordinator is built on first use from the data
store of `app.db`, runs are serialized through a disk cache lock when a
cache handler is present.

### Example:

```python
for operation in app.optimizer.get_operations():
    app.print(operation.id, operation.label)

report = app.optimizer.run_selected(['expired_transients'], dry_run=True)
app.print(report.render(), end='')
```

"""

from contextlib import nullcontext
from cement.core.meta import MetaMixin
from dbkeeper.core.maintenance import RunParameters, create_optimizer


class DbKeeperOptimizerHandler(MetaMixin):
    """
    Application side of the maintenance engine.

    ### Methods:

    - **get_operations**: Registered operation descriptors in order
    - **parameters**: Run parameters from arguments and config
    - **run_selected**: Run operations and return the report

    """

    class Meta:
        # Unique identifier for this handler
        label = 'dbkeeper.optimizer'

        # Configuration section name in the application config
        config_section = 'optimizer'

        # Default configuration settings
        config_defaults = dict(
            # Retention window of old revisions in days
            revision_days=14,
            # Rows of the autoload report
            autoload_limit=20,
            # Serialize runs through a cache lock
            serialize_runs=True,
            # Key of the run lock
            lock_key='optimizer_run',
            # Seconds after which a stale run lock is released
            lock_expire=3600,
        )

    def __init__(self, app, *args, **kw):
        super(DbKeeperOptimizerHandler, self).__init__(*args, **kw)
        self.app = app
        self._coordinator = None

    def _setup(self, app):
        self.app.config.merge({self._meta.config_section: self._meta.config_defaults}, override=False)

    def _config(self, key, **kwargs):
        return self.app.config.get(self._meta.config_section, key, **kwargs)

    @property
    def coordinator(self):
        if self._coordinator is None:
            self._coordinator = create_optimizer(self.app.db.store, log=self.app.log)
        return self._coordinator

    def get_operations(self):
        return self.coordinator.get_operations()

    def parameters(self, revision_days=None, dry_run=False, autoload_limit=None):
        """
        Build the run parameters.

        Missing values are taken from the `optimizer` config section, the
        revision window is raised to at least one day.

        ### Returns:

        - **RunParameters**: Validated parameters of one run

        """
        if revision_days is None:
            revision_days = self._config('revision_days')
        if autoload_limit is None:
            autoload_limit = self._config('autoload_limit')
        return RunParameters(
            revision_days=max(1, int(revision_days)),
            dry_run=bool(dry_run),
            autoload_limit=max(1, int(autoload_limit)),
        )

    def _run_lock(self):
        locks = getattr(getattr(self.app, 'cache', None), 'locks', None)
        if not self._config('serialize_runs') or locks is None:
            return nullcontext()
        return locks.lock(self._config('lock_key'), expire=self._config('lock_expire'))

    def run_selected(self, requested_ids=None, dry_run=False, revision_days=None, autoload_limit=None):
        """
        Run the requested operations.

        ### Args:

        - **requested_ids** (list, optional): Operation ids, empty runs all
        - **dry_run** (bool): Report intended effects only
        - **revision_days** (int, optional): Retention window of revisions
        - **autoload_limit** (int, optional): Rows of the autoload report

        ### Returns:

        - **RunReport**: The aggregated report of the run

        """
        parameters = self.parameters(revision_days=revision_days, dry_run=dry_run, autoload_limit=autoload_limit)
        with self._run_lock():
            return self.coordinator.run_selected(requested_ids, dry_run=dry_run, parameters=parameters)


def optimizer_extend_app(app):
    app.extend('optimizer', DbKeeperOptimizerHandler(app))
    app.optimizer._setup(app)


def load(app):
    app.hook.register('post_setup', optimizer_extend_app)
