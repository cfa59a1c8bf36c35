from cement import ex
from dbkeeper.ext.argparse import Controller


def split_ops(value):
    """
    Split a comma separated list of operation ids. Empty tokens are dropped
    as long as any id is left, a list of blanks only is passed on as is.

    """
    if not value:
        return []
    tokens = [token.strip() for token in value.split(',')]
    return [token for token in tokens if token] or tokens



class OptimizeController(Controller):

    class Meta:
        label = 'optimize'
        stacked_type = 'embedded'
        stacked_on = 'base'

        # text displayed at the top of --help output
        description = 'Run database maintenance operations.'

    def _list(self):
        rows = [[op.id, op.label, op.description] for op in self.app.optimizer.get_operations()]
        self.app.render(rows, handler='tabulate', headers=['id', 'label', 'description'])

    @ex(help='list the maintenance operations')
    def list(self):
        self._list()

    @ex(label='list-ops', help='list the maintenance operations', hide=True)
    def list_ops(self):
        self._list()

    @ex(
        help='run maintenance operations and print the report',
        arguments=[
            (
                ['--ops'],
                dict(
                    dest='ops',
                    action='store',
                    default='',
                    help='comma separated operation ids, all operations when omitted',
                ),
            ),
            (
                ['--dry-run'],
                dict(
                    dest='dry_run',
                    action='store_true',
                    help='report intended effects without changing data',
                ),
            ),
            (
                ['--revision-days'],
                dict(
                    dest='revision_days',
                    action='store',
                    type=int,
                    default=None,
                    help='delete revisions older than days (minimum 1)',
                ),
            ),
        ],
    )
    def run(self):
        pargs = self.app.pargs
        revision_days = None if pargs.revision_days is None else max(1, pargs.revision_days)
        report = self.app.optimizer.run_selected(
            split_ops(pargs.ops),
            dry_run=pargs.dry_run,
            revision_days=revision_days,
        )
        self.app.print(report.render(), end='')
        if not report.ok:
            self.app.exit_code = 1
