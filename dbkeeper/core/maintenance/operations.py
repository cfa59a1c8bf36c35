"""
Built-in maintenance operations.

Every executor takes the `ContentStore` as its first argument followed by
the `(dry_run, parameters)` pair of the executor contract. `build_registry`
binds the store and registers the catalog in execution order: data deletes
first, then storage rebuilds, then statistics, then the read-only report.

In dry-run mode executors only read. Counts reported in dry-run mode are
the rows a real run would change.

"""

from functools import partial
from typing import Callable, List, NamedTuple
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from dbkeeper.core.utils.date import days_ago_naive_utc, utc_now
from .registry import OperationDescriptor, OperationRegistry
from .results import OperationResult

# timeout key prefix, value key prefix
TRANSIENT_PREFIXES = (
    ('_transient_timeout_', '_transient_'),
    ('_site_transient_timeout_', '_site_transient_'),
)
SITE_TRANSIENT_PREFIXES = (('_site_transient_timeout_', '_site_transient_'),)

AUTOLOAD_VALUES = ('yes', 'on', 'auto-on', 'auto')


def _bullets(items):
    return '\n'.join(f'- `{item}`' for item in items)


def _errors_block(errors):
    return '\nErrors:\n' + '\n'.join(f'- {error}' for error in errors)


def _expired_transients(conn, key_col, value_col, prefixes, now_ts):
    """Return timeout keys and value keys of all expired transients."""
    timeout_keys, value_keys = [], []
    for timeout_prefix, value_prefix in prefixes:
        rows = conn.execute(select(key_col, value_col).where(key_col.startswith(timeout_prefix, autoescape=True)))
        for key, timeout in rows:
            try:
                expires = int(str(timeout).strip())
            except (TypeError, ValueError):
                # not a timestamp, leave it alone
                continue
            if expires < now_ts:
                timeout_keys.append(key)
                value_keys.append(value_prefix + key[len(timeout_prefix) :])
    return timeout_keys, value_keys


def _count_keys(store, conn, table, key_col, keys):
    total = 0
    for chunk in store.chunks(keys):
        total += conn.execute(select(func.count()).select_from(table).where(key_col.in_(chunk))).scalar_one()
    return total


def _delete_keys(store, conn, table, key_col, keys):
    total = 0
    for chunk in store.chunks(keys):
        total += conn.execute(table.delete().where(key_col.in_(chunk))).rowcount
    return total


def expired_transients(store, dry_run, parameters, now=None):
    """
    Delete expired transients and their values.

    A transient is expired when the unix timestamp stored in its timeout
    row lies in the past. Timeouts that are no number are never touched.

    """
    now_ts = int((now or utc_now()).timestamp())
    t = store.tables
    sources = [(t.options, t.options.c.option_name, t.options.c.option_value, TRANSIENT_PREFIXES)]
    if store.is_multisite():
        sources.append((t.sitemeta, t.sitemeta.c.meta_key, t.sitemeta.c.meta_value, SITE_TRANSIENT_PREFIXES))

    lines = []
    affected = 0
    with store.begin() as conn:
        for table, key_col, value_col, prefixes in sources:
            timeout_keys, value_keys = _expired_transients(conn, key_col, value_col, prefixes, now_ts)
            if dry_run:
                values = _count_keys(store, conn, table, key_col, value_keys)
                timeouts = len(timeout_keys)
                lines.append(f'Expired transients in {table.name}: {timeouts} ({values} values)')
            else:
                values = _delete_keys(store, conn, table, key_col, value_keys)
                timeouts = _delete_keys(store, conn, table, key_col, timeout_keys)
                lines.append(f'Deleted from {table.name}: {values} transient values, {timeouts} timeouts')
            affected += values + timeouts
        if dry_run:
            lines.append(f'[Dry] Would delete {affected} rows.')

    return OperationResult.succeeded('expired_transients', '\n'.join(lines), rows_affected=affected, dry_run=dry_run)


def delete_old_revisions(store, dry_run, parameters, now=None):
    days = parameters.revision_days
    cutoff = days_ago_naive_utc(days, now=now)
    posts, postmeta = store.tables.posts, store.tables.postmeta

    with store.begin() as conn:
        ids = list(
            conn.execute(
                select(posts.c.ID).where(
                    posts.c.post_type == 'revision',
                    posts.c.post_modified_gmt < cutoff,
                )
            ).scalars()
        )
        if dry_run:
            meta = _count_keys(store, conn, postmeta, postmeta.c.post_id, ids)
            summary = f'Revisions older than {days} days: {len(ids)} ({meta} postmeta rows). [Dry] Would delete.'
            return OperationResult.succeeded('delete_old_revisions', summary, rows_affected=len(ids), dry_run=dry_run)

        meta = _delete_keys(store, conn, postmeta, postmeta.c.post_id, ids)
        deleted = _delete_keys(store, conn, posts, posts.c.ID, ids)

    summary = f'Deleted {deleted} old revisions (>{days} days) and {meta} postmeta rows.'
    return OperationResult.succeeded('delete_old_revisions', summary, rows_affected=deleted, dry_run=dry_run)


def orphan_postmeta(store, dry_run, parameters):
    posts, postmeta = store.tables.posts, store.tables.postmeta
    orphaned = ~select(posts.c.ID).where(posts.c.ID == postmeta.c.post_id).exists()

    with store.begin() as conn:
        if dry_run:
            found = conn.execute(select(func.count()).select_from(postmeta).where(orphaned)).scalar_one()
            summary = f'Found {found} orphaned postmeta rows. [Dry] Would delete.'
            return OperationResult.succeeded('orphan_postmeta', summary, rows_affected=found, dry_run=dry_run)
        deleted = conn.execute(postmeta.delete().where(orphaned)).rowcount

    summary = f'Deleted {deleted} orphaned postmeta rows.'
    return OperationResult.succeeded('orphan_postmeta', summary, rows_affected=deleted, dry_run=dry_run)


def orphan_term_rel(store, dry_run, parameters):
    relationships, taxonomy = store.tables.term_relationships, store.tables.term_taxonomy
    orphaned = ~(
        select(taxonomy.c.term_taxonomy_id)
        .where(taxonomy.c.term_taxonomy_id == relationships.c.term_taxonomy_id)
        .exists()
    )

    with store.begin() as conn:
        if dry_run:
            found = conn.execute(select(func.count()).select_from(relationships).where(orphaned)).scalar_one()
            summary = f'Found {found} orphaned term relationships. [Dry] Would delete.'
            return OperationResult.succeeded('orphan_term_rel', summary, rows_affected=found, dry_run=dry_run)
        deleted = conn.execute(relationships.delete().where(orphaned)).rowcount

    summary = f'Deleted {deleted} orphaned term relationships.'
    return OperationResult.succeeded('orphan_term_rel', summary, rows_affected=deleted, dry_run=dry_run)


def convert_myisam(store, dry_run, parameters):
    if not store.is_mysql:
        summary = f'MyISAM conversion needs MySQL or MariaDB, database is {store.dialect_name}.'
        return OperationResult.skipped('convert_myisam', summary, dry_run=dry_run)

    with store.engine.connect() as conn:
        tables = list(
            conn.execute(
                text(
                    'SELECT table_name FROM information_schema.tables '
                    "WHERE table_schema = DATABASE() AND engine = 'MyISAM' "
                    'ORDER BY table_name'
                )
            ).scalars()
        )
    if not tables:
        return OperationResult.succeeded('convert_myisam', 'No MyISAM tables found.', dry_run=dry_run)
    if dry_run:
        summary = f'[Dry] Would convert to InnoDB:\n{_bullets(tables)}'
        return OperationResult.succeeded('convert_myisam', summary, dry_run=dry_run)

    converted, errors = 0, []
    with store.autocommit() as conn:
        for table in tables:
            try:
                conn.execute(text(f'ALTER TABLE {store.quote(table)} ENGINE=InnoDB'))
                converted += 1
            except SQLAlchemyError as err:
                errors.append(f'ALTER {table}: {err.__class__.__name__}: {getattr(err, "orig", None) or err}')

    summary = f'Converted {converted} tables to InnoDB.'
    if errors:
        return OperationResult.failed('convert_myisam', summary + _errors_block(errors), dry_run=dry_run)
    return OperationResult.succeeded('convert_myisam', summary, dry_run=dry_run)


def _mysql_errors(rows) -> List[str]:
    # ANALYZE/OPTIMIZE TABLE report problems as result rows, not as exceptions
    errors = []
    for row in rows:
        mapping = row._mapping
        if str(mapping.get('Msg_type', '')).lower() == 'error':
            errors.append(str(mapping.get('Msg_text', '')))
    return errors


def _run_per_table(store, tables, statement, verb):
    done, errors = 0, []
    with store.autocommit() as conn:
        for table in tables:
            try:
                result = conn.execute(text(statement(table)))
                problems = _mysql_errors(result) if result.returns_rows else []
            except SQLAlchemyError as err:
                problems = [f'{err.__class__.__name__}: {getattr(err, "orig", None) or err}']
            if problems:
                errors.extend(f'{verb} {table}: {problem}' for problem in problems)
            else:
                done += 1
    return done, errors


def _vacuum_sqlite(store):
    with store.autocommit() as conn:
        page_size, before, _ = store.sqlite_page_stats(conn)
        conn.execute(text('VACUUM'))
        _, after, _ = store.sqlite_page_stats(conn)
    return max(0, before - after) * page_size


def optimize_tables(store, dry_run, parameters):
    if not store.is_supported:
        summary = f'No table rebuild available for {store.dialect_name}.'
        return OperationResult.skipped('optimize_tables', summary, dry_run=dry_run)

    tables = store.table_names()
    if not tables:
        return OperationResult.succeeded('optimize_tables', 'No tables found.', dry_run=dry_run)
    if dry_run:
        summary = f'[Dry] Would OPTIMIZE these tables ({len(tables)}):\n{_bullets(tables)}'
        return OperationResult.succeeded('optimize_tables', summary, dry_run=dry_run)

    if store.is_sqlite:
        freed = _vacuum_sqlite(store)
        summary = f'Vacuumed database with {len(tables)} tables, {freed} bytes freed.'
        return OperationResult.succeeded('optimize_tables', summary, dry_run=dry_run)

    optimized, errors = _run_per_table(store, tables, store.optimize_statement, 'OPTIMIZE')
    summary = f'Optimized {optimized} tables.'
    if errors:
        return OperationResult.failed('optimize_tables', summary + _errors_block(errors), dry_run=dry_run)
    return OperationResult.succeeded('optimize_tables', summary, dry_run=dry_run)


def analyze_tables(store, dry_run, parameters):
    if not store.is_supported:
        summary = f'No ANALYZE available for {store.dialect_name}.'
        return OperationResult.skipped('analyze_tables', summary, dry_run=dry_run)

    tables = store.table_names()
    if not tables:
        return OperationResult.succeeded('analyze_tables', 'No tables found.', dry_run=dry_run)
    if dry_run:
        summary = f'[Dry] Would ANALYZE these tables ({len(tables)}):\n{_bullets(tables)}'
        return OperationResult.succeeded('analyze_tables', summary, dry_run=dry_run)

    analyzed, errors = _run_per_table(store, tables, store.analyze_statement, 'ANALYZE')
    summary = f'Analyzed {analyzed} tables.'
    if errors:
        return OperationResult.failed('analyze_tables', summary + _errors_block(errors), dry_run=dry_run)
    return OperationResult.succeeded('analyze_tables', summary, dry_run=dry_run)


def report_autoload_bloat(store, dry_run, parameters):
    options = store.tables.options
    size = func.length(options.c.option_value).label('bytes')
    query = (
        select(options.c.option_name, size)
        .where(options.c.autoload.in_(AUTOLOAD_VALUES))
        .order_by(size.desc(), options.c.option_name)
        .limit(parameters.autoload_limit)
    )
    with store.engine.connect() as conn:
        rows = conn.execute(query).all()

    if not rows:
        return OperationResult.succeeded('report_autoload_bloat', 'No autoloaded options found.', dry_run=dry_run)
    lines = ['Top autoloaded options (by size):']
    for index, (name, length) in enumerate(rows, start=1):
        lines.append(f'{index:2d}. {name:<60} {length or 0:>8,} bytes')
    lines.append('Note: informational only, nothing was changed.')
    return OperationResult.succeeded('report_autoload_bloat', '\n'.join(lines), dry_run=dry_run)


class BuiltinOperation(NamedTuple):
    id: str
    label: str
    description: str
    run: Callable


BUILTIN_OPERATIONS = (
    BuiltinOperation(
        'expired_transients',
        'Delete expired transients (site & single)',
        'Removes only expired transients from options and sitemeta.',
        expired_transients,
    ),
    BuiltinOperation(
        'delete_old_revisions',
        'Delete old revisions',
        'Deletes post revisions older than the retention window, with their post meta.',
        delete_old_revisions,
    ),
    BuiltinOperation(
        'orphan_postmeta',
        'Cleanup orphaned postmeta',
        'Deletes post meta rows whose post no longer exists.',
        orphan_postmeta,
    ),
    BuiltinOperation(
        'orphan_term_rel',
        'Cleanup orphaned term relationships',
        'Deletes term relationships whose taxonomy no longer exists.',
        orphan_term_rel,
    ),
    BuiltinOperation(
        'convert_myisam',
        'Convert MyISAM to InnoDB (if any)',
        'Alters legacy MyISAM tables to InnoDB, MySQL and MariaDB only.',
        convert_myisam,
    ),
    BuiltinOperation(
        'optimize_tables',
        'OPTIMIZE all tables',
        'Rebuilds table storage and reclaims free space.',
        optimize_tables,
    ),
    BuiltinOperation(
        'analyze_tables',
        'ANALYZE all tables',
        'Updates index statistics for better query plans.',
        analyze_tables,
    ),
    BuiltinOperation(
        'report_autoload_bloat',
        'Report: top autoloaded options',
        'Lists the largest autoloaded options (no changes).',
        report_autoload_bloat,
    ),
)


def build_registry(store, operations=BUILTIN_OPERATIONS):
    """
    Build the operation registry with executors bound to a data store.

    ### Args:

    - **store** (ContentStore): Data store handed to every executor
    - **operations** (iterable): `BuiltinOperation` entries in execution order

    ### Returns:

    - **OperationRegistry**: Registry holding one descriptor per operation

    """
    registry = OperationRegistry()
    for operation in operations:
        registry.register(
            OperationDescriptor(
                id=operation.id,
                label=operation.label,
                description=operation.description,
                executor=partial(operation.run, store),
            )
        )
    return registry
