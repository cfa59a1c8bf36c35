from datetime import timedelta
from sqlalchemy import select, text
from dbkeeper.core.maintenance import (
    ContentStore,
    OperationStatus,
    RunParameters,
    create_optimizer,
)
from dbkeeper.core.maintenance.operations import (
    analyze_tables,
    build_registry,
    convert_myisam,
    delete_old_revisions,
    expired_transients,
    optimize_tables,
    orphan_postmeta,
    orphan_term_rel,
    report_autoload_bloat,
)
from dbkeeper.core.utils.date import utc_now


def naive_now():
    return utc_now().replace(tzinfo=None)


def unix_now():
    return int(utc_now().timestamp())


def seed_options(store, rows):
    with store.begin() as conn:
        conn.execute(
            store.tables.options.insert(),
            [dict(option_name=name, option_value=value, autoload=autoload) for name, value, autoload in rows],
        )


def seed_transients(store):
    past, future = str(unix_now() - 3600), str(unix_now() + 3600)
    seed_options(
        store,
        [
            ('_transient_timeout_feed', past, 'no'),
            ('_transient_feed', 'cached feed', 'no'),
            ('_transient_timeout_menu', future, 'no'),
            ('_transient_menu', 'cached menu', 'no'),
            ('_site_transient_timeout_update', past, 'no'),
            ('_site_transient_update', 'update data', 'no'),
            ('_transient_timeout_broken', 'never', 'no'),
            ('_transient_broken', 'kept', 'no'),
            ('_transient_timeout_lonely', past, 'no'),
            ('siteurl', 'https://example.org', 'yes'),
        ],
    )


def post_row(post_id, post_type, modified, post_parent=0, post_title=''):
    # executemany needs the same keys in every row
    return dict(
        ID=post_id,
        post_type=post_type,
        post_title=post_title,
        post_parent=post_parent,
        post_modified_gmt=modified,
    )


def seed_revisions(store, old=5, recent=1):
    posts, postmeta = store.tables.posts, store.tables.postmeta
    long_ago = naive_now() - timedelta(days=3)
    lately = naive_now() - timedelta(hours=1)
    rows = [post_row(1, 'post', naive_now() - timedelta(days=30), post_title='Hello')]
    for i in range(old):
        rows.append(post_row(100 + i, 'revision', long_ago, post_parent=1))
    for i in range(recent):
        rows.append(post_row(200 + i, 'revision', lately, post_parent=1))

    with store.begin() as conn:
        conn.execute(posts.insert(), rows)
        conn.execute(
            postmeta.insert(),
            [
                dict(post_id=1, meta_key='_edit_lock', meta_value='1'),
                dict(post_id=100, meta_key='_wp_old_slug', meta_value='x'),
                dict(post_id=101, meta_key='_wp_old_slug', meta_value='y'),
            ],
        )


def seed_orphans(store):
    t = store.tables
    with store.begin() as conn:
        conn.execute(t.posts.insert(), [dict(ID=1, post_type='post')])
        conn.execute(
            t.postmeta.insert(),
            [
                dict(post_id=1, meta_key='a', meta_value='1'),
                dict(post_id=99, meta_key='b', meta_value='2'),
                dict(post_id=98, meta_key='c', meta_value='3'),
            ],
        )
        conn.execute(t.term_taxonomy.insert(), [dict(term_taxonomy_id=1, term_id=1, taxonomy='category')])
        conn.execute(
            t.term_relationships.insert(),
            [
                dict(object_id=1, term_taxonomy_id=1),
                dict(object_id=1, term_taxonomy_id=5),
                dict(object_id=2, term_taxonomy_id=6),
            ],
        )


def option_names(store):
    options = store.tables.options
    with store.engine.connect() as conn:
        return set(conn.execute(select(options.c.option_name)).scalars())


def count(store, table, *where):
    query = select(table)
    if where:
        query = query.where(*where)
    with store.engine.connect() as conn:
        return len(conn.execute(query).all())


def snapshot(store):
    state = {}
    with store.engine.connect() as conn:
        for table in store.tables.metadata.sorted_tables:
            state[table.name] = conn.execute(select(table).order_by(*table.primary_key.columns)).all()
        state['sqlite_master'] = conn.execute(text('SELECT type, name FROM sqlite_master ORDER BY name')).all()
    return state


def has_sqlite_stat(store):
    with store.engine.connect() as conn:
        return conn.execute(text("SELECT count(*) FROM sqlite_master WHERE name = 'sqlite_stat1'")).scalar_one() > 0


def test_expired_transients(store):
    seed_transients(store)

    result = expired_transients(store, False, RunParameters())

    assert result.status is OperationStatus.SUCCEEDED
    # 3 expired timeouts and the 2 values that exist
    assert result.rows_affected == 5
    assert option_names(store) == {
        '_transient_timeout_menu',
        '_transient_menu',
        '_transient_timeout_broken',
        '_transient_broken',
        'siteurl',
    }

    again = expired_transients(store, False, RunParameters())
    assert again.rows_affected == 0


def test_expired_transients_dry_run(store):
    seed_transients(store)
    before = snapshot(store)

    result = expired_transients(store, True, RunParameters(dry_run=True))

    assert result.rows_affected == 5
    assert '[Dry] Would delete 5 rows.' in result.summary
    assert snapshot(store) == before


def test_expired_network_transients(store):
    sitemeta = store.tables.sitemeta
    past = str(unix_now() - 60)
    with store.begin() as conn:
        conn.execute(
            sitemeta.insert(),
            [
                dict(site_id=1, meta_key='_site_transient_timeout_browser', meta_value=past),
                dict(site_id=1, meta_key='_site_transient_browser', meta_value='data'),
                dict(site_id=1, meta_key='site_name', meta_value='Network'),
            ],
        )

    single = ContentStore(store.engine, multisite=False)
    assert single.is_multisite() is False
    assert expired_transients(single, False, RunParameters()).rows_affected == 0

    assert store.is_multisite() is True
    result = expired_transients(store, False, RunParameters())
    assert result.rows_affected == 2
    assert 'wp_sitemeta' in result.summary
    assert count(store, sitemeta) == 1


def test_delete_old_revisions(store):
    seed_revisions(store)
    posts, postmeta = store.tables.posts, store.tables.postmeta

    result = delete_old_revisions(store, False, RunParameters(revision_days=1))

    assert result.rows_affected == 5
    assert 'Deleted 5 old revisions (>1 days) and 2 postmeta rows.' == result.summary
    assert count(store, posts, posts.c.post_type == 'revision') == 1
    assert count(store, posts, posts.c.post_type == 'post') == 1
    assert count(store, postmeta) == 1

    assert delete_old_revisions(store, False, RunParameters(revision_days=1)).rows_affected == 0


def test_delete_old_revisions_window(store):
    seed_revisions(store)
    result = delete_old_revisions(store, True, RunParameters(revision_days=7, dry_run=True))
    assert result.rows_affected == 0
    assert result.summary.startswith('Revisions older than 7 days: 0')


def test_delete_old_revisions_through_coordinator(store):
    seed_revisions(store)
    optimizer = create_optimizer(store)

    report = optimizer.run_selected(['delete_old_revisions'], False, RunParameters(revision_days=1))
    assert [r.id for r in report.results] == ['delete_old_revisions']
    assert report.results[0].rows_affected == 5

    report = optimizer.run_selected(['delete_old_revisions'], False, RunParameters(revision_days=1))
    assert report.results[0].rows_affected == 0


def test_orphan_postmeta(store):
    seed_orphans(store)
    postmeta = store.tables.postmeta

    dry = orphan_postmeta(store, True, RunParameters(dry_run=True))
    assert dry.rows_affected == 2
    assert count(store, postmeta) == 3

    result = orphan_postmeta(store, False, RunParameters())
    assert result.rows_affected == 2
    assert result.summary == 'Deleted 2 orphaned postmeta rows.'
    assert count(store, postmeta) == 1
    assert orphan_postmeta(store, False, RunParameters()).rows_affected == 0


def test_orphan_term_rel(store):
    seed_orphans(store)
    relationships = store.tables.term_relationships

    dry = orphan_term_rel(store, True, RunParameters(dry_run=True))
    assert dry.rows_affected == 2
    assert count(store, relationships) == 3

    result = orphan_term_rel(store, False, RunParameters())
    assert result.rows_affected == 2
    assert count(store, relationships) == 1
    assert orphan_term_rel(store, False, RunParameters()).rows_affected == 0


def test_convert_myisam_skipped_on_sqlite(store):
    result = convert_myisam(store, False, RunParameters())
    assert result.status is OperationStatus.SKIPPED
    assert 'sqlite' in result.summary


def test_analyze_tables(store):
    seed_orphans(store)

    dry = analyze_tables(store, True, RunParameters(dry_run=True))
    assert dry.status is OperationStatus.SUCCEEDED
    assert dry.summary.startswith('[Dry] Would ANALYZE these tables (6):')
    assert '- `wp_posts`' in dry.summary
    assert not has_sqlite_stat(store)

    result = analyze_tables(store, False, RunParameters())
    assert result.status is OperationStatus.SUCCEEDED
    assert result.summary == 'Analyzed 6 tables.'
    assert has_sqlite_stat(store)


def test_optimize_tables(store):
    seed_revisions(store)

    dry = optimize_tables(store, True, RunParameters(dry_run=True))
    assert dry.summary.startswith('[Dry] Would OPTIMIZE these tables (6):')

    result = optimize_tables(store, False, RunParameters())
    assert result.status is OperationStatus.SUCCEEDED
    assert 'bytes freed' in result.summary
    assert count(store, store.tables.posts) == 7


def test_report_autoload_bloat(store):
    seed_options(
        store,
        [
            ('small', 'x' * 10, 'yes'),
            ('large', 'x' * 5000, 'yes'),
            ('medium', 'x' * 300, 'on'),
            ('not_autoloaded', 'x' * 9000, 'no'),
        ],
    )
    before = snapshot(store)

    result = report_autoload_bloat(store, False, RunParameters(autoload_limit=2))
    lines = result.summary.splitlines()

    assert result.status is OperationStatus.SUCCEEDED
    assert result.rows_affected is None
    assert lines[0] == 'Top autoloaded options (by size):'
    assert lines[1].startswith(' 1. large')
    assert lines[1].endswith('5,000 bytes')
    assert lines[2].startswith(' 2. medium')
    assert len(lines) == 4
    assert 'not_autoloaded' not in result.summary
    assert report_autoload_bloat(store, True, RunParameters(autoload_limit=2)).summary == result.summary
    assert snapshot(store) == before


def test_report_autoload_bloat_empty(store):
    result = report_autoload_bloat(store, False, RunParameters())
    assert result.summary == 'No autoloaded options found.'


def test_dry_run_changes_nothing(store):
    seed_transients(store)
    seed_revisions(store)
    seed_orphans_without_posts(store)
    before = snapshot(store)

    report = create_optimizer(store).run_selected([], True, RunParameters(revision_days=1, dry_run=True))

    assert len(report.results) == 8
    assert all(r.dry_run for r in report.results)
    assert report.ok
    assert snapshot(store) == before
    assert not has_sqlite_stat(store)


def test_real_run_is_idempotent(store):
    seed_transients(store)
    seed_revisions(store)
    seed_orphans_without_posts(store)
    optimizer = create_optimizer(store)

    first = optimizer.run_selected([], False, RunParameters(revision_days=1))
    assert first.ok
    assert first.result('convert_myisam').status is OperationStatus.SKIPPED
    assert first.result('delete_old_revisions').rows_affected == 5

    second = optimizer.run_selected([], False, RunParameters(revision_days=1))
    assert second.ok
    for op_id in ('expired_transients', 'delete_old_revisions', 'orphan_postmeta', 'orphan_term_rel'):
        assert second.result(op_id).rows_affected == 0


def seed_orphans_without_posts(store):
    t = store.tables
    with store.begin() as conn:
        conn.execute(t.postmeta.insert(), [dict(post_id=999, meta_key='orphan', meta_value='1')])
        conn.execute(t.term_relationships.insert(), [dict(object_id=1, term_taxonomy_id=77)])


def test_executors_report_their_mode(store):
    seed_orphans(store)
    registry = build_registry(store)

    for descriptor in registry:
        result = descriptor.executor(True, RunParameters(dry_run=True))
        assert result.id == descriptor.id
        assert result.dry_run is True

    live = registry.get('orphan_postmeta').executor(False, RunParameters())
    assert live.dry_run is False
    assert live.rows_affected == 2
