import os
from dbkeeper.main import DbKeeperTest


def test_appenv_testing(app_defaults, monkeypatch):
    monkeypatch.delenv('DBKEEPER_ENV', raising=False)
    with DbKeeperTest(config_defaults=app_defaults) as app:
        app.run()
        assert app._meta.label == 'dbkeeper'
        assert app.env.APP_ENV == 'testing'
        assert app.env.IS_TEST_MODE is True
        assert app.env.IS_PROD_MODE is False
        assert [os.path.basename(f) for f in app._meta.config_files] == [
            'dbkeeper.yaml',
            'dbkeeper.testing.yaml',
            'dbkeeper.testing.local.yaml',
        ]


def test_appenv_from_variable(app_defaults, monkeypatch):
    monkeypatch.setenv('DBKEEPER_ENV', 'dev')
    with DbKeeperTest(config_defaults=app_defaults) as app:
        app.run()
        assert app.env.APP_ENV == 'development'
        assert app.env.IS_DEV_MODE is True
        assert os.path.basename(app._meta.config_files[-1]) == 'dbkeeper.development.local.yaml'


def test_yaml_merge(app_defaults):
    with DbKeeperTest(config_defaults=app_defaults) as app:
        app.run()
        app.config.merge(None)
        app.config.merge(dict(database=dict(table_prefix='blog_'), ignored='scalar'))
        assert app.config.get('database', 'table_prefix') == 'blog_'
        app.config.merge(dict(database=dict(table_prefix='other_', chunk_size=10)), override=False)
        assert app.config.get('database', 'table_prefix') == 'blog_'
        assert app.config.get('database', 'chunk_size') == 500
        assert app.db.store.table_prefix == 'blog_'
        assert app.db.store.tables.posts.name == 'blog_posts'
