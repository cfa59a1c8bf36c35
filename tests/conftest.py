import os
import shutil
import pytest
from cement.utils.misc import init_defaults, rando as _rando
from cement.utils import fs
from dbkeeper.core.maintenance import ContentStore


@pytest.fixture(scope="function")
def tmp(request):
    t = fs.Tmp()
    yield t

    # cleanup
    if os.path.exists(t.dir) and t.cleanup is True:
        shutil.rmtree(t.dir)


@pytest.fixture(scope="function")
def rando(request):
    yield _rando()[:12]


@pytest.fixture(scope="function")
def db_url(tmp):
    yield f'sqlite:///{tmp.dir}/content.db'


@pytest.fixture(scope="function")
def store(db_url):
    s = ContentStore.from_url(db_url)
    s.create_schema()
    yield s

    s.dispose()


@pytest.fixture(scope="function")
def app_defaults(tmp, db_url):
    # config for test apps working on the temporary content database
    defaults = init_defaults('database', 'diskcache', 'optimizer')
    defaults['database']['url'] = db_url
    defaults['diskcache']['directory'] = os.path.join(tmp.dir, 'cache')
    yield defaults
