"""
Disk-based cache with process-wide locks.

The extension installs a cement cache handler backed by the diskcache
library. Next to the usual get/set/delete/purge it offers a locks handler,
which the optimizer uses to keep maintenance runs on the same host from
overlapping.

Example:
    ```python
    app.cache.set('key', 'value', expire=3600)
    value = app.cache.get('key')

    with app.cache.locks.lock('optimizer_run', expire=3600):
        # only one process at a time gets here
        run_maintenance()
    ```
"""

from contextlib import contextmanager
from cement.core import cache
import diskcache


class DbKeeperDiskCacheLocksHandler:
    """
    Locks stored in the disk cache.

    Lock entries share a tag, so all of them can be evicted at once, and
    their keys get a prefix to keep them apart from regular cache items.

    ### Attributes:

    - **app** (Application): The Cement application instance
    - **_cache** (diskcache.Cache): The cache the locks live in
    - **_tag** (str): Tag of all lock entries
    - **_key_prefix** (str): Prefix of all lock keys

    """

    def __init__(self, app, cache, tag, key_prefix):
        self.app = app
        self._cache = cache
        self._tag = tag
        self._key_prefix = key_prefix

    def _lock(self, key, expire=None):
        return diskcache.Lock(self._cache, self._key_prefix + key, expire=expire, tag=self._tag)

    def purge(self):
        """
        Remove all locks of this handler.

        ### Returns:

        - **int**: Number of evicted lock entries

        """
        total = 0
        while True:
            num = self._cache.evict(self._tag, retry=True)
            if num > 0:
                total += num
            else:
                break

        return total

    def acquire(self, key, expire=None):
        self._lock(key, expire=expire).acquire()

    def release(self, key):
        self._lock(key).release()

    def locked(self, key):
        return self._lock(key).locked()

    @contextmanager
    def lock(self, key, expire=None):
        """
        Hold a lock for the duration of a with block.

        Waits until the lock is free. An `expire` in seconds frees the lock
        even if its holder died without releasing it.

        ### Args:

        - **key** (str): The lock key
        - **expire** (float, optional): Lifetime of the lock in seconds

        """
        lock = self._lock(key, expire=expire)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()


class DbKeeperDiskCacheCacheHandler(cache.CacheHandler):
    """
    Cement cache handler on top of diskcache.

    ### Attributes:

    - **locks** (DbKeeperDiskCacheLocksHandler): Locks sharing the cache
    - **_cache** (diskcache.Cache): Underlying diskcache instance

    """

    class Meta:
        """Handler meta-data and configuration defaults."""

        #: Unique identifier for this handler
        label = 'dbkeeper.diskcache'

        #: Id for config
        config_section = 'diskcache'

        #: Dict with initial settings
        config_defaults = dict(
            # Directory of the cache files, shared by all processes of a host
            directory='data/cache',
            # Timeout of the underlying sqlite connection in seconds
            timeout=60,
            # Tag of lock entries
            locks_tag='dbkeeper_locks',
            # Prefix of lock keys
            locks_key_prefix='lock_',
        )

    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self._cache = None
        self.locks = None

    def _setup(self, *args, **kw):
        super()._setup(*args, **kw)
        self._cache = diskcache.Cache(
            directory=self._config('directory'),
            timeout=self._config('timeout'),
        )
        self.locks = DbKeeperDiskCacheLocksHandler(
            self.app,
            self._cache,
            self._config('locks_tag'),
            self._config('locks_key_prefix'),
        )

    def _config(self, key, **kwargs):
        return self.app.config.get(self._meta.config_section, key, **kwargs)

    def get(self, key, default=None, **kw):
        """
        Get a value from the cache.

        ### Args:

        - **key** (str): The key of the item
        - **default** (any, optional): Returned if the item is not found
        - ****kw**: `retry` to retry while the cache database is locked

        """
        return self._cache.get(key, default, retry=kw.get('retry', False))

    def set(self, key, value, **kw):
        """
        Set a value in the cache.

        ### Args:

        - **key** (str): The key of the item
        - **value** (any): The value to store
        - ****kw**: `expire` in seconds, `tag` and `retry`

        """
        return self._cache.set(
            key,
            value,
            expire=kw.get('expire', None),
            tag=kw.get('tag', None),
            retry=kw.get('retry', False),
        )

    def delete(self, key, **kw):
        return self._cache.delete(key, retry=kw.get('retry', False))

    def purge(self, **kw):
        return self._cache.clear(retry=kw.get('retry', False))

    def expire(self, now=None, retry=False):
        return self._cache.expire(now=now, retry=retry)

    def close(self):
        if self._cache is not None:
            self._cache.close()


def diskcache_pre_close(app):
    handler = getattr(app, 'cache', None)
    if isinstance(handler, DbKeeperDiskCacheCacheHandler):
        handler.close()


def load(app):
    """
    Load the disk cache extension.

    Makes `dbkeeper.diskcache` the cache handler of the application and
    closes the cache when the application closes.

    """
    app._meta.cache_handler = DbKeeperDiskCacheCacheHandler.Meta.label
    app.handler.register(DbKeeperDiskCacheCacheHandler)
    app.hook.register('pre_close', diskcache_pre_close)
