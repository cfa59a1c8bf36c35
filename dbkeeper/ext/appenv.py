"""
Runtime environment of the dbkeeper application.

The environment is taken from `DBKEEPER_ENV` and picks the configuration
files loaded from the `config` directory next to the package:

- `dbkeeper.yaml`
- `dbkeeper.<env>.yaml`
- `dbkeeper.<env>.local.yaml`

Test applications (label ending in `_test`) run in the testing environment
unless `DBKEEPER_ENV` says otherwise.

Usage Example:
    ```python
    if app.env.IS_DEV_MODE:
        app.log.debug('running in development')
    ```
"""

import os
from cement.utils import fs


PRODUCTION = 'production'
STAGING = 'staging'
DEVELOPMENT = 'development'
TESTING = 'testing'

ENV_ALIASES = {
    'dev': DEVELOPMENT,
    'development': DEVELOPMENT,
    'prod': PRODUCTION,
    'production': PRODUCTION,
    'stage': STAGING,
    'staging': STAGING,
    'test': TESTING,
    'testing': TESTING,
}


class DbKeeperAppEnv:
    """
    Environment flags and configuration files of the application.

    Attributes:
        APP_LABEL (str): The lowercase application label.
        APP_ENV_VAR_NAME (str): Name of the environment variable.
        APP_ENV (str): The detected environment or None.
        IS_PROD_MODE (bool): True if running in production.
        IS_STAGE_MODE (bool): True if running in staging.
        IS_DEV_MODE (bool): True if running in development.
        IS_TEST_MODE (bool): True if running in testing.
        APP_DIR (str): The base directory of the application.
        APP_CONFIG_DIR (str): The configuration directory of the application.
    """

    def __init__(self, app):
        self.APP_LABEL = app._meta.label.strip().lower()
        if self.APP_LABEL.endswith('_test'):
            # test apps share the configuration of the real app
            self.APP_LABEL = self.APP_LABEL[:-5]
            app._meta.label = self.APP_LABEL
            default_env = TESTING
        else:
            default_env = None
        self.APP_ENV_VAR_NAME = self.APP_LABEL.upper() + '_ENV'
        value = os.environ.get(self.APP_ENV_VAR_NAME, '').strip().lower()
        self.APP_ENV = ENV_ALIASES.get(value, default_env)
        self.IS_PROD_MODE = self.APP_ENV == PRODUCTION
        self.IS_STAGE_MODE = self.APP_ENV == STAGING
        self.IS_DEV_MODE = self.APP_ENV == DEVELOPMENT
        self.IS_TEST_MODE = self.APP_ENV == TESTING
        self.APP_DIR = fs.abspath(app._meta.main_dir + '/..')
        self.APP_CONFIG_DIR = fs.abspath(self.APP_DIR + '/config')

        config_filenames = [self.APP_LABEL]
        if self.APP_ENV:
            config_filenames.append(f'{self.APP_LABEL}.{self.APP_ENV}')
            config_filenames.append(f'{self.APP_LABEL}.{self.APP_ENV}.local')
        app._meta.config_files = [
            f'{self.APP_CONFIG_DIR}/{filename}{app._meta.config_file_suffix}' for filename in config_filenames
        ]


def load(app):
    app.extend('env', DbKeeperAppEnv(app))
