"""
dbkeeper main module providing the CLI application.

This module defines the dbkeeper application classes and entry point on
top of the Cement framework.

"""

import os
from cement import App, TestApp
from cement.utils import fs
from cement.core.exc import CaughtSignal
from .core.exc import DbKeeperError
from .controllers.base import BaseController
from .controllers.optimize import OptimizeController


class DbKeeper(App):
    """
    The dbkeeper CLI application core class.

    ### Notes:

    - Configuration is read from YAML files in the `config` directory,
      selected by the `DBKEEPER_ENV` environment
    - The content database is available as `app.db`, the maintenance
      engine as `app.optimizer`
    - Signal handling (SIGINT, SIGTERM) is automatically managed

    """

    class Meta:
        # this app name
        label = 'dbkeeper'

        # config section of the app itself, shared with the test app
        config_section = 'dbkeeper'

        # this app main path
        main_dir = os.path.dirname(fs.abspath(__file__))

        # configuration defaults
        config_defaults = dict(
            debug=False,
        )

        # call sys.exit() on close
        exit_on_close = True

        # load additional framework extensions
        extensions = [
            'colorlog',
            'tabulate',
            'dbkeeper.ext.yaml',
            'dbkeeper.ext.appenv',
            'dbkeeper.ext.print',
            'dbkeeper.ext.diskcache',
            'dbkeeper.ext.sqlalchemy',
            'dbkeeper.ext.optimizer',
        ]

        # register handlers
        handlers = [
            BaseController,
            OptimizeController,
        ]

        # configuration file suffix
        config_file_suffix = '.yaml'

        # set the log handler
        log_handler = 'colorlog'


class DbKeeperTest(TestApp, DbKeeper):
    """
    A specialized subclass of DbKeeper designed for testing purposes.

    ### Usage:

    ```python
    from dbkeeper.main import DbKeeperTest

    with DbKeeperTest(argv=['list']) as app:
        app.run()
        data, output = app.last_rendered

    ```

    ### Notes:

    - Uses standard logging instead of colorlog for cleaner test output
    - Appends '_test' to the app label to distinguish from production instances

    """

    class Meta:
        # this app test name
        label = f'{DbKeeper.Meta.label}_test'

        # load additional framework extensions
        extensions = [
            'tabulate',
            'dbkeeper.ext.yaml',
            'dbkeeper.ext.appenv',
            'dbkeeper.ext.print',
            'dbkeeper.ext.diskcache',
            'dbkeeper.ext.sqlalchemy',
            'dbkeeper.ext.optimizer',
        ]

        # set the log handler
        log_handler = 'logging'


def main():
    """
    Main entry point for the dbkeeper application.

    Creates a DbKeeper application instance, runs it, and handles any
    exceptions that may occur during execution.

    ### Raises:

    - **AssertionError**: When an assertion fails during application execution
    - **DbKeeperError**: When a dbkeeper-specific error occurs
    - **CaughtSignal**: When a signal (e.g., SIGINT, SIGTERM) is caught

    """
    with DbKeeper() as app:
        try:
            app.run()

        except AssertionError as e:
            print(f'AssertionError > {e.args[0]}')
            app.exit_code = 1

            if app.debug is True:
                import traceback

                traceback.print_exc()

        except DbKeeperError as e:
            print(f'DbKeeperError > {e.args[0]}')
            app.exit_code = 1

            if app.debug is True:
                import traceback

                traceback.print_exc()

        except CaughtSignal as e:
            # Default Cement signals are SIGINT and SIGTERM, exit 0 (non-error)
            if e.signum == 2:
                print('\nstopped by Ctrl-C')
            elif e.signum == 15:
                print('\nterminated by SIGTERM')
            else:
                print(f'\n{e}')
            app.exit_code = 0


if __name__ == '__main__':
    main()
