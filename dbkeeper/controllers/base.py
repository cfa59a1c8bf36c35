from cement import ex  # noqa: F401
from cement.utils.version import get_version_banner
from dbkeeper.ext.argparse import Controller
from ..core.version import get_version

DESCRIPTION = """dbkeeper cleans up and optimizes content databases."""
VERSION_BANNER = f"""
{DESCRIPTION}
dbkeeper {get_version()}
{get_version_banner()}
"""


class BaseController(Controller):

    class Meta:
        label = 'base'

        # disable the ugly curly command doubled listening
        subparser_options = dict(metavar='')

        # text displayed at the top of --help output
        description = DESCRIPTION

        # text displayed at the bottom of --help output
        epilog = 'Example: dbkeeper run --ops=expired_transients,analyze_tables --dry-run'

        # short help is empty on base
        help = ''

        # controller level arguments. ex: 'dbkeeper --version'
        arguments = [
            # add a version banner
            (
                ['-v', '--version'],
                dict(
                    action='version',
                    version=VERSION_BANNER,
                ),
            ),
        ]
