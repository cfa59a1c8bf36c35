"""
Argparse controller base of the dbkeeper command line.

The controller sorts sub-commands by name in `--help` output and lines up
their help texts, and prints the help when no sub-command is given.

Example:
    ```python
    from dbkeeper.ext.argparse import Controller

    class OptimizeController(Controller):
        class Meta:
            label = 'optimize'
            stacked_on = 'base'
            stacked_type = 'embedded'

        @ex(help='list the maintenance operations')
        def list(self):
            pass
    ```
"""

from cement.ext.ext_argparse import ArgparseController
import argparse


class DbKeeperHelpFormatter(argparse.HelpFormatter):
    """Help formatter with sorted and aligned sub-commands."""

    def _iter_indented_subactions(self, action):
        try:
            get_subactions = action._get_subactions
        except AttributeError:
            pass
        else:
            self._indent()
            if isinstance(action, argparse._SubParsersAction):
                yield from sorted(get_subactions(), key=lambda x: x.dest)
            else:
                yield from get_subactions()
            self._dedent()

    def _fill_text(self, text, width, indent):
        # keep the line breaks of descriptions and epilogs
        return ''.join(indent + line for line in text.splitlines(keepends=True)) + ' \n '

    def _format_action(self, action):
        if isinstance(action, argparse._SubParsersAction):
            invocations = [self._format_action_invocation(a) for a in action._get_subactions()]
            self._subcommand_max_length = max((len(i) for i in invocations), default=0)

        if isinstance(action, argparse._SubParsersAction._ChoicesPseudoAction):
            subcommand = self._format_action_invocation(action)
            help_text = self._expand_help(action) if action.help else ''
            return '  {:{width}}    {}\n'.format(subcommand, help_text, width=self._subcommand_max_length)

        return super()._format_action(action)


class Controller(ArgparseController):
    """Base class of all dbkeeper controllers."""

    class Meta:
        argument_formatter = DbKeeperHelpFormatter

    def _default(self):
        self._parser.print_help()
