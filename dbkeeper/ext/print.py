"""
Print extension of dbkeeper.

Provides `app.print()`, a replacement of the built-in `print()` that goes
through the application's output pipeline. Output rendered this way honors
the `pre_render` and `post_render` hooks and is kept in
`app.last_rendered`, which the tests rely on.

### Example:

```python
app.print(report.render(), end='')
app.print('Operations', divider='-')
```

"""

from __future__ import annotations
from typing import Any, Dict, Union, TYPE_CHECKING
from cement.core import output

if TYPE_CHECKING:
    from cement.core.foundation import App  # pragma: nocover


def register_dbkeeper_print(app: App) -> None:
    """Extend the application with `app.print()`."""

    def _print(*args: Any, name=None, sep=' ', end='\n', divider=None) -> None:
        app.render(dict(args=args, name=name, sep=sep, end=end, divider=divider), handler='print')

    app.extend('print', _print)


class DbKeeperPrintOutputHandler(output.OutputHandler):
    """
    Output handler rendering arguments the way `print()` would.

    ### Notes:

    : Registered as `print`. An optional `divider` character is repeated
      40 times on a line of its own before the output.

    """

    class Meta(output.OutputHandler.Meta):
        label = 'print'

        #: Not offered as a choice for overriding the output handler
        overridable = False

    _meta: Meta  # type: ignore

    def _print(self, args, sep=' ', end='\n', divider=None):
        out = sep.join(str(arg) for arg in args)
        return (divider * 40 + end if divider else '') + out + end

    def render(self, data: Dict[str, Any], *args: Any, **kw: Any) -> Union[str, None]:
        if 'args' not in data:
            self.app.log.debug(f'No "args" key found in data to render. Not rendering content via "{self.__module__}"')
            return None
        name = f" named {data['name']}" if data.get('name') else ''
        self.app.log.debug(f'rendering content via {self.__module__}{name}')
        return self._print(
            data['args'],
            sep=data.get('sep', ' '),
            end=data.get('end', '\n'),
            divider=data.get('divider'),
        )


def load(app):
    app.handler.register(DbKeeperPrintOutputHandler)
    register_dbkeeper_print(app)
