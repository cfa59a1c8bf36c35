"""
YAML configuration handler of dbkeeper.

Extends cement's `YamlConfigHandler` so that empty configuration files are
accepted and nested values of a `section.key` are deep merged instead of
replaced.

"""

from cement.ext.ext_yaml import YamlConfigHandler
from dbkeeper.core.utils.dict import deep_merge


class DbKeeperYamlConfigHandler(YamlConfigHandler):
    """
    YAML config handler with deep merging of nested values.

    ### Example:

    ```python
    app.config.merge({
        'database': {
            'url': 'sqlite:///data/blog.db',
        }
    })
    ```

    """

    class Meta:
        label = 'dbkeeper.yaml'

    def merge(self, dict_obj, override=True):
        """
        Merge a dictionary into the configuration.

        ### Args:

        - **dict_obj** (dict): Sections with their keys and values, `None`
          (an empty YAML file) is ignored
        - **override** (bool): Replace existing keys, otherwise only missing
          keys are added

        """
        if dict_obj is None:
            return

        assert isinstance(dict_obj, dict), 'Dictionary object required.'

        for section, values in dict_obj.items():
            # only sections are merged, top level scalars are ignored
            if type(values) is not dict:
                continue
            if section not in self.get_sections():
                self.add_section(section)

            for key, value in values.items():
                if override:
                    if key in self.keys(section) and isinstance(value, dict):
                        current = self.get(section, key)
                        if isinstance(current, dict):
                            value = deep_merge(current, value)
                    self.set(section, key, value)
                elif key not in self.keys(section):
                    self.set(section, key, value)


def load(app):
    app.handler.register(DbKeeperYamlConfigHandler)
    app._meta.config_handler = DbKeeperYamlConfigHandler.Meta.label
