import yaml
import re

from eobscreen.errors import ConfigError

# Strings that are valid scientific notation, such as "1e-3"
_SCI_NOTATION_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)$')

def _normalize_types(node):
    """
    Recursively processes data to convert strings in scientific notation to
    floats. pyyaml reads "1e-3" (no decimal point) as a string.
    """

    if isinstance(node, dict):
        return {k: _normalize_types(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_normalize_types(elem) for elem in node]

    if isinstance(node, str) and _SCI_NOTATION_PATTERN.match(node):
        return float(node)

    return node


def read_yaml(cf: str | dict,
              override_keys: dict | None=None) -> dict:
    """
    Loads a YAML configuration file from the specified path.

    Parameters
    ----------
    cf : str or dict
        If string, this is the path to the YAML configuration file. If a dict,
        pass through (assume its already read)
    override_keys : dict, optional
        Values that replace the matching keys in the configuration. Every key
        must already be in the configuration.

    Returns
    -------
    config : dict
        A dictionary containing the configuration parameters.

    Raises
    ------
    ConfigError
        If the file does not exist, cannot be parsed, does not hold a mapping,
        or `override_keys` has a key not in the configuration.
    """

    if issubclass(type(cf),dict):
        config = dict(cf)
    else:
        try:
            with open(cf, 'r') as f:
                config = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Configuration file not found at '{cf}'") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML file '{cf}': {e}") from e

    # An empty file loads as None
    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration '{cf}' must be a mapping of keys to values.")

    config = _normalize_types(config)

    # Replace keys from the configuration with keyword arguments passed in.
    if override_keys is not None:
        for k in override_keys:
            if k not in config:
                err = f"override_keys has a key '{k}' that was not in configuration."
                raise ConfigError(err)
            config[k] = override_keys[k]

    return config
