import os

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_FILE = '.config.yaml'

ENV_VARS = {
    'endpoint': 'P3_ENDPOINT',
    'access_key_id': 'P3_ACCESS_KEY_ID',
    'access_key_secret': 'P3_ACCESS_KEY_SECRET',
}


def load_config(profile: str = None, config_file: str = DEFAULT_CONFIG_FILE,
                overrides: dict = None) -> dict:
    """
    Load the configuration for a profile from the YAML file.

    Missing keys are filled from the environment; non-None ``overrides``
    win over both.
    """
    conf = {}
    if profile:
        try:
            with open(config_file, "r") as f:
                full_config = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

        if not isinstance(full_config, dict) or profile not in full_config:
            raise ConfigError(f"Profile '{profile}' not found in {config_file}")
        section = full_config[profile] or {}
        if not isinstance(section, dict):
            raise ConfigError(f"Profile '{profile}' in {config_file} is not a mapping")
        conf = dict(section)

    for key, var in ENV_VARS.items():
        if not conf.get(key) and os.getenv(var):
            conf[key] = os.environ[var]

    for key, value in (overrides or {}).items():
        if value is not None:
            conf[key] = value
    return conf
