import copy
import os

import yaml

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")

DEFAULTS = {
    # MEM -> WB distance for ALU ops and stores, MEM -> WB distance for loads,
    # and the minimum distance between two MEM visits on the memory unit
    "latencies": {
        "writeback": 1,
        "load_writeback": 2,
        "memory_unit": 2,
    },
    "logging": {
        "level": "WARNING",
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5000,
        "debug": False,
    },
    "plot": {
        "cmap": "Blues",
        "figsize": [12, 4],
    },
}


def merge_latencies(latencies: dict = None) -> dict:
    """Overlay user supplied latencies on the defaults, rejecting unknown keys."""
    merged = dict(DEFAULTS["latencies"])
    for key, value in (latencies or {}).items():
        if key not in merged:
            raise ValueError(f"Unknown latency '{key}', expected one of {sorted(merged)}")
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ValueError(f"Latency '{key}' must be a positive integer, got {value!r}")
        merged[key] = value
    return merged


def load_config(config_path: str = None) -> dict:
    """
    Load the simulator configuration from YAML.

    Args:
        config_path (str): Path to a YAML file. When omitted, config.yaml next
            to this module is used if it exists, otherwise the defaults.

    Returns:
        dict: Configuration with every section present.
    """
    config = copy.deepcopy(DEFAULTS)

    if config_path is None:
        if not os.path.exists(DEFAULT_CONFIG_PATH):
            return config
        config_path = DEFAULT_CONFIG_PATH

    with open(config_path, 'r') as file:
        try:
            loaded = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(loaded, dict):
        raise ValueError(f"{config_path} must contain a mapping of sections, "
                         f"got {type(loaded).__name__}")

    for section, values in loaded.items():
        if section not in config:
            raise ValueError(f"Unknown configuration section '{section}' in {config_path}")
        values = values or {}
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' in {config_path} must be a mapping, "
                             f"got {type(values).__name__}")
        config[section] = {**config[section], **values}

    config["latencies"] = merge_latencies(config["latencies"])
    return config
