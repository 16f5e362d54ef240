import json
import os
import yaml

from amm_settlement.core.errors import ConfigError

REQUIRED_POOL_KEYS = ("token_a", "token_b")

SECTION_KEYS = {
    "simulation": {"steps", "seed"},
    "traders": {"count", "balance", "max_trade_bps", "slippage_bps"},
    "providers": {
        "count", "balance", "lp_amount", "initial_a", "initial_b", "slippage_bps", "withdraw_probability",
    },
}
POOL_KEYS = {"token_a", "token_b", "fee_bps", "initial_a", "initial_b", "initial_lp"}


def _check_keys(where: str, section: dict, allowed: set) -> None:
    unknown = sorted(str(k) for k in section if k not in allowed)
    if unknown:
        raise ConfigError(f"Unknown key(s) in {where}: {', '.join(unknown)}.")


def validate_config(data) -> dict:
    """
    Check the shape of a settlement scenario and return it unchanged.

    The root must be a mapping of known sections, every section may only use
    the keys the model reads, and every entry under `pools` must name both
    tokens. Numeric defaults are applied later by the model.

    Raises
    ------
    ConfigError
        On any structural problem or unknown key.
    """
    if not isinstance(data, dict):
        raise ConfigError("Config file root must be a dictionary.")
    _check_keys("config", data, set(SECTION_KEYS) | {"pools"})

    for name, allowed in SECTION_KEYS.items():
        section = data.get(name, {})
        if not isinstance(section, dict):
            raise ConfigError(f"'{name}' must be a mapping.")
        _check_keys(f"'{name}'", section, allowed)

    pools = data.get("pools", [])
    if not isinstance(pools, list):
        raise ConfigError("'pools' must be a list of pool definitions.")
    for i, pool_cfg in enumerate(pools):
        if not isinstance(pool_cfg, dict):
            raise ConfigError(f"Pool #{i} must be a mapping.")
        missing = [k for k in REQUIRED_POOL_KEYS if k not in pool_cfg]
        if missing:
            raise ConfigError(f"Pool #{i} is missing {', '.join(missing)}.")
        _check_keys(f"pool #{i}", pool_cfg, POOL_KEYS)
    return data


def load_config(path: str) -> dict:
    """
    Load a settlement scenario file (YAML or JSON) and return it as a dictionary.

    Supports `.yaml`, `.yml`, and `.json`. The parsed data is checked with
    `validate_config`.

    Parameters
    ----------
    path : str
        The path to the configuration file.

    Returns
    -------
    dict
        Parsed configuration data.

    Raises
    ------
    FileNotFoundError
        If the file does not exist at the given path.
    ConfigError
        - If the file extension is unsupported.
        - If the file content is not a dictionary.
        - If `pools` is not a list of mappings naming `token_a` and `token_b`.
        - If any section carries a key the model does not read.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    _, ext = os.path.splitext(path.lower())

    if ext in (".yaml", ".yml"):
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    elif ext == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    else:
        raise ConfigError("Unsupported config extension. Use .yaml, .yml, or .json.")

    return validate_config(data)
