import json
import os

DEFAULTS = {
    'db_path': None,
    'default_center': None,        # None = alle Zentren
    'seed_years': [],
    'only_discrepancies': False,
}


def _config_path():
    base = os.path.join(os.path.expanduser('~'), '.rmatrack')
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, 'rmatrack_config.json')


def load_config():
    path = _config_path()
    if not os.path.exists(path):
        return dict(DEFAULTS)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            cfg = json.load(f)
    except (OSError, ValueError):
        return dict(DEFAULTS)
    return {**DEFAULTS, **cfg}


def save_config(cfg: dict):
    path = _config_path()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)
