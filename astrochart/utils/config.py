import copy
import os
import yaml

class AttrDict(dict):
    """Dict that also supports attribute access: cfg.cache and cfg['cache'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e
    def __setattr__(self, key, value):
        self[key] = value

def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj

DEFAULTS = {
    "service": "astrochart",
    "cache": {"astrocartography": {"ttl_seconds": 86400, "max_entries": 512}},
    "transits": {"active_limit": 16, "upcoming_limit": 18, "upcoming_days": 30},
}

def _merge(base, extra):
    out = dict(base)
    for k, v in (extra or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out

def load_config(path: str = None):
    """
    Load YAML config from `path` (or $ASTRO_CONFIG) over built-in DEFAULTS.
    A missing file yields the defaults. Optional env overrides:
      - ASTRO_CACHE_TTL_SECONDS
      - ASTRO_CACHE_MAX_ENTRIES
    Returns an AttrDict for convenient access.
    """
    path = path or os.getenv("ASTRO_CONFIG", "config/defaults.yaml")
    data = {}
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    data = _merge(copy.deepcopy(DEFAULTS), data)

    acg = data["cache"]["astrocartography"]
    ttl = os.getenv("ASTRO_CACHE_TTL_SECONDS")
    if ttl:
        acg["ttl_seconds"] = float(ttl)
    cap = os.getenv("ASTRO_CACHE_MAX_ENTRIES")
    if cap:
        acg["max_entries"] = int(cap)

    return _to_attr(data)
