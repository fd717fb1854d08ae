"""Engine configuration: documented defaults plus TOML load and save."""

from __future__ import annotations

import threading
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

import tomli_w

# Where each setting lives in the TOML document: (table path, key).
_LAYOUT: dict[str, tuple[tuple[str, ...], str]] = {
    "lsm_tol_mem_size_limit": (("lsm", "core"), "LSM_TOL_MEM_SIZE_LIMIT"),
    "lsm_per_mem_size_limit": (("lsm", "core"), "LSM_PER_MEM_SIZE_LIMIT"),
    "lsm_block_size": (("lsm", "core"), "LSM_BLOCK_SIZE"),
    "lsm_sst_level_ratio": (("lsm", "core"), "LSM_SST_LEVEL_RATIO"),
    "lsm_block_cache_capacity": (("lsm", "cache"), "LSM_BLOCK_CACHE_CAPACITY"),
    "lsm_block_cache_k": (("lsm", "cache"), "LSM_BLOCK_CACHE_K"),
    "redis_expire_header": (("redis",), "REDIS_EXPIRE_HEADER"),
    "redis_hash_value_prefix": (("redis",), "REDIS_HASH_VALUE_PREFFIX"),
    "redis_field_prefix": (("redis",), "REDIS_FIELD_PREFIX"),
    "redis_field_separator": (("redis",), "REDIS_FIELD_SEPARATOR"),
    "redis_list_separator": (("redis",), "REDIS_LIST_SEPARATOR"),
    "redis_sorted_set_prefix": (("redis",), "REDIS_SORTED_SET_PREFIX"),
    "redis_sorted_set_score_len": (("redis",), "REDIS_SORTED_SET_SCORE_LEN"),
    "redis_set_prefix": (("redis",), "REDIS_SET_PREFIX"),
    "bloom_filter_expected_size": (("bloom_filter",), "BLOOM_FILTER_EXPECTED_SIZE"),
    "bloom_filter_expected_error_rate": (
        ("bloom_filter",),
        "BLOOM_FILTER_EXPECTED_ERROR_RATE",
    ),
}

_CHAR_FIELDS = frozenset({"redis_field_separator", "redis_list_separator"})


@dataclass(frozen=True)
class Config:
    """All tunable parameters of the engine and its Redis layer."""

    # LSM core
    lsm_tol_mem_size_limit: int = 64 * 1024 * 1024
    lsm_per_mem_size_limit: int = 4 * 1024 * 1024
    lsm_block_size: int = 32 * 1024
    lsm_sst_level_ratio: int = 4
    # LSM block cache
    lsm_block_cache_capacity: int = 1024
    lsm_block_cache_k: int = 8
    # Redis key prefixes and separators
    redis_expire_header: str = "REDIS_EXPIRE_"
    redis_hash_value_prefix: str = "REDIS_HASH_VALUE_"
    redis_field_prefix: str = "REDIS_FIELD_"
    redis_field_separator: str = "$"
    redis_list_separator: str = "#"
    redis_sorted_set_prefix: str = "REDIS_SORTED_SET_"
    redis_sorted_set_score_len: int = 32
    redis_set_prefix: str = "REDIS_SET_"
    # Bloom filter
    bloom_filter_expected_size: int = 65536
    bloom_filter_expected_error_rate: float = 0.1

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            default = f.default
            if isinstance(default, float):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"{f.name} must be a number, got {value!r}")
                object.__setattr__(self, f.name, float(value))
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"{f.name} must be an integer, got {value!r}")
            elif isinstance(default, str):
                if not isinstance(value, str):
                    raise ValueError(f"{f.name} must be a string, got {value!r}")
                if f.name in _CHAR_FIELDS and len(value) != 1:
                    raise ValueError(f"{f.name} must be a single character")

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """Read a TOML file; settings it lacks keep their defaults."""
        with open(path, "rb") as fh:
            try:
                document = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise ValueError(f"invalid TOML in {path}: {exc}") from exc
        values = {}
        for name, (section, key) in _LAYOUT.items():
            table = document
            for part in section:
                table = table.get(part, {})
                if not isinstance(table, dict):
                    raise ValueError(f"[{'.'.join(section)}] must be a table")
            if key in table:
                values[name] = table[key]
        return cls(**values)

    def save(self, path: str | Path) -> None:
        """Write every setting to a TOML file."""
        document: dict = {}
        for name, (section, key) in _LAYOUT.items():
            table = document
            for part in section:
                table = table.setdefault(part, {})
            table[key] = getattr(self, name)
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as fh:
            tomli_w.dump(document, fh)


_instances: dict[Path, Config] = {}
_instances_lock = threading.Lock()


def get_config(path: str | Path = "config.toml") -> Config:
    """Return the shared configuration for ``path``, loading it once.

    A missing file yields the defaults.
    """
    resolved = Path(path).resolve()
    with _instances_lock:
        config = _instances.get(resolved)
        if config is None:
            config = Config.load(resolved) if resolved.exists() else Config()
            _instances[resolved] = config
        return config