"""
Reading and writing all_schedules.json.

A run only re-extracts the pools whose PDF changed (or failed last time), so
the aggregate is always the previous file with the freshly reconciled pools
swapped in.
"""

import json
import os

from constants import ALL_SCHEDULES_FILE, POOLS_FILE
from errors import ConfigurationError
from pool_mapping import REGISTRY
from schedule import PoolSchedule
from schedule_cache import write_json_atomic


def load_previous_schedules(path=ALL_SCHEDULES_FILE):
    """
    Previous aggregate as PoolSchedule records. Missing file means first run.

    An existing file that can't be read raises ConfigurationError: treating it
    as a first run would drop every pool that fails this run.
    """
    if not os.path.exists(path):
        return []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not load previous schedules from {path}: {e}", cause=e)
    if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
        raise ConfigurationError(f"{path} is not a list of pool records")
    return [PoolSchedule.from_dict(d) for d in data]


def load_static_metadata(path=POOLS_FILE):
    """Curated per-pool fields keyed by pool id, e.g. {"balboa": {"address": ..., "pageUrl": ...}}."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read {path}: {e}", cause=e)

    metadata = {}
    for entry in entries:
        pool_id = entry.get("id")
        if not REGISTRY.validate(pool_id):
            raise ConfigurationError(f"{path} lists unknown pool id {pool_id!r}")
        metadata[REGISTRY.get_pool_by_id(pool_id).id] = entry
    return metadata


def preserve_unprocessed(previous, fresh):
    """
    Carry forward previous records whose pool was not reconciled this run.

    Returns (records, preserved_ids). Previous records without an id (pools
    the registry couldn't resolve) are dropped rather than carried forward.
    """
    fresh_ids = {r.id for r in fresh if r.id}
    records = list(fresh)
    preserved_ids = []
    for record in previous:
        if record.id and record.id not in fresh_ids and record.id not in preserved_ids:
            records.append(record)
            preserved_ids.append(record.id)
    return records, preserved_ids


def order_records(records, registry=REGISTRY):
    """Registry order first, then ids the registry doesn't know, then unresolved pools by name."""
    def sort_key(record):
        if record.id is None:
            return (2, 0, record.name)
        position = registry.position(record.id)
        if position is None:
            return (1, 0, record.id)
        return (0, position, "")

    return sorted(records, key=sort_key)


def write_all_schedules(records, path=ALL_SCHEDULES_FILE):
    """Write the aggregate atomically: readers see either the old file or the new one."""
    write_json_atomic(path, [r.to_dict() for r in records])
    return path
