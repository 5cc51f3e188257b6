import json, os, logging, time
from typing import Dict, Any, List, Optional
from shared.config import settings

logger = logging.getLogger(__name__)

CACHE_FILE = os.path.join(settings.data_dir, "local_cache.json")

def _load_index() -> Dict[str, Any]:
    if not os.path.exists(CACHE_FILE):
        return {}
    try:
        with open(CACHE_FILE, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        # The cache is never authoritative; a broken file just means a cold start
        logger.warning(f"Ignoring unreadable local cache {CACHE_FILE}: {e}")
        return {}

def _save_index(idx: Dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(CACHE_FILE) or ".", exist_ok=True)
    with open(CACHE_FILE, "w", encoding="utf-8") as f:
        json.dump(idx, f, ensure_ascii=False, indent=2, default=str)

def get_value(key: str) -> Optional[Any]:
    entry = _load_index().get(key)
    if entry is None:
        return None
    return entry.get("value")

def put_value(key: str, value: Any) -> None:
    idx = _load_index()
    idx[key] = {"value": value, "ts": int(time.time() * 1000)}
    _save_index(idx)

def remove_value(key: str) -> None:
    idx = _load_index()
    if key in idx:
        del idx[key]
        _save_index(idx)

def load_collection(name: str) -> List[Dict[str, Any]]:
    """Cached copy of a collection, or [] when nothing usable is stored."""
    value = get_value(f"collection:{name}")
    if not isinstance(value, list):
        return []
    return [dict(e) for e in value if isinstance(e, dict)]

def save_collection(name: str, entities: List[Dict[str, Any]]) -> None:
    put_value(f"collection:{name}", [dict(e) for e in entities])
