import json

from core.common.redis_client import get_redis
from core.flags.models import FeatureFlag, WorkspaceFeatureFlag

CACHE_TTL_SECONDS = 300

def _redis():
    try:
        return get_redis()
    except Exception:
        return None

def _cache_key(workspace_id: str) -> str:
    return f"ff:{workspace_id}"

def get_entitlements(workspace_id: str) -> dict:
    r = _redis()
    ck = _cache_key(workspace_id)

    if r:
        try:
            cached = r.get(ck)
            if cached:
                return json.loads(cached)
        except Exception:
            pass

    # DB source of truth
    global_flags = {f.key: f.enabled_by_default for f in FeatureFlag.objects.all()}
    overrides = WorkspaceFeatureFlag.objects.filter(workspace_id=workspace_id).select_related("key")
    for o in overrides:
        global_flags[o.key.key] = o.is_enabled

    if r:
        try:
            r.setex(ck, CACHE_TTL_SECONDS, json.dumps(global_flags))
        except Exception:
            pass

    return global_flags

def is_enabled(workspace_id: str, key: str) -> bool:
    return bool(get_entitlements(str(workspace_id)).get(key, False))

