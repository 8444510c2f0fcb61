from django.http import JsonResponse
from django.db import connection

from core.common.redis_client import get_redis

def health_check(request):
    status = {"db": False, "redis": False}

    # DB
    try:
        with connection.cursor() as c:
            c.execute("SELECT 1")
        status["db"] = True
    except Exception:
        pass

    # Redis
    try:
        get_redis().ping()
        status["redis"] = True
    except Exception:
        pass

    http_status = 200 if all(status.values()) else 503
    return JsonResponse(status, status=http_status)
