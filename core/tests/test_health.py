import pytest
from rest_framework.test import APIClient


class _DownRedis:
    def ping(self):
        raise ConnectionError("redis down")


class _UpRedis:
    def ping(self):
        return True


@pytest.mark.django_db
def test_health_reports_each_dependency(monkeypatch):
    client = APIClient()

    monkeypatch.setattr("core.common.views.get_redis", lambda: _UpRedis())
    r = client.get("/health/")
    assert r.status_code == 200
    assert r.json() == {"db": True, "redis": True}

    monkeypatch.setattr("core.common.views.get_redis", lambda: _DownRedis())
    r = client.get("/v1/health/")
    assert r.status_code == 503
    assert r.json()["redis"] is False
