import os

from .base import *  # noqa

DEBUG = False
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# SQLite unless TEST_DB_ENGINE=postgres (the concurrency tests need Postgres row locks)
if os.getenv("TEST_DB_ENGINE", "sqlite") == "postgres":
    DATABASES["default"]["NAME"] = "leadcrm_test"
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test.sqlite3",
        }
    }

CELERY_TASK_ALWAYS_EAGER = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

INGESTION_RATE_LIMIT_PER_MIN = 0

WHATSAPP_GATEWAY_CLASS = "core.whatsapp.gateway.AiSensyGateway"
AISENSY_API_URL = ""
AISENSY_API_KEY = ""
