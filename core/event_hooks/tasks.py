import logging
import urllib.error
import urllib.request
from datetime import timedelta

from celery import shared_task
from django.db.models import Q
from django.utils import timezone

from core.event_hooks.models import EventHookDelivery

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Event-Signature"
EVENT_HEADER = "X-Event-Type"
MAX_ATTEMPTS = 6
DELIVERY_TIMEOUT_SECONDS = 10


def _backoff_minutes(attempts: int) -> int:
    # attempts starts at 0; first retry -> 1 minute
    schedule = [1, 5, 15, 60, 180, 720]  # up to 12h
    idx = min(max(attempts, 0), len(schedule) - 1)
    return schedule[idx]


def _is_retryable(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


@shared_task(bind=True, max_retries=0)
def deliver_event_hook_delivery(self, delivery_id: str):
    d = EventHookDelivery.objects.select_related("endpoint").filter(id=delivery_id).first()
    if not d:
        return

    if d.status in (EventHookDelivery.STATUS_SENT, EventHookDelivery.STATUS_FAILED):
        return

    if d.next_attempt_at and d.next_attempt_at > timezone.now():
        return

    ep = d.endpoint
    if not ep.is_active or ep.workspace_id != d.workspace_id:
        d.status = EventHookDelivery.STATUS_FAILED
        d.last_error = "Endpoint inactive or workspace mismatch"
        d.updated_at = timezone.now()
        d.save(update_fields=["status", "last_error", "updated_at"])
        return

    payload = {
        "type": d.event_type,
        "workspace_id": str(d.workspace_id),
        "data": d.payload_json,
        "delivery_id": str(d.id),
        "created_at": d.created_at.isoformat(),
    }
    body = EventHookDelivery.encode_payload(payload)

    req = urllib.request.Request(
        ep.url,
        data=body,
        headers={
            "Content-Type": "application/json",
            SIGNATURE_HEADER: EventHookDelivery.sign_payload(ep.secret, body),
            EVENT_HEADER: d.event_type,
        },
        method="POST",
    )

    d.attempts += 1
    d.updated_at = timezone.now()
    d.save(update_fields=["attempts", "updated_at"])

    retryable = True
    try:
        with urllib.request.urlopen(req, timeout=DELIVERY_TIMEOUT_SECONDS) as resp:
            status = int(getattr(resp, "status", 200))
        d.last_http_status = status
        if 200 <= status < 300:
            d.status = EventHookDelivery.STATUS_SENT
            d.delivered_at = timezone.now()
            d.last_error = None
            d.next_attempt_at = None
            d.save(update_fields=["status", "delivered_at", "last_http_status", "last_error", "next_attempt_at"])
            return
        d.last_error = f"HTTP {status}"
        retryable = _is_retryable(status)

    except urllib.error.HTTPError as e:
        status = int(getattr(e, "code", 0) or 0)
        d.last_http_status = status
        d.last_error = f"HTTPError {status}"
        retryable = _is_retryable(status)

    except (urllib.error.URLError, OSError, ValueError) as e:
        d.last_error = f"Exception: {type(e).__name__}: {e}"

    if d.attempts >= MAX_ATTEMPTS or not retryable:
        logger.warning("event hook delivery failed id=%s attempts=%s error=%s", d.id, d.attempts, d.last_error)
        d.status = EventHookDelivery.STATUS_FAILED
        d.next_attempt_at = None
        d.save(update_fields=["status", "last_http_status", "last_error", "next_attempt_at"])
        return

    mins = _backoff_minutes(d.attempts - 1)
    d.next_attempt_at = timezone.now() + timedelta(minutes=mins)
    d.save(update_fields=["last_http_status", "last_error", "next_attempt_at"])


@shared_task
def retry_due_event_hook_deliveries():
    """
    Beat task: re-enqueue pending deliveries whose backoff has elapsed.
    """
    now = timezone.now()
    ids = list(
        EventHookDelivery.objects.filter(status=EventHookDelivery.STATUS_PENDING, attempts__gt=0)
        .filter(Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now))
        .order_by("created_at")
        .values_list("id", flat=True)[:200]
    )
    for delivery_id in ids:
        deliver_event_hook_delivery.delay(str(delivery_id))
    return len(ids)
