from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.common import errors
from core.leads.activities import record_activity
from core.leads.models import Activity, Lead, LeadField
from core.leads.status import get_default_status, get_status_config

logger = logging.getLogger(__name__)

PHONE_KEY_DIGITS = 10

ORIGIN_WEBHOOK = "webhook"
ORIGIN_MANUAL = "manual"

SOURCE_ALIASES = {
    "FACEBOOK": "FACEBOOK",
    "FB": "FACEBOOK",
    "FACEBOOK_AD": "FACEBOOK",
    "FACEBOOK_ADS": "FACEBOOK",
    "FACEBOOK_LEAD_AD": "FACEBOOK",
    "INSTAGRAM": "INSTAGRAM",
    "IG": "INSTAGRAM",
    "GOOGLE": "GOOGLE_ADS",
    "GOOGLE_AD": "GOOGLE_ADS",
    "GOOGLE_ADS": "GOOGLE_ADS",
    "ADWORDS": "GOOGLE_ADS",
    "LINKEDIN": "LINKEDIN",
    "REFERRAL": "REFERRAL",
    "REFERENCE": "REFERRAL",
    "WEBSITE": "WEBSITE",
    "WEB": "WEBSITE",
    "SITE": "WEBSITE",
    "WALK_IN": "WALK_IN",
    "WALKIN": "WALK_IN",
    "PHONE": "PHONE_INQUIRY",
    "PHONE_INQUIRY": "PHONE_INQUIRY",
    "CALL": "PHONE_INQUIRY",
    "WHATSAPP": "WHATSAPP",
    "WA": "WHATSAPP",
    "EMAIL": "EMAIL_CAMPAIGN",
    "EMAIL_CAMPAIGN": "EMAIL_CAMPAIGN",
    "EXHIBITION": "EXHIBITION",
    "EXPO": "EXHIBITION",
    "TRADE_SHOW": "EXHIBITION",
    "PARTNER": "PARTNER",
    "WEBHOOK": "WEBHOOK",
    "MANUAL": "MANUAL",
    "OTHER": "OTHER",
}

# inbound key -> Lead attribute; first non-empty alias wins
FIELD_ALIASES = {
    "first_name": ("firstName", "first_name", "fname", "name"),
    "last_name": ("lastName", "last_name", "lname"),
    "phone": ("phone", "mobile", "phone_number"),
    "course_interested": ("courseInterested", "course_interested", "course"),
    "email": ("email",),
    "city": ("city",),
    "state": ("state",),
    "country": ("country",),
    "campaign": ("campaign",),
}

CONTROL_KEYS = ("source", "status", "priority", "tags", "notes", "customFields", "custom_fields")

_KNOWN_KEYS = {alias for aliases in FIELD_ALIASES.values() for alias in aliases} | set(CONTROL_KEYS)

_TRUE = {"true", "yes", "1", "y", "on"}
_FALSE = {"false", "no", "0", "n", "off"}


@dataclass(frozen=True)
class UpsertResult:
    lead: Lead
    is_new: bool
    matched_existing: bool
    # status named in the payload, if any; applied to existing leads by the caller
    requested_status: str = ""


def normalize_phone(raw) -> str:
    """
    Dedup key for a phone number: digits only, last 10 kept.
    "+91 98765-43210", "09876543210" and "9876543210" share a key.
    """
    digits = re.sub(r"\D", "", str(raw or ""))
    if not digits:
        raise errors.ValidationError("phone is required", details={"field": "phone"})
    return digits[-PHONE_KEY_DIGITS:]


def normalize_source(raw, default: str = "") -> str:
    value = str(raw or "").strip()
    if not value:
        return default
    key = re.sub(r"[^A-Z0-9]+", "_", value.upper()).strip("_")
    if not key:
        return default
    return SOURCE_ALIASES.get(key, key)


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value in ([], {})


def extract_lead_fields(payload: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Split a flexible inbound payload into (lead attributes, raw custom fields).
    Unknown top-level keys are treated as custom field values.
    """
    attrs: dict[str, Any] = {}
    for attr, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            value = payload.get(alias)
            if not _is_empty(value):
                attrs[attr] = str(value).strip()
                break

    # "name" only: split into first/last
    if "first_name" in attrs and "last_name" not in attrs and _is_empty(payload.get("firstName")) \
            and _is_empty(payload.get("first_name")) and _is_empty(payload.get("fname")):
        first, _, last = attrs["first_name"].partition(" ")
        attrs["first_name"] = first
        if last.strip():
            attrs["last_name"] = last.strip()

    for key in ("source", "status", "priority", "notes"):
        value = payload.get(key)
        if not _is_empty(value):
            attrs[key] = str(value).strip()

    tags = payload.get("tags")
    if isinstance(tags, str) and tags.strip():
        attrs["tags"] = [t.strip() for t in tags.split(",") if t.strip()]
    elif isinstance(tags, list) and tags:
        attrs["tags"] = [str(t).strip() for t in tags if str(t).strip()]

    custom: dict[str, Any] = {}
    explicit = payload.get("customFields") or payload.get("custom_fields")
    for key, value in payload.items():
        if key not in _KNOWN_KEYS:
            custom[key] = value
    if isinstance(explicit, dict):
        custom.update(explicit)

    return attrs, custom


def _coerce(field: LeadField, value):
    ftype = field.field_type
    if ftype == LeadField.FieldType.NUMBER:
        number = float(str(value).strip())
        return int(number) if number.is_integer() else number
    if ftype == LeadField.FieldType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError("not a boolean")
    if ftype == LeadField.FieldType.DATE:
        parsed = parse_date(str(value).strip()[:10])
        if parsed is None:
            raise ValueError("not a date")
        return parsed.isoformat()
    if ftype == LeadField.FieldType.EMAIL:
        text = str(value).strip()
        try:
            validate_email(text)
        except DjangoValidationError as e:
            raise ValueError("not an email") from e
        return text
    if ftype == LeadField.FieldType.PHONE:
        return normalize_phone(value)
    if ftype == LeadField.FieldType.SELECT:
        text = str(value).strip()
        options = [str(o) for o in (field.options_json or [])]
        if options and text not in options:
            raise ValueError("not one of the options")
        return text
    return str(value).strip()


def coerce_custom_fields(*, workspace_id, raw: dict[str, Any], strict: bool) -> dict[str, Any]:
    """
    Validate custom values against the workspace LeadField registry.
    strict=True raises ValidationError; otherwise bad values are dropped.
    """
    if not raw:
        return {}

    registry = {f.key: f for f in LeadField.objects.filter(workspace_id=workspace_id, key__in=list(raw.keys()))}
    out: dict[str, Any] = {}
    for key, value in raw.items():
        if _is_empty(value):
            continue
        field = registry.get(key)
        if field is None:
            out[key] = value if isinstance(value, (bool, int, float)) else str(value).strip()
            continue
        try:
            out[key] = _coerce(field, value)
        except (ValueError, errors.ValidationError):
            if strict:
                raise errors.ValidationError(
                    f"Invalid value for custom field '{key}'",
                    details={"field": key, "field_type": field.field_type},
                )
            logger.warning("dropping custom field workspace=%s key=%s type=%s", workspace_id, key, field.field_type)
    return out


def _merge(lead: Lead, attrs: dict[str, Any], custom: dict[str, Any]) -> list[str]:
    changed = []
    for attr in FIELD_ALIASES:
        if attr == "phone":
            continue
        value = attrs.get(attr)
        if not _is_empty(value) and getattr(lead, attr) != value:
            setattr(lead, attr, value)
            changed.append(attr)

    if attrs.get("priority") and attrs["priority"].upper() in Lead.Priority.values:
        if lead.priority != attrs["priority"].upper():
            lead.priority = attrs["priority"].upper()
            changed.append("priority")

    if attrs.get("tags") and attrs["tags"] != lead.tags:
        lead.tags = attrs["tags"]
        changed.append("tags")

    if custom:
        merged = {**(lead.custom_fields or {}), **custom}
        if merged != lead.custom_fields:
            lead.custom_fields = merged
            changed.append("custom_fields")

    return changed


def _find_by_phone_for_update(workspace_id, phone_key) -> Lead | None:
    return Lead.objects.select_for_update().filter(workspace_id=workspace_id, phone_normalized=phone_key).first()


def upsert_lead(
    *,
    workspace_id,
    payload: dict[str, Any],
    origin: str = ORIGIN_WEBHOOK,
    actor_user_id=None,
) -> UpsertResult:
    """
    Find-or-create a lead by (workspace, normalized phone).

    Existing leads only get non-empty incoming values; custom fields merge
    key by key. New leads start on the workspace default status (or a known
    status named in the payload) with no owner. Validation happens before
    any write.
    """
    attrs, raw_custom = extract_lead_fields(payload)

    phone_key = normalize_phone(attrs.get("phone"))
    default_source = "WEBHOOK" if origin == ORIGIN_WEBHOOK else "MANUAL"
    source = normalize_source(attrs.get("source"), default=default_source)
    custom = coerce_custom_fields(workspace_id=workspace_id, raw=raw_custom, strict=origin == ORIGIN_MANUAL)

    requested_status = attrs.get("status", "")
    status_config = get_status_config(workspace_id, requested_status) if requested_status else None
    if status_config is None:
        status_config = get_default_status(workspace_id)

    verb_suffix = "via Webhook" if origin == ORIGIN_WEBHOOK else "Manually"

    with transaction.atomic():
        lead = _find_by_phone_for_update(workspace_id, phone_key)
        is_new = False

        if lead is None:
            now = timezone.now()
            candidate = Lead(
                workspace_id=workspace_id,
                phone=attrs["phone"],
                phone_normalized=phone_key,
                source=source,
                status=status_config.name,
                stage=status_config.stage,
                owner_user_id=None,
                created_by_user_id=actor_user_id,
                created_at=now,
                updated_at=now,
            )
            _merge(candidate, attrs, custom)
            try:
                with transaction.atomic():
                    candidate.save(force_insert=True)
                lead = candidate
                is_new = True
            except IntegrityError:
                # lost the insert race for this phone; merge into the winner
                lead = Lead.objects.select_for_update().get(workspace_id=workspace_id, phone_normalized=phone_key)

        if not is_new:
            changed = _merge(lead, attrs, custom)
            if changed:
                lead.updated_at = timezone.now()
                lead.save(update_fields=changed + ["updated_at"])

        if is_new:
            message = f"New lead received from {source}"
            if source != (attrs.get("source") or source):
                message += f" (original: {attrs['source']})"
        else:
            message = f"Lead information updated from {source}"
        if attrs.get("notes"):
            message += f": {attrs['notes']}"

        record_activity(
            lead=lead,
            activity_type=Activity.Type.SYSTEM,
            subject=f"Lead {'Created' if is_new else 'Updated'} {verb_suffix}",
            message=message,
            user_id=actor_user_id,
            data={"origin": origin, "source": source, "phone_key": phone_key},
        )

    logger.info("lead upsert workspace=%s lead=%s new=%s", workspace_id, lead.id, is_new)
    return UpsertResult(lead=lead, is_new=is_new, matched_existing=not is_new, requested_status=requested_status)
