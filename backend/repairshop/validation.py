from __future__ import annotations
from datetime import datetime
from repairshop.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import DeclarativeMeta

from repairshop.errors import ValidationError, ConflictError  # noqa: F401  (re-exported)


# Maximum amount: 999,999,999 ledger units.
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - allow_blank_fields: non-nullable text fields that may be set to ""
    - non_negative_fields: integer fields that must be >= 0
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    allow_blank_fields: set[str] = field(default_factory=set)
    non_negative_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Booleans are checked first: bool is a subclass of int
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{col.key} must be a boolean")

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be a number")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain number (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be a whole number (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        # Whole-valued floats from JSON clients (e.g. 20000.0) are accepted
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be a whole number, not a decimal")
        raise ValidationError(f"{col.key} must be a number")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k not in policy.allow_blank_fields:
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in policy.non_negative_fields:
            if val < 0:
                raise ValidationError(f"{k} must be >= 0")
            if val > MAX_AMOUNT:
                raise ValidationError(f"{k} cannot exceed {MAX_AMOUNT:,}")

        patch[k] = val

    return patch


# =============================================================================
# Per-entity policies
# =============================================================================

JOB_COST_FIELDS = ("parts_cost", "service_fee", "reserves")

JOB_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_name",
        "customer_phone",
        "device_model",
        "imei_or_sn",
        "color",
        "issue",
        "parts_cost",
        "service_fee",
        "reserves",
        "status",
        "assigned_technician_id",
    },
    required_on_create={"customer_name", "customer_phone", "device_model", "issue"},
    allow_blank_fields={"imei_or_sn", "color"},
    non_negative_fields=set(JOB_COST_FIELDS),
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "amount", "note", "expense_date"},
    required_on_create={"title", "amount"},
    allow_blank_fields={"note"},
    non_negative_fields={"amount"},
)

STAFF_POLICY = ModelValidationPolicy(
    writable_fields={"name", "role", "phone", "is_active"},
    required_on_create={"name"},
)

SHOP_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "shop_name",
        "owner_name",
        "phone",
        "email",
        "address",
        "custom_rule",
        "is_active",
        "subscription_class",
    },
    required_on_create={"shop_name", "owner_name", "phone", "email"},
    allow_blank_fields={"custom_rule"},
)

# Super-admin manual override
SHOP_ADMIN_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "shop_name",
        "owner_name",
        "phone",
        "email",
        "address",
        "custom_rule",
        "is_active",
        "subscription_plan",
        "subscription_class",
        "subscription_expire",
        "max_staff_allowed",
    },
    allow_blank_fields={"custom_rule"},
)

# Shop owner editing their own profile
SHOP_PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"shop_name", "phone", "address", "custom_rule"},
    allow_blank_fields={"custom_rule"},
)

PLAN_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "price",
        "currency",
        "duration_days",
        "max_staff_allowed",
        "features",
        "is_active",
        "is_popular",
        "sort_order",
    },
    required_on_create={"name", "price", "duration_days"},
    allow_blank_fields={"description"},
    non_negative_fields={"price"},
)


def enforce_rules_plan(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("duration_days", "max_staff_allowed"):
        if key in patch and patch[key] is not None and patch[key] < 1:
            raise ValidationError(f"{key} must be >= 1")

    if "features" in patch:
        features = patch["features"]
        if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
            raise ValidationError("features must be a list of strings")
        patch["features"] = [f.strip() for f in features if f.strip()]


def enforce_rules_max_staff(patch: dict) -> None:
    if "max_staff_allowed" in patch:
        value = patch["max_staff_allowed"]
        if value is None or value < 1:
            raise ValidationError("max_staff_allowed must be a number greater than 0")
