from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Numeric(10, 2) upper bound
MAX_PRICE = Decimal("99999999.99")

# signed 64-bit INTEGER range shared by SQLite and PostgreSQL BIGINT
MAX_INT = 2 ** 63 - 1
MIN_INT = -(2 ** 63)


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a product that was ordered)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which model columns a route accepts from clients (writable_fields) and
    which of them a create must supply (required_on_create).
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class VariantInput:
    """One submitted variant slot. id is None for variants the client has not saved yet."""
    size_id: int
    color_id: int
    quantity: int
    id: int | None = None


@dataclass(frozen=True)
class ImageInput:
    url: str


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _check_int_range(value: int, field: str) -> int:
    if value < MIN_INT or value > MAX_INT:
        raise ValidationError(f"{field} is out of range")
    return value


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: accepts ints and plain digit strings only.
    Rejects bools, floats, decimals, scientific notation and values outside
    the signed 64-bit range the database can store.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return _check_int_range(value, field)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
        return _check_int_range(parsed, field)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_decimal(value: Any, field: str, *, places: int = 2) -> Decimal:
    """Parse a money amount without passing through float."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    quantum = Decimal(1).scaleb(-places)
    try:
        rounded = amount.quantize(quantum)
    except InvalidOperation:
        raise ValidationError(f"{field} is out of range")
    if rounded != amount:
        raise ValidationError(f"{field} cannot have more than {places} decimal places")
    return rounded


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Numeric):
        return coerce_decimal(value, col.key, places=coltype.scale or 0)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against the policy and the model's column metadata
    (type, nullability, String length) and return the coerced values.

    With partial=True only the keys present are checked (PATCH); otherwise
    every required_on_create field must be present (POST).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Price bounds: strictly positive and within Numeric(10, 2).
    """
    if "price" in patch and patch["price"] is not None:
        price = patch["price"]
        if price <= 0:
            raise ValidationError("price must be greater than 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE}")


def parse_images(raw: Any) -> list[ImageInput]:
    """images: non-empty list of {"url": "..."} objects."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Images are required")
    images = []
    for idx, item in enumerate(raw):
        url = item.get("url") if isinstance(item, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise ValidationError(f"images[{idx}].url is required")
        if len(url.strip()) > 1024:
            raise ValidationError(f"images[{idx}].url exceeds max length 1024")
        images.append(ImageInput(url=url.strip()))
    return images


def _first_present(raw: dict, *keys: str):
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def parse_variant_inputs(payload: Any, *, min_quantity: int = 0) -> list[VariantInput]:
    """
    Validate a variants submission into VariantInput rows.

    - variants must be a list (an empty list is valid: it archives everything)
    - sizeId and colorId are required integers (size_id and color_id are
      accepted as aliases)
    - quantity is an integer >= min_quantity
    - a persisted id may appear at most once
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_variants = payload.get("variants")
    if raw_variants is None:
        raise ValidationError("Variants are required")
    if not isinstance(raw_variants, list):
        raise ValidationError("variants must be a list")

    inputs: list[VariantInput] = []
    seen_ids: set[int] = set()

    for idx, raw in enumerate(raw_variants):
        if not isinstance(raw, dict):
            raise ValidationError(f"variants[{idx}] must be an object")

        size_id = _first_present(raw, "sizeId", "size_id")
        color_id = _first_present(raw, "colorId", "color_id")
        if size_id in (None, ""):
            raise ValidationError(f"variants[{idx}].sizeId is required")
        if color_id in (None, ""):
            raise ValidationError(f"variants[{idx}].colorId is required")
        if raw.get("quantity") in (None, ""):
            raise ValidationError(f"variants[{idx}].quantity is required")

        variant_id = raw.get("id")
        if variant_id in (None, ""):
            variant_id = None
        else:
            variant_id = coerce_int(variant_id, f"variants[{idx}].id")
            if variant_id in seen_ids:
                raise ValidationError(f"Duplicate variant id: {variant_id}")
            seen_ids.add(variant_id)

        quantity = coerce_int(raw["quantity"], f"variants[{idx}].quantity")
        if quantity < min_quantity:
            raise ValidationError(f"variants[{idx}].quantity must be >= {min_quantity}")

        inputs.append(VariantInput(
            id=variant_id,
            size_id=coerce_int(size_id, f"variants[{idx}].sizeId"),
            color_id=coerce_int(color_id, f"variants[{idx}].colorId"),
            quantity=quantity,
        ))

    return inputs


def parse_cart(payload: Any) -> list[int]:
    """
    Extract the cart (a flat list of variant ids) from a checkout body.

    The storefront sends it as "productId"; "variant_ids" is accepted too.
    A missing or empty cart returns [] and is rejected by checkout itself.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw = payload.get("productId")
    if raw is None:
        raw = payload.get("variant_ids")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("productId must be a list of variant ids")

    return [coerce_int(v, f"productId[{idx}]") for idx, v in enumerate(raw)]
