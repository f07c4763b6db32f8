"""ORM-level validators shared by the floor, order and ledger models.

Applied through ``@validates`` so a bad quantity, price or branch setting is
refused when assigned, whichever service or route does the writing.
"""

from decimal import Decimal, InvalidOperation


def _as_decimal(key: str, value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be numeric, got {value!r}")


def non_negative(key: str, value):
    """Quantities and money amounts may be zero but never below."""
    if value is not None and _as_decimal(key, value) < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    if value is not None and _as_decimal(key, value) <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def validate_dict(key: str, value):
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"{key} must be a dict, got {type(value).__name__}")
    return value


def validate_size_prices(key: str, value):
    """Each size variant maps to a non-negative price."""
    validate_dict(key, value)
    for size, price in (value or {}).items():
        if price is None:
            raise ValueError(f"{key}[{size}] has no price")
        non_negative(f"{key}[{size}]", price)
    return value


def validate_marketplace_config(key: str, value):
    """Per-platform settings must be dicts with an optional string webhook secret."""
    validate_dict(key, value)
    for platform, config in (value or {}).items():
        validate_dict(f"{key}[{platform}]", config)
        secret = (config or {}).get("webhook_secret")
        if secret is not None and not isinstance(secret, str):
            raise ValueError(f"{key}[{platform}].webhook_secret must be a string")
    return value
