"""Minor-unit conversion for the gateway API and key obfuscation for logging.

The gateway represents monetary amounts as integers in the smallest currency
unit (paise for INR), so ``Decimal("500.00")`` is sent as ``50000``. Amounts
that do not land on a whole minor unit are rounded half-up, matching what the
checkout page shows the payer.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_MINOR_UNITS_PER_UNIT = 100
_OBFUSCATE_VISIBLE_CHARS = 4


def parse_amount(value: object) -> Decimal:
    """Coerce a request value into a finite :class:`~decimal.Decimal`.

    Floats are converted through ``str`` so ``499.995`` stays ``499.995``
    rather than its binary approximation.

    Args:
        value: A ``Decimal``, ``int``, ``float`` or numeric string.

    Returns:
        The parsed amount.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        msg = f"Amount must be a number, got {value!r}"
        raise ValueError(msg)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            msg = f"Amount must be a number, got {value!r}"
            raise ValueError(msg) from exc
    else:
        msg = f"Amount must be a number, got {type(value).__name__}"
        raise ValueError(msg)
    if not amount.is_finite():
        msg = f"Amount must be finite, got {value!r}"
        raise ValueError(msg)
    return amount


def to_minor_units(amount: Decimal) -> int:
    """Convert a Decimal amount to integer minor units, rounding half-up.

    Args:
        amount: The monetary amount in major units (e.g. rupees).

    Returns:
        The amount in minor units (e.g. paise).

    Raises:
        ValueError: If the amount has too many digits to convert exactly.
    """
    try:
        scaled = amount * _MINOR_UNITS_PER_UNIT
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        msg = f"Amount is too large, got {amount!r}"
        raise ValueError(msg) from exc


def from_minor_units(amount: int) -> Decimal:
    """Convert an integer minor-unit amount back to a Decimal in major units.

    This is the inverse of :func:`to_minor_units` for whole minor units.

    Args:
        amount: The integer amount as returned by the gateway.

    Returns:
        The amount as a two-place :class:`~decimal.Decimal`.
    """
    return (Decimal(str(amount)) / _MINOR_UNITS_PER_UNIT).quantize(Decimal("0.01"))


def obfuscate_key(key: str) -> str:
    """Obfuscate an API key so it can be safely written to logs.

    Returns the last four characters of the key prefixed with ``"****"``.  If the key is
    shorter than four characters the entire value is masked and only ``"****"`` is
    returned.

    Args:
        key: The key to obfuscate.

    Returns:
        A partially masked string safe for log output.
    """
    if len(key) < _OBFUSCATE_VISIBLE_CHARS:
        return "****"
    return "****" + key[-_OBFUSCATE_VISIBLE_CHARS:]
