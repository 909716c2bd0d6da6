"""Utility helpers for the physical gift cards app."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

GID_PREFIX = "gid://shopify/"

# ISO 4217 currencies whose minor unit is not 2 decimal places.
ZERO_DECIMAL_CURRENCIES = frozenset(
    {"BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG", "RWF",
     "UGX", "VND", "VUV", "XAF", "XOF", "XPF"}
)
THREE_DECIMAL_CURRENCIES = frozenset(
    {"BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND"}
)


def to_shopify_gid(resource_type, numeric_id):
    """Convert a numeric Shopify ID to the Global ID (GID) format.

    IDs that are already GIDs are returned unchanged, so the helper can be
    applied to values coming from either the REST webhooks or GraphQL.

    Examples::

        >>> to_shopify_gid("ProductVariant", 50840830771431)
        'gid://shopify/ProductVariant/50840830771431'
        >>> to_shopify_gid("Order", "gid://shopify/Order/1")
        'gid://shopify/Order/1'
    """
    numeric_id = str(numeric_id).strip()
    if numeric_id.startswith(GID_PREFIX):
        return numeric_id
    return f"{GID_PREFIX}{resource_type}/{numeric_id}"


def currency_exponent(currency_code):
    """Number of decimal places of the currency's minor unit."""
    code = (currency_code or "").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def quantize_money(amount, currency_code):
    """Round ``amount`` half-up to the currency's minor-unit precision.

    Raises:
        ValueError: if the amount has too many digits to round.
    """
    exponent = Decimal(1).scaleb(-currency_exponent(currency_code))
    try:
        return Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Monetary amount out of range: {amount}") from None


def parse_money(value):
    """Parse a decimal string (``"25.00"``) into a ``Decimal``.

    Raises:
        ValueError: if the value is empty or not a finite number.
    """
    if value is None or str(value).strip() == "":
        raise ValueError("Missing monetary amount")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid monetary amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary amount: {value!r}")
    return amount


def format_gift_card_code(code):
    """Group a gift card code into 4-character blocks, upper-cased.

    Display only; records always keep the code exactly as Shopify returned it.

        >>> format_gift_card_code("abcd1234efgh5678")
        'ABCD 1234 EFGH 5678'
    """
    if not code:
        return ""
    return " ".join(code[i:i + 4] for i in range(0, len(code), 4)).upper()


def mask_code(code):
    """Return a log-safe representation exposing only the last 4 characters."""
    if not code:
        return ""
    return f"****{code[-4:].upper()}"
