import base64
import hashlib
import hmac


def verify_shopify_hmac(request_body: bytes, hmac_header: str, secret: str) -> bool:
    """Verify the HMAC-SHA256 signature from a Shopify webhook request.

    Shopify signs every webhook body with the app's API secret and sends
    the Base64-encoded digest in the X-Shopify-Hmac-Sha256 header.

    Args:
        request_body: The raw HTTP request body bytes.
        hmac_header: The value of X-Shopify-Hmac-Sha256 header.
        secret: The app's API secret (``SHOPIFY_API_SECRET``).

    Returns:
        True if the signature is valid, False otherwise. An unset secret
        never validates.
    """
    if not secret or not hmac_header:
        return False
    computed = base64.b64encode(
        hmac.new(secret.encode("utf-8"), request_body, hashlib.sha256).digest()
    )
    return hmac.compare_digest(computed, hmac_header.encode("utf-8"))
