"""
Gate.io APIv4 authentication and signature handling.
"""

import hashlib
import hmac

from gate_trader.core.utils import now_timestamp

from .constants import API_PREFIX


class GateAuth:
    """
    Handles Gate.io API authentication and request signing.

    Gate.io signs ``METHOD\\nPATH\\nQUERY\\nHEX(SHA512(BODY))\\nTIMESTAMP``
    with HMAC-SHA512, where PATH includes the ``/api/v4`` prefix.

    Example:
        >>> auth = GateAuth("api_key", "api_secret")
        >>> headers = auth.sign_request("GET", "/futures/usdt/accounts")
        >>> sorted(headers)
        ['KEY', 'SIGN', 'Timestamp']
    """

    def __init__(self, api_key: str, api_secret: str):
        """
        Initialize GateAuth.

        Args:
            api_key: Gate.io API key
            api_secret: Gate.io API secret
        """
        self.api_key = api_key
        self.api_secret = api_secret

    @staticmethod
    def hash_body(body: str) -> str:
        """Hex SHA512 of the request body (empty string for no body)."""
        return hashlib.sha512(body.encode("utf-8")).hexdigest()

    def signature_payload(
        self,
        method: str,
        path: str,
        query_string: str,
        body: str,
        timestamp: str,
    ) -> str:
        """
        Build the string to sign.

        Args:
            method: HTTP method
            path: Endpoint path without the API prefix
            query_string: URL encoded query string, without '?'
            body: Serialized JSON body, '' for none
            timestamp: Unix seconds as string
        """
        return "\n".join([
            method.upper(),
            f"{API_PREFIX}{path}",
            query_string,
            self.hash_body(body),
            timestamp,
        ])

    def sign(self, payload: str) -> str:
        """HMAC-SHA512 of payload as hex string."""
        return hmac.new(
            self.api_secret.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha512,
        ).hexdigest()

    def sign_request(
        self,
        method: str,
        path: str,
        query_string: str = "",
        body: str = "",
        timestamp: str | None = None,
    ) -> dict:
        """
        Sign a request and return the authentication headers.

        Returns:
            Headers dict with KEY, Timestamp and SIGN
        """
        if timestamp is None:
            timestamp = str(now_timestamp(unit="s"))

        payload = self.signature_payload(method, path, query_string, body, timestamp)

        return {
            "KEY": self.api_key,
            "Timestamp": timestamp,
            "SIGN": self.sign(payload),
        }
