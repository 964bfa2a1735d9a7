"""
Unsubscribe link construction for signed tokens.
"""

from urllib.parse import urlencode


class UnsubscribeLinks:
    """Builds the public unsubscribe URL and the matching mail header value."""

    def __init__(self, base_url: str) -> None:
        if not base_url:
            raise ValueError("Unsubscribe base URL must not be empty")
        self.base_url = base_url

    def url_for(self, token: str) -> str:
        separator = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{separator}{urlencode({'token': token})}"

    def list_unsubscribe_header(self, token: str) -> str:
        """Value for the ``List-Unsubscribe`` header (RFC 2369 angle-bracket form)."""
        return f"<{self.url_for(token)}>"
