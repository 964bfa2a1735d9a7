"""
Tests for unsubscribe URL and List-Unsubscribe header construction.
"""

import pytest

from compliance_gateway.core.links import UnsubscribeLinks


class TestUnsubscribeLinks:
    """Test link building around a signed token."""

    def test_url_for(self):
        links = UnsubscribeLinks("https://mail.example.com/unsubscribe")

        assert links.url_for("abc.def") == "https://mail.example.com/unsubscribe?token=abc.def"

    def test_existing_query_string(self):
        links = UnsubscribeLinks("https://mail.example.com/u?lang=he")

        assert links.url_for("abc.def") == "https://mail.example.com/u?lang=he&token=abc.def"

    def test_token_characters_escaped(self):
        links = UnsubscribeLinks("https://mail.example.com/unsubscribe")

        assert links.url_for("a+b/c=") == "https://mail.example.com/unsubscribe?token=a%2Bb%2Fc%3D"

    def test_list_unsubscribe_header(self):
        links = UnsubscribeLinks("https://mail.example.com/unsubscribe")

        assert links.list_unsubscribe_header("abc.def") == "<https://mail.example.com/unsubscribe?token=abc.def>"

    def test_empty_base_url_rejected(self):
        with pytest.raises(ValueError):
            UnsubscribeLinks("")
