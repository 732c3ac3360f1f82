"""Integration test configuration and fixtures."""
from urllib.parse import parse_qs, urlparse

import pytest


@pytest.fixture
def mailed_tokens(mock_email_service):
    """Tokens extracted from every reset email sent so far, oldest first."""

    def _tokens():
        tokens = []
        for call in mock_email_service.send_password_reset.call_args_list:
            reset_url = call.kwargs["reset_url"]
            tokens.append(parse_qs(urlparse(reset_url).query)["token"][0])
        return tokens

    return _tokens
