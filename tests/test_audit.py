"""Tests for secret redaction in logs."""

import pytest

from labeler.logging import audit
from labeler.logging.audit import redact_secrets, register_secret


@pytest.fixture(autouse=True)
def no_registered_secrets(monkeypatch):
    monkeypatch.setattr(audit, "_registered_secrets", set())


class TestRedactSecrets:
    """Tests for redact_secrets."""

    def test_github_token(self):
        token = "ghp_" + "a" * 36
        assert redact_secrets(f"using {token}") == "using [REDACTED_GITHUB_TOKEN]"

    def test_fine_grained_token(self):
        token = "github_pat_" + "b" * 30
        assert token not in redact_secrets(token)

    def test_authorization_header(self):
        assert redact_secrets("Authorization: Bearer abc.def") == "Authorization: [REDACTED]"

    def test_bearer(self):
        assert redact_secrets("sent bearer abc.def") == "sent bearer [REDACTED]"

    def test_nested_values(self):
        token = "ghs_" + "c" * 40
        redacted = redact_secrets({"headers": [token], "count": 3, "pair": ("x", token)})
        assert redacted == {
            "headers": ["[REDACTED_GITHUB_TOKEN]"],
            "count": 3,
            "pair": ("x", "[REDACTED_GITHUB_TOKEN]"),
        }

    def test_registered_secret(self):
        register_secret("s3cr3t-value")
        assert redact_secrets("token was s3cr3t-value") == "token was [REDACTED]"

    def test_blank_secret_ignored(self):
        register_secret("  ")
        assert redact_secrets("labels added: bug") == "labels added: bug"
