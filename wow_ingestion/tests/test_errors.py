"""
Unit tests for the fetch pipeline exception hierarchy.
"""

from wow_ingestion.errors import SecretResolutionError, UnknownRealmError, UpstreamError


class TestIngestionError:
    """Test stage tagging in error messages."""

    def test_stage_at_construction(self):
        """Test a stage passed to the constructor prefixes the message."""
        error = UpstreamError("GET failed", status_code=503, stage="fetch")

        assert str(error) == "[fetch] GET failed"

    def test_stage_set_later(self):
        """Test a stage tagged after construction still prefixes the message."""
        error = SecretResolutionError("secret missing")
        assert str(error) == "secret missing"

        error.stage = "resolve secrets"

        assert str(error) == "[resolve secrets] secret missing"
        assert error.args == ("secret missing",)

    def test_unknown_realm_is_not_quoted(self):
        """Test UnknownRealmError formats like the other errors despite being a KeyError."""
        error = UnknownRealmError("unknown connected realm 'Illidan'")
        error.stage = "lookup"

        assert str(error) == "[lookup] unknown connected realm 'Illidan'"
