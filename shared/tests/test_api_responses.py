"""Tests for the standard response envelopes."""

from shared.schemas.api_responses import (
    MESSAGE_CREATED,
    MESSAGE_DELETED,
    MESSAGE_RECEIVED,
    MESSAGE_UPDATED,
    ErrorResponse,
    HttpResponse,
)


class TestHttpResponse:
    """Tests for envelope builders."""

    def test_get_merges_payload(self):
        """Test payload keys sit beside code and message."""
        body = HttpResponse.get({"data": [1, 2], "total": 2})

        assert body == {"code": 200, "message": MESSAGE_RECEIVED, "data": [1, 2], "total": 2}

    def test_created_uses_201(self):
        """Test created envelope."""
        body = HttpResponse.created({"data": None})

        assert body["code"] == 201
        assert body["message"] == MESSAGE_CREATED
        assert body["data"] is None

    def test_updated_and_deleted_messages(self):
        """Test update and delete envelopes."""
        assert HttpResponse.updated()["message"] == MESSAGE_UPDATED
        assert HttpResponse.deleted() == {"code": 200, "message": MESSAGE_DELETED}

    def test_payload_can_override_message(self):
        """Test a custom message replaces the default."""
        body = HttpResponse.get({"message": "custom"})

        assert body["message"] == "custom"


class TestErrorResponse:
    """Tests for the error envelope."""

    def test_optional_fields_dropped(self):
        """Test exclude_none leaves only code and message."""
        error = ErrorResponse(code=404, message="data not found")

        assert error.model_dump(exclude_none=True) == {"code": 404, "message": "data not found"}
