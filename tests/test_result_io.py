"""Tests for specflow.runtime.result_io.

Runner payloads are validated against the result schema and normalized
into Result values.
"""

from datetime import datetime, timezone

import pytest

from specflow.runtime.errors import InvalidResultError
from specflow.runtime.result_io import result_from_raw, validate_result_payload
from specflow.runtime.types import ResultStatus


class TestResultFromRaw:
    """Tests for status and message derivation."""

    def test_zero_exit_code_is_ok(self):
        result = result_from_raw({"code": 0, "stdout": "done"})

        assert result.status == ResultStatus.OK
        assert result.stdout == "done"
        assert result.error_message is None

    def test_missing_code_and_status_is_ok(self):
        assert result_from_raw({}).status == ResultStatus.OK

    def test_nonzero_exit_code_is_error_with_stderr_message(self):
        result = result_from_raw({"code": 1, "stderr": "  fatal: no such branch\n"})

        assert result.status == ResultStatus.ERROR
        assert result.error_message == "fatal: no such branch"

    def test_nonzero_exit_code_without_stderr(self):
        result = result_from_raw({"code": 128, "stderr": ""})

        assert result.error_message == "Command exited with code 128"

    def test_explicit_status_wins_over_code(self):
        result = result_from_raw({"status": "warning", "code": 3, "error_message": "flaky"})

        assert result.status == ResultStatus.WARNING
        assert result.error_message == "flaky"

    def test_explicit_error_without_details(self):
        assert result_from_raw({"status": "error"}).error_message == "Command failed"

    def test_timestamp_is_parsed(self):
        result = result_from_raw({"status": "ok", "timestamp": "2024-05-01T12:00:00Z"})

        assert result.timestamp == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_data_defaults_to_empty(self):
        assert result_from_raw({"status": "ok"}).data == {}


class TestRejectedPayloads:
    """Malformed payloads raise InvalidResultError."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"status": "bogus"},
            {"code": "zero"},
            {"stdout": 12},
            {"status": "ok", "unexpected": True},
            ["not", "an", "object"],
        ],
    )
    def test_schema_violations(self, payload):
        with pytest.raises(InvalidResultError) as exc_info:
            result_from_raw(payload)

        assert exc_info.value.errors

    def test_bad_timestamp(self):
        with pytest.raises(InvalidResultError, match="timestamp"):
            result_from_raw({"status": "ok", "timestamp": "yesterday"})

    def test_error_locations_name_the_field(self):
        errors = validate_result_payload({"status": "bogus"})

        assert len(errors) == 1
        assert errors[0].startswith("status: ")

    def test_valid_payload_has_no_errors(self):
        assert validate_result_payload({"status": "ok", "code": None, "data": {"k": 1}}) == []
