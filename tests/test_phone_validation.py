"""
Tests for phone normalization, Twilio lookups, chunked bulk validation, CSV
reports and the /api/phone-validation endpoints.

Twilio is replaced by an ``httpx.MockTransport``; no network access happens.
"""
import asyncio
import csv
import os
import threading
from datetime import datetime
from urllib.parse import unquote

import httpx
import pytest

from conftest import add_history
from core.config import settings
from main import app
from schemas.validation_schema import (
    InvalidLookup,
    PhoneValidationResult,
    ProviderErrorLookup,
    ValidationStatus,
    ValidLookup,
)
from services import report_service, usage_ledger
from services.phone_validation_service import (
    TwilioLookupClient,
    get_lookup_client,
    normalize_phone_number,
    validate_bulk_phone_numbers,
    validate_phone_number,
)

VALID_NUMBERS = {"+14155552671", "+442079460958"}
UNKNOWN_NUMBERS = {"+19998887777"}


def twilio_handler(request: httpx.Request) -> httpx.Response:
    number = unquote(request.url.path.rsplit("/", 1)[-1])
    if number in UNKNOWN_NUMBERS:
        return httpx.Response(404, json={"code": 20404, "message": "not found"})
    if number in VALID_NUMBERS:
        return httpx.Response(200, json={
            "valid": True,
            "country_code": "US" if number.startswith("+1") else "GB",
            "phone_number": number,
            "national_format": "(415) 555-2671",
        })
    return httpx.Response(200, json={"valid": False, "country_code": None, "phone_number": number})


def make_client(handler=twilio_handler) -> TwilioLookupClient:
    return TwilioLookupClient("AC_test", "token", transport=httpx.MockTransport(handler))


# =============================================================================
# TEST: NORMALIZATION
# =============================================================================

class TestNormalizePhoneNumber:

    @pytest.mark.parametrize("raw, expected", [
        ("+1 (415) 555-2671", "14155552671"),
        ("+44 20.7946.0958", "442079460958"),
        ("(415) 555-2671", "14155552671"),
        ("415.555.2671", "14155552671"),
        ("14155552671", "14155552671"),
        ("044 2079 460958", "442079460958"),
        ("ext: 555-0101", "5550101"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    def test_ten_digits_starting_with_one_is_left_alone(self):
        assert normalize_phone_number("1234567890") == "1234567890"


# =============================================================================
# TEST: TWILIO LOOKUP
# =============================================================================

class TestTwilioLookup:

    @pytest.mark.asyncio
    async def test_valid_number(self):
        outcome = await make_client().lookup("+14155552671")

        assert isinstance(outcome, ValidLookup)
        assert outcome.country_code == "US"
        assert outcome.formatted_number == "+14155552671"

    @pytest.mark.asyncio
    async def test_invalid_flag(self):
        assert isinstance(await make_client().lookup("+15550000000"), InvalidLookup)

    @pytest.mark.asyncio
    async def test_not_found_is_invalid(self):
        assert isinstance(await make_client().lookup("+19998887777"), InvalidLookup)

    @pytest.mark.asyncio
    async def test_server_error_is_provider_error(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        outcome = await client.lookup("+14155552671")

        assert isinstance(outcome, ProviderErrorLookup)
        assert "500" in outcome.error

    @pytest.mark.asyncio
    async def test_transport_error_is_provider_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert isinstance(await make_client(handler).lookup("+14155552671"), ProviderErrorLookup)

    @pytest.mark.asyncio
    async def test_missing_credentials_never_calls_out(self):
        def handler(request):
            raise AssertionError("provider must not be called")

        client = TwilioLookupClient(None, None, transport=httpx.MockTransport(handler))

        assert isinstance(await client.lookup("+14155552671"), ProviderErrorLookup)

    @pytest.mark.asyncio
    async def test_sends_basic_auth(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return twilio_handler(request)

        await make_client(handler).lookup("+14155552671")

        assert seen["auth"].startswith("Basic ")


# =============================================================================
# TEST: VALIDATION RESULTS
# =============================================================================

class TestValidatePhoneNumber:

    @pytest.mark.asyncio
    async def test_valid_result(self):
        result = await validate_phone_number("(415) 555-2671", make_client())

        assert result.status == ValidationStatus.VALID
        assert result.is_valid is True
        assert result.is_reachable is True
        assert result.phone_number == "14155552671"
        assert result.formatted_number == "+14155552671"

    @pytest.mark.asyncio
    async def test_blank_input_is_invalid_without_lookup(self):
        def handler(request):
            raise AssertionError("provider must not be called")

        result = await validate_phone_number("   ", make_client(handler))

        assert result.status == ValidationStatus.INVALID
        assert result.is_valid is False

    @pytest.mark.asyncio
    async def test_provider_error_is_unknown_not_invalid(self):
        result = await validate_phone_number("4155552671", make_client(lambda r: httpx.Response(503)))

        assert result.status == ValidationStatus.UNKNOWN
        assert result.is_valid is False
        assert result.is_reachable is False
        assert result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "+1415?Fields=line_type_intelligence,caller_name",
        "+1/2",
        "+x/../../v1/Accounts",
    ])
    async def test_non_digit_input_never_reaches_provider(self, raw):
        def handler(request):
            raise AssertionError("provider must not be called")

        result = await validate_phone_number(raw, make_client(handler))

        assert result.status == ValidationStatus.INVALID
        assert result.error == "Phone number contains invalid characters"

    @pytest.mark.asyncio
    async def test_lookup_escapes_the_number_in_the_path(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(404)

        await make_client(handler).lookup("+1415?Fields=x")

        assert seen[0].params.get("Fields") is None
        assert seen[0].path == "/v2/PhoneNumbers/+1415?Fields=x"


class TestValidateBulk:

    @pytest.mark.asyncio
    async def test_chunks_run_concurrently_with_pauses_between(self):
        in_flight = 0
        peak = 0
        pauses = []

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return twilio_handler(request)

        async def fake_sleep(seconds):
            pauses.append(seconds)

        numbers = [f"+1415555{i:04d}" for i in range(25)]
        results = await validate_bulk_phone_numbers(
            numbers, make_client(handler), chunk_size=10, delay_seconds=0.5, sleep=fake_sleep
        )

        assert [r.phone_number for r in results] == [n[1:] for n in numbers]
        assert peak == 10
        # three chunks -> two pauses, none after the last
        assert pauses == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_single_chunk_has_no_pause(self):
        pauses = []

        async def fake_sleep(seconds):
            pauses.append(seconds)

        await validate_bulk_phone_numbers(
            ["+14155552671"] * 10, make_client(), chunk_size=10, delay_seconds=0.5, sleep=fake_sleep
        )

        assert pauses == []


# =============================================================================
# TEST: CSV REPORTS
# =============================================================================

class TestSaveValidationResults:

    def test_writes_dated_csv(self, tmp_path):
        moment = datetime(2025, 3, 7, 14, 5)
        results = [
            PhoneValidationResult(
                phone_number="14155552671", status=ValidationStatus.VALID, is_valid=True,
                is_reachable=True, country_code="US", formatted_number="+14155552671",
                national_format="(415) 555-2671", validated_at=moment,
            ),
            PhoneValidationResult(
                phone_number="15550000000", status=ValidationStatus.INVALID, validated_at=moment,
            ),
        ]

        saved = report_service.save_validation_results(results, prefix="ACM", uploads_dir=str(tmp_path), now=moment)

        assert saved.file_name.startswith("ACM0703251405-")
        assert saved.file_name.endswith(".csv")
        assert saved.public_path == f"csvs/2025/03/{saved.file_name}"
        with open(tmp_path / saved.public_path, newline="", encoding="utf-8") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == report_service.REPORT_HEADERS
        assert rows[1][:6] == ["14155552671", "Yes", "Yes", "US", "+14155552671", "(415) 555-2671"]
        assert rows[2][:3] == ["15550000000", "No", "No"]

    def test_same_minute_batches_keep_their_own_rows(self, tmp_path):
        moment = datetime(2025, 3, 7, 14, 5)
        first = [PhoneValidationResult(phone_number="14155550001", status=ValidationStatus.VALID, validated_at=moment)]
        second = [PhoneValidationResult(phone_number="14155550002", status=ValidationStatus.VALID, validated_at=moment)]

        saved_first = report_service.save_validation_results(first, uploads_dir=str(tmp_path), now=moment)
        saved_second = report_service.save_validation_results(second, uploads_dir=str(tmp_path), now=moment)

        assert saved_first.public_path != saved_second.public_path
        for saved, number in ((saved_first, "14155550001"), (saved_second, "14155550002")):
            with open(tmp_path / saved.public_path, newline="", encoding="utf-8") as fh:
                rows = list(csv.reader(fh))
            assert [row[0] for row in rows[1:]] == [number]

    def test_empty_results_rejected(self, tmp_path):
        from core.exceptions import BadRequest

        with pytest.raises(BadRequest):
            report_service.save_validation_results([], uploads_dir=str(tmp_path))


# =============================================================================
# TEST: ENDPOINTS
# =============================================================================

@pytest.fixture
def lookup_client(client):
    app.dependency_overrides[get_lookup_client] = make_client
    return client


class TestPhoneValidationRoutes:

    def test_requires_authentication(self, lookup_client):
        response = lookup_client.post("/api/phone-validation/single", json={"phone_number": "4155552671"})

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_single_records_history_and_report(self, lookup_client, auth_headers, session, user):
        response = lookup_client.post(
            "/api/phone-validation/single", json={"phone_number": "(415) 555-2671"}, headers=auth_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["valid"] == 1
        assert os.path.exists(os.path.join(settings.UPLOADS_DIR, body["file_path"]))

        history = usage_ledger.list_history(session, user.id)
        assert [(h.type.value, h.total, h.file_path) for h in history] == [("single", 1, body["file_path"])]

    def test_bulk_counts_by_status(self, lookup_client, auth_headers):
        response = lookup_client.post(
            "/api/phone-validation/bulk",
            json={"phone_numbers": ["4155552671", "+1 999 888 7777", "5550000000"]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["total"], body["valid"], body["invalid"], body["unknown"]) == (3, 1, 2, 0)

    def test_bulk_over_remaining_is_rejected_whole(self, lookup_client, auth_headers, session, user):
        add_history(session, user.id, 3)

        response = lookup_client.post(
            "/api/phone-validation/bulk",
            json={"phone_numbers": ["4155552671", "4155552672", "4155552673"]},
            headers=auth_headers,
        )

        assert response.status_code == 402
        assert response.json()["code"] == "QUOTA_EXCEEDED"
        assert usage_ledger.total_validations_used(session, user.id) == 3

    def test_free_tier_runs_out(self, lookup_client, auth_headers):
        for _ in range(settings.FREE_TIER_LIMIT):
            ok = lookup_client.post(
                "/api/phone-validation/single", json={"phone_number": "4155552671"}, headers=auth_headers
            )
            assert ok.status_code == 200

        blocked = lookup_client.post(
            "/api/phone-validation/single", json={"phone_number": "4155552671"}, headers=auth_headers
        )

        assert blocked.status_code == 402
        assert blocked.json()["limit"]["limit_type"] == "exceeded"

    def test_bulk_size_cap(self, lookup_client, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_BULK_NUMBERS", 2)

        response = lookup_client.post(
            "/api/phone-validation/bulk", json={"phone_numbers": ["1", "2", "3"]}, headers=auth_headers
        )

        assert response.status_code == 400

    def test_csv_upload_uses_first_column(self, lookup_client, auth_headers, session, user):
        content = "4155552671,John\n\n+44 20 7946 0958,Jane\n"

        response = lookup_client.post(
            "/api/phone-validation/csv",
            files={"csv_file": ("numbers.csv", content, "text/csv")},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["valid"] == 2
        assert usage_ledger.list_history(session, user.id)[0].type.value == "csv"

    def test_csv_rejects_other_files(self, lookup_client, auth_headers):
        response = lookup_client.post(
            "/api/phone-validation/csv",
            files={"csv_file": ("numbers.txt", "4155552671", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400

    def test_csv_without_numbers(self, lookup_client, auth_headers):
        response = lookup_client.post(
            "/api/phone-validation/csv",
            files={"csv_file": ("empty.csv", "\n\n", "text/csv")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "No phone numbers found in CSV file"

    def test_history_endpoint(self, lookup_client, auth_headers, session, user):
        add_history(session, user.id, 2)

        response = lookup_client.get("/api/phone-validation/history", headers=auth_headers)

        assert response.status_code == 200
        assert [h["total"] for h in response.json()] == [2]

    def test_database_and_report_work_runs_off_the_event_loop(self, client, auth_headers, monkeypatch):
        threads = {}
        real_save = report_service.save_validation_results

        def recording_handler(request):
            threads["lookup"] = threading.get_ident()
            return twilio_handler(request)

        def recording_save(results):
            threads["report"] = threading.get_ident()
            return real_save(results)

        app.dependency_overrides[get_lookup_client] = lambda: make_client(recording_handler)
        monkeypatch.setattr(report_service, "save_validation_results", recording_save)

        response = client.post(
            "/api/phone-validation/bulk", json={"phone_numbers": ["4155552671"]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert threads["report"] != threads["lookup"]
