"""
ITS gateway tests.

Tests cover:
- Sliding-window rate limiter (20 calls / 180 s, 1 s buffer)
- Demographics mapping and photo normalization
- Upstream failures mapped to typed errors
- Applicant fetch endpoint status codes
"""

import httpx
import pytest

from casework.services.its_gateway import (
    JPEG_DATA_PREFIX,
    ItsGatewayError,
    ItsNotFoundError,
    ItsTimeoutError,
    ItsUnavailableError,
    SlidingWindowRateLimiter,
    map_applicant_payload,
)

ITS_NUMBER = "12345678"
DATA_PATH = f"/test/its-user/{ITS_NUMBER}"
PHOTO_PATH = f"/test/its-user-image/{ITS_NUMBER}"

SAMPLE_PAYLOAD = {
    "Fullname": "  Husain Ali Bhai  ",
    "Age": "42",
    "Gender": "M",
    "Mobile": "9800000000",
    "Email": "",
    "Jamiaat_ID": "J01",
    "Jamaat_ID": "JM01",
    "City": "Pune",
}


# =============================================================================
# Rate Limiter
# =============================================================================


def test_limiter_allows_max_calls_without_waiting(fake_clock):
    limiter = SlidingWindowRateLimiter(clock=fake_clock, sleep=fake_clock.sleep)

    waits = [limiter.acquire() for _ in range(20)]

    assert waits == [0.0] * 20
    assert fake_clock.sleeps == []
    assert limiter.in_window == 20


def test_limiter_blocks_until_oldest_call_ages_out(fake_clock):
    limiter = SlidingWindowRateLimiter(clock=fake_clock, sleep=fake_clock.sleep)
    for _ in range(20):
        limiter.acquire()
        fake_clock.now += 1.0

    # Oldest call at t=1000, now t=1020: wait 160 s plus the 1 s buffer
    waited = limiter.acquire()

    assert waited == pytest.approx(161.0)
    assert fake_clock.sleeps == [pytest.approx(161.0)]
    # t=1181: the calls at t=1000 and t=1001 have aged out
    assert limiter.in_window == 19


def test_limiter_window_frees_after_expiry(fake_clock):
    limiter = SlidingWindowRateLimiter(max_calls=2, window_seconds=10, clock=fake_clock, sleep=fake_clock.sleep)
    limiter.acquire()
    limiter.acquire()

    fake_clock.now += 10.0

    assert limiter.acquire() == 0.0
    assert limiter.in_window == 1


# =============================================================================
# Mapping
# =============================================================================


def test_map_payload_normalizes_fields():
    data = map_applicant_payload(ITS_NUMBER, SAMPLE_PAYLOAD)

    assert data["full_name"] == "Husain Ali Bhai"
    assert data["first_name"] == "Husain"
    assert data["last_name"] == "Ali Bhai"
    assert data["age"] == 42
    assert data["gender"] == "male"
    assert data["email"] is None
    assert data["jamiat_id"] == "J01"
    assert data["jamaat_id"] == "JM01"
    assert data["photo"] is None


def test_map_payload_tolerates_bad_age_and_unknown_gender():
    data = map_applicant_payload(ITS_NUMBER, {"Fullname": "Zahra", "Age": "n/a", "Gender": "X"})

    assert data["first_name"] == "Zahra"
    assert data["last_name"] == ""
    assert data["age"] is None
    assert data["gender"] == "other"


# =============================================================================
# Gateway
# =============================================================================


def test_fetch_applicant_with_photo(its_gateway, its_routes):
    its_routes[DATA_PATH] = httpx.Response(200, json={"data": SAMPLE_PAYLOAD})
    its_routes[PHOTO_PATH] = httpx.Response(200, json={"data": {"image_data": "AAAA"}})

    data = its_gateway.fetch_applicant(ITS_NUMBER)

    assert data["its_number"] == ITS_NUMBER
    assert data["photo"] == f"{JPEG_DATA_PREFIX}AAAA"
    # Only the demographics call counts against the window
    assert its_gateway.limiter.in_window == 1


def test_photo_lookups_do_not_consume_rate_budget(its_gateway, its_routes, fake_clock):
    its_routes[DATA_PATH] = httpx.Response(200, json={"data": SAMPLE_PAYLOAD})
    its_routes[PHOTO_PATH] = httpx.Response(200, json={"data": {"image_data": "AAAA"}})

    for _ in range(20):
        its_gateway.fetch_applicant(ITS_NUMBER)
    assert fake_clock.sleeps == []

    its_gateway.fetch_applicant(ITS_NUMBER)
    assert fake_clock.sleeps == [pytest.approx(181.0)]


def test_photo_failure_does_not_fail_lookup(its_gateway, its_routes):
    its_routes[DATA_PATH] = httpx.Response(200, json={"data": SAMPLE_PAYLOAD})
    its_routes[PHOTO_PATH] = httpx.Response(500, json={})

    data = its_gateway.fetch_applicant(ITS_NUMBER)

    assert data["full_name"] == "Husain Ali Bhai"
    assert data["photo"] is None


def test_malformed_its_number_rejected_before_any_call(its_gateway):
    with pytest.raises(ItsGatewayError):
        its_gateway.fetch_applicant("1234")
    assert its_gateway.limiter.in_window == 0


@pytest.mark.parametrize(
    "response, error",
    [
        (httpx.Response(404, json={}), ItsNotFoundError),
        (httpx.Response(200, json={"data": None}), ItsNotFoundError),
        (httpx.Response(503, json={}), ItsUnavailableError),
        (httpx.Response(422, json={}), ItsGatewayError),
        (httpx.Response(200, text="<html>"), ItsUnavailableError),
    ],
)
def test_upstream_responses_map_to_errors(its_gateway, its_routes, response, error):
    its_routes[DATA_PATH] = response

    with pytest.raises(error):
        its_gateway.fetch_applicant(ITS_NUMBER)


def test_timeout_maps_to_timeout_error(its_gateway, monkeypatch):
    def timeout(url):
        raise httpx.ReadTimeout("slow", request=httpx.Request("GET", url))

    monkeypatch.setattr(its_gateway.client, "get", timeout)

    with pytest.raises(ItsTimeoutError) as exc_info:
        its_gateway.fetch_applicant(ITS_NUMBER)
    assert exc_info.value.status_code == 408


def test_connection_failure_maps_to_unavailable(its_gateway, monkeypatch):
    def refuse(url):
        raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

    monkeypatch.setattr(its_gateway.client, "get", refuse)

    with pytest.raises(ItsUnavailableError) as exc_info:
        its_gateway.fetch_applicant(ITS_NUMBER)
    assert exc_info.value.status_code == 503


# =============================================================================
# API
# =============================================================================


@pytest.mark.asyncio
async def test_fetch_endpoint_returns_mapped_data(client, auth_headers, dcm_user, its_routes):
    its_routes[DATA_PATH] = httpx.Response(200, json={"data": SAMPLE_PAYLOAD})

    response = await client.get(
        f"/api/applicants/fetch-from-api/{ITS_NUMBER}", headers=auth_headers(dcm_user)
    )

    assert response.status_code == 200
    assert response.json()["full_name"] == "Husain Ali Bhai"


@pytest.mark.asyncio
async def test_fetch_endpoint_unknown_number_is_404(client, auth_headers, dcm_user):
    response = await client.get(
        f"/api/applicants/fetch-from-api/{ITS_NUMBER}", headers=auth_headers(dcm_user)
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "ITS number not found in external system"}


@pytest.mark.asyncio
async def test_fetch_endpoint_requires_permission(client, auth_headers, counselor):
    response = await client.get(
        f"/api/applicants/fetch-from-api/{ITS_NUMBER}", headers=auth_headers(counselor)
    )

    assert response.status_code == 403
