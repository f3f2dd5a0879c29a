"""ITS (external applicant registry) client.

Handles:
- Outbound rate limiting (sliding window, process-local)
- Demographics lookup with field normalization
- Best-effort photo lookup (never fails the main lookup)
- Mapping upstream failures to typed errors
"""

import logging
import re
import threading
import time
from collections import deque
from typing import Any, Callable, TypedDict

import httpx
from sqlalchemy.orm import Session

from casework.core.config import Settings, settings as default_settings
from casework.db.enums import Gender
from casework.db.models import Jamaat, Jamiat
from casework.services.errors import CaseworkError, NotFoundError

logger = logging.getLogger(__name__)

ITS_NUMBER_RE = re.compile(r"^\d{8}$")
JPEG_DATA_PREFIX = "data:image/jpeg;base64,"
GENDER_CODES = {"M": Gender.MALE.value, "F": Gender.FEMALE.value}


# =============================================================================
# Errors
# =============================================================================

class ItsGatewayError(CaseworkError):
    """Upstream rejected the request."""

    status_code = 400


class ItsNotFoundError(ItsGatewayError, NotFoundError):
    """ITS number unknown upstream. Permanent."""

    status_code = 404


class ItsUnavailableError(ItsGatewayError):
    """Upstream 5xx or network failure. Transient."""

    status_code = 503


class ItsTimeoutError(ItsGatewayError):
    """Upstream did not answer in time. Transient."""

    status_code = 408


TRANSIENT_ERRORS = (ItsUnavailableError, ItsTimeoutError)


# =============================================================================
# Rate Limiter
# =============================================================================

class SlidingWindowRateLimiter:
    """
    Allow at most `max_calls` per `window_seconds`.

    When the window is full, acquire() sleeps until the oldest call ages out
    plus `buffer_seconds`. State is per process.
    """

    def __init__(
        self,
        max_calls: int = 20,
        window_seconds: float = 180.0,
        buffer_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.buffer_seconds = buffer_seconds
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    def acquire(self) -> float:
        """Record one call, blocking first if needed. Returns seconds waited."""
        waited = 0.0
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._calls) >= self.max_calls:
                wait = self._calls[0] + self.window_seconds - now + self.buffer_seconds
                if wait > 0:
                    logger.info("ITS rate limit reached, waiting %.1fs", wait)
                    self._sleep(wait)
                    waited = wait
                now = self._clock()
                self._prune(now)
            self._calls.append(now)
        return waited

    @property
    def in_window(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return len(self._calls)


# =============================================================================
# Gateway
# =============================================================================

class ItsApplicantData(TypedDict):
    its_number: str
    full_name: str
    first_name: str
    last_name: str
    age: int | None
    gender: str | None
    phone: str | None
    email: str | None
    address: str | None
    jamiat_id: str | None
    jamaat_id: str | None
    country: str | None
    city: str | None
    state: str | None
    occupation: str | None
    qualification: str | None
    idara: str | None
    photo: str | None


def validate_its_number(its_number: str) -> str:
    its_number = (its_number or "").strip()
    if not ITS_NUMBER_RE.match(its_number):
        raise ItsGatewayError("ITS number must be exactly 8 digits")
    return its_number


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _age(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], " ".join(parts[1:])


def map_applicant_payload(its_number: str, payload: dict[str, Any]) -> ItsApplicantData:
    """Normalize an ITS `data` object to applicant fields."""
    full_name = _text(payload.get("Fullname")) or ""
    first_name, last_name = _split_name(full_name)
    gender_code = _text(payload.get("Gender"))
    if gender_code:
        gender = GENDER_CODES.get(gender_code.upper(), Gender.OTHER.value)
    else:
        gender = None

    return {
        "its_number": its_number,
        "full_name": full_name,
        "first_name": first_name,
        "last_name": last_name,
        "age": _age(payload.get("Age")),
        "gender": gender,
        "phone": _text(payload.get("Mobile")),
        "email": _text(payload.get("Email")),
        "address": _text(payload.get("Address")),
        "jamiat_id": _text(payload.get("Jamiaat_ID")),
        "jamaat_id": _text(payload.get("Jamaat_ID")),
        "country": _text(payload.get("Country")),
        "city": _text(payload.get("City")),
        "state": _text(payload.get("State")),
        "occupation": _text(payload.get("Occupation")),
        "qualification": _text(payload.get("Qualification")),
        "idara": _text(payload.get("Idara")),
        "photo": None,
    }


class ItsGateway:
    """Synchronous ITS client. One instance per process is expected."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
        config: Settings | None = None,
    ):
        self.config = config or default_settings
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(self.config.ITS_API_TIMEOUT_SECONDS),
            verify=self.config.ITS_VERIFY_SSL,
            headers={
                "Accept": "application/json",
                "User-Agent": self.config.ITS_USER_AGENT,
            },
        )
        self.limiter = limiter or SlidingWindowRateLimiter(
            max_calls=self.config.ITS_RATE_LIMIT_CALLS,
            window_seconds=self.config.ITS_RATE_LIMIT_WINDOW_SECONDS,
        )

    def _get(self, url: str) -> httpx.Response:
        self.limiter.acquire()
        return self.client.get(url)

    def fetch_applicant(self, its_number: str) -> ItsApplicantData:
        """
        Look up demographics and photo for an ITS number.

        Raises:
            ItsGatewayError: malformed number or other upstream rejection
            ItsNotFoundError: unknown number
            ItsTimeoutError / ItsUnavailableError: transient upstream failure
        """
        its_number = validate_its_number(its_number)
        url = f"{self.config.ITS_API_BASE_URL.rstrip('/')}/{its_number}"

        try:
            response = self._get(url)
        except httpx.TimeoutException as exc:
            raise ItsTimeoutError("Request to external API timed out") from exc
        except httpx.RequestError as exc:
            raise ItsUnavailableError("Unable to connect to external API") from exc

        if response.status_code == 404:
            raise ItsNotFoundError("ITS number not found in external system")
        if response.status_code >= 500:
            raise ItsUnavailableError("External API is currently unavailable")
        if response.status_code >= 400:
            raise ItsGatewayError("Invalid request to external API")

        try:
            body = response.json()
        except ValueError as exc:
            raise ItsUnavailableError("External API returned an invalid response") from exc

        payload = body.get("data") if isinstance(body, dict) else None
        if not payload:
            raise ItsNotFoundError("No data found for this ITS number")

        data = map_applicant_payload(its_number, payload)
        data["photo"] = self.fetch_photo(its_number)
        return data

    def fetch_photo(self, its_number: str) -> str | None:
        """Photo as a data URI, or None on any failure."""
        url = f"{self.config.ITS_PHOTO_API_BASE_URL.rstrip('/')}/{its_number}"
        try:
            response = self.client.get(url)
            response.raise_for_status()
            image = (response.json().get("data") or {}).get("image_data")
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("ITS photo lookup failed: %s", type(exc).__name__)
            return None

        if not image:
            return None
        if not image.startswith("data:"):
            image = f"{JPEG_DATA_PREFIX}{image}"
        return image

    def close(self) -> None:
        self.client.close()


_default_gateway: ItsGateway | None = None
_default_lock = threading.Lock()


def get_default_gateway() -> ItsGateway:
    """Process-wide gateway sharing one limiter and connection pool."""
    global _default_gateway
    with _default_lock:
        if _default_gateway is None:
            _default_gateway = ItsGateway()
        return _default_gateway


# =============================================================================
# Organization code resolution
# =============================================================================

def resolve_org_codes(
    db: Session,
    jamiat_code: str | None,
    jamaat_code: str | None,
) -> tuple[int | None, int | None]:
    """Map external jamiat/jamaat codes to internal ids (jamaat within jamiat)."""
    jamiat_pk = None
    if jamiat_code:
        jamiat = db.query(Jamiat).filter(Jamiat.jamiat_id == str(jamiat_code)).first()
        jamiat_pk = jamiat.id if jamiat else None

    jamaat_pk = None
    if jamaat_code:
        query = db.query(Jamaat).filter(Jamaat.jamaat_id == str(jamaat_code))
        if jamiat_pk is not None:
            query = query.filter(Jamaat.jamiat_id == jamiat_pk)
        jamaat = query.first()
        jamaat_pk = jamaat.id if jamaat else None

    return jamiat_pk, jamaat_pk
