"""
PlaceShare Backend: Google Geocoding Implementation
=====================================================

What:  Geocoder backed by the Google Maps Geocoding API.
How:   One GET per address with httpx.AsyncClient. Transport failures
       (connection errors, timeouts) are retried with tenacity using
       exponential backoff and jitter. HTTP error statuses and API-level
       statuses are not retried.
Who:   Singleton `geocoder`, used by PlaceService.create.

Response handling (Geocoding API `status` field):
    OK with results   → Coordinates from results[0].geometry.location
    ZERO_RESULTS      → GeocodeError "Could not find location ..."
    anything else     → GeocodeError carrying the upstream status
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
)

from placeshare.config import settings
from placeshare.exceptions import GeocodeError
from placeshare.services.geocoder_base import Coordinates, Geocoder

logger = logging.getLogger(__name__)


class GoogleGeocoder(Geocoder):
    """
    Google Maps Geocoding API client.

    Args:
        api_key:   Overrides settings.google_api_key (used in tests).
        base_url:  Overrides settings.geocoding_url.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.google_api_key if api_key is None else api_key
        self.base_url = base_url or settings.geocoding_url
        self._transport = transport
        logger.info(
            "GoogleGeocoder initialized (configured=%s, url=%s)",
            bool(self.api_key),
            self.base_url,
        )

    async def resolve(self, address: str) -> Coordinates:
        """
        Resolve an address with the Geocoding API.

        Raises:
            GeocodeError: missing API key, unknown address, non-OK API status,
                HTTP error status, or transport failure after all retries.
        """
        request_id = str(uuid.uuid4())[:8]

        if not self.api_key:
            logger.error("[%s] Geocoding requested but GOOGLE_API_KEY is not set", request_id)
            raise GeocodeError(
                message="Geocoding is not configured on this server.",
                address=address,
                context={"status": "NOT_CONFIGURED"},
            )

        try:
            payload = await self._fetch_with_retry(address, request_id)
        except httpx.HTTPStatusError as e:
            logger.error(
                "[%s] Geocoding API returned HTTP %d",
                request_id,
                e.response.status_code,
            )
            raise GeocodeError(
                message="The geocoding service rejected the request, please try again later.",
                address=address,
                context={"http_status": e.response.status_code},
            )
        except httpx.HTTPError as e:
            logger.error(
                "[%s] Geocoding transport failed after %d attempts: %s",
                request_id,
                settings.retry_max_attempts,
                str(e),
            )
            raise GeocodeError(
                message="The geocoding service is unavailable, please try again later.",
                address=address,
                context={"error_type": type(e).__name__},
            )
        except ValueError:
            logger.error("[%s] Geocoding API returned a non-JSON body", request_id)
            raise GeocodeError(
                message="Could not resolve the specified address.",
                address=address,
                context={"status": "INVALID_RESPONSE"},
            )

        return self._parse_payload(payload, address, request_id)

    def _parse_payload(
        self, payload: Dict[str, Any], address: str, request_id: str
    ) -> Coordinates:
        status = payload.get("status")
        results = payload.get("results") or []

        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            logger.info("[%s] No geocoding match for address", request_id)
            raise GeocodeError(address=address, context={"status": status})

        if status != "OK":
            logger.warning(
                "[%s] Geocoding API status %s: %s",
                request_id,
                status,
                payload.get("error_message", ""),
            )
            raise GeocodeError(
                message="Could not resolve the specified address.",
                address=address,
                context={"status": status},
            )

        try:
            location = results[0]["geometry"]["location"]
            coords = Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))
        except (KeyError, IndexError, TypeError, ValueError):
            logger.error("[%s] Malformed geocoding result", request_id, exc_info=True)
            raise GeocodeError(
                message="Could not resolve the specified address.",
                address=address,
                context={"status": "MALFORMED_RESULT"},
            )

        logger.info("[%s] Address resolved to (%.6f, %.6f)", request_id, coords.lat, coords.lng)
        return coords

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=settings.retry_min_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _fetch_with_retry(self, address: str, request_id: str) -> Dict[str, Any]:
        """Single Geocoding API round trip; tenacity re-invokes it on transport errors."""
        start_time = time.perf_counter()
        async with httpx.AsyncClient(
            timeout=settings.geocoding_timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(
                self.base_url,
                params={"address": address, "key": self.api_key},
            )
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "[%s] Geocoding API responded %d in %.0fms",
            request_id,
            response.status_code,
            duration_ms,
        )
        response.raise_for_status()
        return response.json()

    async def health_check(self) -> bool:
        """Configured means an API key is present; no request is sent."""
        return bool(self.api_key)


geocoder = GoogleGeocoder()
