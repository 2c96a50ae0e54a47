"""Shared HTTP fetch helper for API-backed intensity providers."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

LOGGER = logging.getLogger(__name__)


def fetch_json(
    url: str,
    *,
    provider: str,
    region: str,
    timeout: float,
    headers: Mapping[str, str] | None = None,
    auth: tuple[str, str] | None = None,
) -> dict[str, object] | None:
    """GET ``url`` and return the decoded JSON object.

    Every failure mode (HTTP status, transport, decoding, non-object body) is
    logged with structured context and reported as ``None``.
    """

    context: dict[str, object] = {"provider": provider, "region": region, "url": url}
    try:
        with httpx.Client(timeout=timeout, auth=auth) as client:
            response = client.get(url, headers=dict(headers or {}))
            response.raise_for_status()
            payload: object = response.json()
    except httpx.HTTPStatusError as exc:
        LOGGER.warning(
            "%s HTTP error",
            provider,
            extra={**context, "status_code": exc.response.status_code},
            exc_info=exc,
        )
        return None
    except httpx.HTTPError as exc:
        LOGGER.warning("%s transport error", provider, extra=context, exc_info=exc)
        return None
    except (ValueError, TypeError) as exc:
        LOGGER.warning(
            "%s response parsing error", provider, extra=context, exc_info=exc
        )
        return None

    if not isinstance(payload, dict):
        LOGGER.warning("%s returned a non-object payload", provider, extra=context)
        return None
    return payload


def positive_float(
    value: object, *, provider: str, region: str, url: str
) -> float | None:
    """Return ``value`` as a positive float, logging and returning ``None`` otherwise."""

    context: dict[str, object] = {
        "provider": provider,
        "region": region,
        "url": url,
        "value": value,
    }
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        LOGGER.warning(
            "%s returned non-numeric intensity", provider, extra=context, exc_info=exc
        )
        return None
    if number <= 0:
        LOGGER.warning("%s reported non-positive intensity", provider, extra=context)
        return None
    return number
