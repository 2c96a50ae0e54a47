"""Provider orchestration helpers for carbon intensity lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from kube_carbon.intensity_provider import (
    ElectricityMapsProvider,
    FallbackIntensityProvider,
    IntensityProvider,
    StaticIntensityProvider,
    WattTimeProvider,
)
from kube_carbon.settings import KubeCarbonSettings

LOGGER = logging.getLogger(__name__)

__all__ = ["build_provider_chain"]


def build_provider_chain(
    *,
    provider_keys: Iterable[str],
    ttl_seconds: int,
    default_mapping: Mapping[str, float],
    settings: KubeCarbonSettings | None = None,
) -> IntensityProvider | None:
    """Construct an intensity provider chain.

    Args:
        provider_keys: Ordered collection of provider identifiers
            (``"static"``, ``"electricitymaps"``, ``"watttime"``).
        ttl_seconds: Cache time-to-live for the provider chain.
        default_mapping: Region mapping used by the static provider.
        settings: Optional settings forwarded to credentialed providers.

    Returns:
        A configured :class:`IntensityProvider` instance or ``None`` when no
        providers could be initialised.
    """

    providers: list[IntensityProvider] = []
    for raw_key in provider_keys:
        name = raw_key.strip().lower()
        try:
            provider = _build_single_provider(
                name=name,
                ttl_seconds=ttl_seconds,
                defaults=default_mapping,
                settings=settings,
            )
        except (ValueError, TypeError) as exc:
            LOGGER.warning(
                "Failed to initialise provider '%s' (ttl=%s): %s",
                name,
                ttl_seconds,
                exc,
            )
            continue
        if provider is not None:
            providers.append(provider)

    if not providers:
        return None
    if len(providers) == 1:
        return providers[0]
    return FallbackIntensityProvider(providers, ttl_seconds=ttl_seconds)


def _build_single_provider(
    *,
    name: str,
    ttl_seconds: int,
    defaults: Mapping[str, float],
    settings: KubeCarbonSettings | None,
) -> IntensityProvider | None:
    """Build a single provider based on its identifier."""

    if name == "static":
        # Unknown regions miss so the resolver can record the fallback.
        return StaticIntensityProvider(
            mapping=dict(defaults),
            default=None,
            ttl_seconds=max(ttl_seconds, 600),
        )
    if name == "electricitymaps":
        return ElectricityMapsProvider(ttl_seconds=ttl_seconds, settings=settings)
    if name == "watttime":
        return WattTimeProvider(ttl_seconds=ttl_seconds, settings=settings)
    LOGGER.warning("Unknown provider key '%s'; skipping", name)
    return None
