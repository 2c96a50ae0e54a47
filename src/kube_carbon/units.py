"""Unit conversions across the power, energy and mass domains."""

from __future__ import annotations

from typing import Final

MILLICORES_PER_CORE: Final[float] = 1000.0
BYTES_PER_GIB: Final[float] = float(1024**3)
WATT_HOURS_PER_KWH: Final[float] = 1000.0
GRAMS_PER_POUND: Final[float] = 453.592
ACCOUNTING_WINDOW_HOURS: Final[float] = 1.0


def millicores_to_cores(millicores: float) -> float:
    """Convert a CPU quantity in millicores to cores."""

    return millicores / MILLICORES_PER_CORE


def cores_to_millicores(cores: float) -> float:
    """Convert a CPU quantity in cores to millicores."""

    return cores * MILLICORES_PER_CORE


def bytes_to_gib(value: float) -> float:
    """Convert bytes to gibibytes (2^30 bytes)."""

    return value / BYTES_PER_GIB


def watts_to_watt_hours(watts: float, hours: float = ACCOUNTING_WINDOW_HOURS) -> float:
    """Return the energy drawn by a constant load over ``hours``."""

    return watts * hours


def watt_hours_to_kwh(watt_hours: float) -> float:
    """Convert watt-hours to kilowatt-hours."""

    return watt_hours / WATT_HOURS_PER_KWH


def window_energy_kwh(watts: float) -> float:
    """Return kWh drawn by a constant load over the one-hour accounting window.

    Every estimate in the engine is implicitly "per hour"; there is no
    integration over elapsed time.
    """

    return watt_hours_to_kwh(watts_to_watt_hours(watts))


def lb_per_mwh_to_g_per_kwh(value: float) -> float:
    """Convert a marginal emission rate in lb/MWh to gCO2/kWh."""

    # 1 lb/MWh == 453.592 g / 1000 kWh
    return value * GRAMS_PER_POUND / 1000.0


def co2_grams(energy_kwh: float, intensity_g_per_kwh: float) -> float:
    """Return the emitted CO2 mass for ``energy_kwh`` at the given intensity."""

    return energy_kwh * intensity_g_per_kwh
