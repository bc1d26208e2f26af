"""
Reference catalogue of pistachio varieties.

Loaded once at import time and never mutated; lookups return the shared
frozen instances.
"""
from typing import Optional

from agroclima.domain.models import VarietyProfile, VarietyType


PISTACHIO_VARIETIES: tuple[VarietyProfile, ...] = (
    VarietyProfile(
        id="kerman",
        name="Kerman",
        origin="Iran",
        type=VarietyType.FEMALE,
        chill_hours_min=800,
        chill_hours_max=1200,
        min_winter_temp=-12,
        max_summer_temp=45,
        annual_water_need=800,
        critical_water_periods=["Flowering (April)", "Nut development (June-August)"],
        production_start=5,
        peak_production=10,
        lifespan=80,
        pollinizers=["peters", "randy"],
        description="Main commercial variety, large high-quality nut",
    ),
    VarietyProfile(
        id="peters",
        name="Peters",
        origin="United States",
        type=VarietyType.MALE,
        chill_hours_min=700,
        chill_hours_max=1100,
        min_winter_temp=-10,
        max_summer_temp=43,
        annual_water_need=700,
        critical_water_periods=["Flowering (March-April)"],
        production_start=3,
        peak_production=6,
        lifespan=80,
        description="Main pollinizer for Kerman, synchronised bloom",
    ),
    VarietyProfile(
        id="sirora",
        name="Sirora",
        origin="Australia",
        type=VarietyType.FEMALE,
        chill_hours_min=600,
        chill_hours_max=1000,
        min_winter_temp=-8,
        max_summer_temp=48,
        annual_water_need=750,
        critical_water_periods=["Flowering (April)", "Kernel fill (July-August)"],
        production_start=4,
        peak_production=8,
        lifespan=75,
        pollinizers=["peters", "randy"],
        description="Australian variety adapted to warm climates",
    ),
    VarietyProfile(
        id="larnaka",
        name="Larnaka",
        origin="Cyprus",
        type=VarietyType.FEMALE,
        chill_hours_min=500,
        chill_hours_max=900,
        min_winter_temp=-5,
        max_summer_temp=50,
        annual_water_need=650,
        critical_water_periods=["Flowering (April-May)", "Early development (June)"],
        production_start=4,
        peak_production=9,
        lifespan=70,
        pollinizers=["peters", "c-special"],
        description="Mediterranean variety for very hot and dry climates",
    ),
    VarietyProfile(
        id="aegina",
        name="Aegina",
        origin="Greece",
        type=VarietyType.FEMALE,
        chill_hours_min=700,
        chill_hours_max=1100,
        min_winter_temp=-10,
        max_summer_temp=42,
        annual_water_need=750,
        critical_water_periods=["Flowering (April)", "Nut development (June-July)"],
        production_start=5,
        peak_production=12,
        lifespan=85,
        pollinizers=["peters", "male-aegina"],
        description="Traditional Greek variety, small but flavourful nut",
    ),
    VarietyProfile(
        id="randy",
        name="Randy",
        origin="United States",
        type=VarietyType.MALE,
        chill_hours_min=750,
        chill_hours_max=1150,
        min_winter_temp=-12,
        max_summer_temp=44,
        annual_water_need=700,
        critical_water_periods=["Flowering (March-April)"],
        production_start=3,
        peak_production=6,
        lifespan=80,
        description="Alternative pollinizer with extended bloom",
    ),
)


def get_variety_by_id(variety_id: str) -> Optional[VarietyProfile]:
    """Look up a variety by id."""
    for variety in PISTACHIO_VARIETIES:
        if variety.id == variety_id:
            return variety
    return None


def get_female_varieties() -> list[VarietyProfile]:
    """Fruit-bearing varieties, the candidates for recommendation."""
    return [v for v in PISTACHIO_VARIETIES if v.type == VarietyType.FEMALE]


def get_pollinizers_for_variety(variety: VarietyProfile) -> list[VarietyProfile]:
    """
    Resolve a variety's pollinizer ids against the catalogue.

    Ids absent from the catalogue are skipped.
    """
    resolved = (get_variety_by_id(pid) for pid in variety.pollinizers)
    return [p for p in resolved if p is not None]
