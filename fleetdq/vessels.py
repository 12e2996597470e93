from dataclasses import dataclass


@dataclass(frozen=True)
class Vessel:
    id: str
    name: str


# Canonical fleet order. Issue patterns are assigned by position in this list.
FLEET: tuple[Vessel, ...] = (
    Vessel("vessel_1", "Atlantic Pioneer"),
    Vessel("vessel_2", "Pacific Explorer"),
    Vessel("vessel_3", "Nordic Voyager"),
    Vessel("vessel_4", "Baltic Star"),
    Vessel("vessel_5", "Mediterranean Crown"),
    Vessel("vessel_6", "Arctic Wind"),
    Vessel("vessel_7", "Indian Ocean"),
    Vessel("vessel_8", "Caribbean Spirit"),
    Vessel("vessel_9", "Red Sea Navigator"),
    Vessel("vessel_10", "Bering Strait"),
)

_BY_ID = {vessel.id: vessel for vessel in FLEET}


def get_vessel(vessel_id: str) -> Vessel | None:
    return _BY_ID.get(vessel_id)


def fleet_index(vessel_id: str) -> int | None:
    """Position of a vessel in the canonical fleet, or None if unknown."""
    for idx, vessel in enumerate(FLEET):
        if vessel.id == vessel_id:
            return idx
    return None
