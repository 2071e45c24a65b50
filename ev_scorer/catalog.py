"""Vehicle reference catalog and EV text classification.

The catalog maps make -> model -> specs for the electric vehicles the
scorer knows about. It is read-only module state: nothing writes to it
after import.

Marketplace titles are free text ("2023 Chevrolet Bolt EUV LT"), so
`find_vehicle_match` anchors the make and model on catalog names and lets
callers treat whatever follows the model as the trim.
"""
from typing import Dict, Any, List, NamedTuple, Optional


class VehicleSpecs(NamedTuple):
    range: int
    length: int
    heat_pump: bool
    trims: tuple


class VehicleMatch(NamedTuple):
    make: str
    model: Optional[str]
    specs: Optional[VehicleSpecs]


def _specs(range_km: int, length: int, heat_pump: bool, trims: List[str]) -> VehicleSpecs:
    return VehicleSpecs(range_km, length, heat_pump, tuple(trims))


# Insertion order matters: the first substring match wins.
VEHICLE_DATABASE: Dict[str, Dict[str, VehicleSpecs]] = {
    'Chevrolet': {
        'Bolt EV': _specs(417, 163, False, ['1LT', '2LT', 'Premier']),
        'Bolt EUV': _specs(397, 169, False, ['LT', 'Premier']),
        'Equinox EV': _specs(513, 184, True, ['1LT', '2LT', '2RS', '3RS']),
    },
    'Hyundai': {
        'Kona Electric': _specs(415, 164, True, ['Essential', 'Preferred', 'Ultimate']),
        'Ioniq 5': _specs(488, 182, True, ['Essential', 'Preferred', 'Ultimate']),
        'Ioniq 6': _specs(581, 191, True, ['Essential', 'Preferred', 'Ultimate']),
    },
    'Kia': {
        'Niro EV': _specs(407, 171, True, ['EX', 'EX+', 'SX Touring', 'Wind', 'Wave']),
        'Soul EV': _specs(391, 165, True, ['Premium', 'Limited']),
        'EV6': _specs(499, 184, True, ['Standard', 'Long Range', 'GT-Line', 'GT']),
    },
    'Nissan': {
        'Leaf': _specs(342, 176, True, ['S', 'SV', 'SV Plus', 'SL Plus']),
        'Ariya': _specs(482, 182, True, ['Engage', 'Venture+', 'Evolve+', 'Platinum+']),
    },
    'Tesla': {
        'Model 3': _specs(438, 185, True, ['Standard Range', 'Long Range', 'Performance']),
        'Model Y': _specs(455, 187, True, ['Standard Range', 'Long Range', 'Performance']),
        'Model S': _specs(560, 196, True, ['Long Range', 'Plaid']),
        'Model X': _specs(543, 199, True, ['Long Range', 'Plaid']),
    },
    'Ford': {
        'Mustang Mach-E': _specs(490, 186, True, ['Select', 'Premium', 'California Route 1', 'GT']),
        'F-150 Lightning': _specs(483, 233, True, ['Pro', 'XLT', 'Lariat', 'Platinum']),
    },
    'Volkswagen': {
        'ID.4': _specs(443, 181, True, ['Standard', 'Pro', 'Pro S', 'Pro S Plus']),
        'ID.Buzz': _specs(411, 185, True, ['Pro S', 'Pro S Plus']),
    },
    'BMW': {
        'iX': _specs(520, 195, True, ['xDrive40', 'xDrive50', 'M60']),
        'i4': _specs(484, 188, True, ['eDrive35', 'eDrive40', 'M50']),
        'i5': _specs(475, 195, True, ['eDrive40', 'M60']),
    },
    'Mercedes-Benz': {
        'EQE': _specs(495, 195, True, ['350+', '500 4MATIC']),
        'EQS': _specs(547, 207, True, ['450+', '580 4MATIC']),
    },
    'Polestar': {
        'Polestar 2': _specs(435, 181, True, ['Single Motor', 'Long Range', 'Dual Motor']),
    },
    'Rivian': {
        'R1T': _specs(505, 217, True, ['Adventure', 'Launch Edition']),
        'R1S': _specs(505, 200, True, ['Adventure', 'Launch Edition']),
    },
}

# Plain substring keywords. There is no negative list, so unrelated text
# such as "electric seats" or the "ev" inside "Chevrolet" also matches.
EV_KEYWORDS = (
    'electric', 'ev', 'bev', 'battery', 'zero emission',
    'bolt', 'leaf', 'model 3', 'model y', 'model s', 'model x',
    'ioniq', 'kona electric', 'niro ev', 'ev6', 'id.4', 'id.buzz',
    'mach-e', 'mustang mach-e', 'f-150 lightning', 'lightning',
    'polestar', 'rivian', 'r1t', 'r1s', 'ariya', 'eqe', 'eqs',
    'i4', 'ix', 'i5', 'equinox ev',
)


def is_likely_ev(text: Optional[str]) -> bool:
    """Case-insensitive keyword test for electric-vehicle text."""
    lower = (text or '').lower()
    return any(keyword in lower for keyword in EV_KEYWORDS)


def get_vehicle_specs(make: str, model: str) -> Optional[VehicleSpecs]:
    models = VEHICLE_DATABASE.get(make)
    if not models:
        return None
    return models.get(model)


def _contains_either(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def find_vehicle_match(make_text: str, remainder: str) -> Optional[VehicleMatch]:
    """Resolve a noisy make and model text against the catalog.

    Returns None when no make matches, a match with `model=None` when
    only the make resolves, and a full match otherwise. Ambiguous text
    resolves to the first catalog entry that overlaps it.
    """
    make_text = (make_text or '').strip()
    if not make_text:
        return None
    make = next((m for m in VEHICLE_DATABASE if _contains_either(make_text, m)), None)
    if make is None:
        return None

    remainder = (remainder or '').strip()
    models = VEHICLE_DATABASE[make]
    model = None
    if remainder:
        model = next((m for m in models if _contains_either(remainder, m)), None)
    if model is None:
        return VehicleMatch(make, None, None)
    return VehicleMatch(make, model, models[model])


def catalog_makes() -> List[str]:
    return list(VEHICLE_DATABASE)


def catalog_models(make: str) -> List[str]:
    return list(VEHICLE_DATABASE.get(make, {}))


def specs_as_dict(specs: Optional[VehicleSpecs]) -> Optional[Dict[str, Any]]:
    if specs is None:
        return None
    return {
        'range': specs.range,
        'length': specs.length,
        'heatPump': specs.heat_pump,
        'trims': list(specs.trims),
    }
