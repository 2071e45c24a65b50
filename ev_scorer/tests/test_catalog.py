from ev_scorer.catalog import (
    find_vehicle_match, get_vehicle_specs, is_likely_ev, catalog_makes, catalog_models, specs_as_dict,
)


def test_is_likely_ev_model_name():
    assert is_likely_ev('2023 Nissan Leaf SV Plus') is True


def test_is_likely_ev_gas_car():
    assert is_likely_ev('2023 Honda Civic LX') is False


def test_is_likely_ev_is_case_insensitive_and_handles_empty():
    assert is_likely_ev('ELECTRIC') is True
    assert is_likely_ev('') is False
    assert is_likely_ev(None) is False


def test_is_likely_ev_has_no_negative_keywords():
    # known limitation: unrelated text that contains a keyword still matches
    assert is_likely_ev('2020 Toyota Corolla with electric seats') is True


def test_get_vehicle_specs_direct_lookup():
    specs = get_vehicle_specs('Chevrolet', 'Bolt EV')
    assert specs.range == 417
    assert specs.length == 163
    assert specs.heat_pump is False
    assert get_vehicle_specs('Chevrolet', 'Camaro') is None
    assert get_vehicle_specs('Honda', 'Civic') is None


def test_find_vehicle_match_full():
    match = find_vehicle_match('Hyundai', 'Ioniq 5 Preferred AWD')
    assert match.make == 'Hyundai'
    assert match.model == 'Ioniq 5'
    assert match.specs.range == 488


def test_find_vehicle_match_noisy_make():
    match = find_vehicle_match('tesla', 'Model 3 Long Range')
    assert match.make == 'Tesla'
    assert match.model == 'Model 3'


def test_find_vehicle_match_partial_vs_none():
    partial = find_vehicle_match('Kia', 'Telluride SX')
    assert partial is not None
    assert partial.make == 'Kia'
    assert partial.model is None and partial.specs is None

    assert find_vehicle_match('Honda', 'Civic LX') is None
    assert find_vehicle_match('', 'Bolt EV') is None


def test_catalog_listing_helpers():
    assert 'Tesla' in catalog_makes()
    assert catalog_models('Rivian') == ['R1T', 'R1S']
    assert catalog_models('Honda') == []
    assert specs_as_dict(get_vehicle_specs('Kia', 'EV6'))['trims'][-1] == 'GT'
    assert specs_as_dict(None) is None
