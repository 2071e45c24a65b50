from ev_scorer.adapters.base import parse_title, EMPTY_TITLE
from ev_scorer.adapters.cargurus import CarGurusAdapter


def test_parse_title_catalog_assisted():
    parts = parse_title('2023 Chevrolet Bolt EUV LT')
    assert parts.year == 2023
    assert parts.make == 'Chevrolet'
    assert parts.model == 'Bolt EUV'
    assert parts.trim == 'LT'


def test_parse_title_invalid():
    assert parse_title('not a valid title') == EMPTY_TITLE
    assert parse_title('') == EMPTY_TITLE
    assert parse_title(None) == EMPTY_TITLE


def test_parse_title_unknown_make_falls_back_to_two_words():
    parts = parse_title('2019 Honda Civic Sedan LX Manual')
    assert parts.year == 2019
    assert parts.make == 'Honda'
    assert parts.model == 'Civic Sedan'
    assert parts.trim == 'LX Manual'


def test_parse_title_known_make_unknown_model_uses_fallback():
    parts = parse_title('2021 Kia Telluride SX Limited')
    assert parts.make == 'Kia'
    assert parts.model == 'Telluride SX'
    assert parts.trim == 'Limited'


def test_parse_title_hyphenated_make():
    parts = parse_title('2024 Mercedes-Benz EQE 350+ SUV')
    assert parts.make == 'Mercedes-Benz'
    assert parts.model == 'EQE'
    assert parts.trim == '350+ SUV'


def test_parse_title_collapses_whitespace():
    parts = parse_title('  2022\n Tesla   Model Y  Long Range ')
    assert (parts.year, parts.make, parts.model, parts.trim) == (2022, 'Tesla', 'Model Y', 'Long Range')


def test_cargurus_title_drops_condition_word():
    parts = CarGurusAdapter().parse_title('Used 2022 Kia EV6 Wind')
    assert parts.year == 2022
    assert parts.make == 'Kia'
    assert parts.model == 'EV6'
    assert parts.trim == 'Wind'
