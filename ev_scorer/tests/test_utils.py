from ev_scorer.page import make_soup
from ev_scorer.adapters.utils import (
    extract_jsonld_objects, find_jsonld_node, extract_next_data, extract_script_assignment,
    clean_photos, collect_photos, jsonld_text, jsonld_value, first_offer,
)
from ev_scorer.utils.schema_normalizer import (
    SchemaNormalizer, parse_int, parse_leading_int, parse_year, parse_vin, clean_text,
)


def test_parse_int_strips_everything_but_digits():
    assert parse_int('$32,995') == 32995
    assert parse_int('15,000 km') == 15000
    assert parse_int('call for price') == 0
    assert parse_int(None, default=-1) == -1


def test_parse_leading_int_stops_at_decimal_point():
    assert parse_leading_int('32995.00') == 32995
    assert parse_leading_int(41000.9) == 41000
    assert parse_leading_int('abc') == 0


def test_parse_year_range():
    assert parse_year('Model year: 2021') == 2021
    assert parse_year(1875) is None
    assert parse_year('') is None


def test_parse_vin():
    assert parse_vin('VIN: 1g1fy6s00p4123456') == '1G1FY6S00P4123456'
    assert parse_vin('no vin here') == ''


def test_clean_text_collapses_whitespace():
    assert clean_text('  London \n\t ON ') == 'London ON'
    assert clean_text(None) == ''


def test_normalizer_reports_unparsed_fields():
    out, issues = SchemaNormalizer.normalize({'price': 'n/a', 'remoteStart': 'app, fob', 'heatPump': 'no'})
    assert out['price'] is None
    assert out['remoteStart'] == 'Fob, App'
    assert out['heatPump'] is False
    assert issues == ['price:unparsed']


def test_extract_jsonld_objects_flattens_graph_and_lists():
    html = '''
    <script type="application/ld+json">{"@graph": [{"@type": "WebPage"}, {"@type": "Car", "name": "A"}]}</script>
    <script type="application/ld+json">[{"@type": "Organization"}]</script>
    <script type="application/ld+json">{not json</script>
    '''
    soup = make_soup(html)
    objs = extract_jsonld_objects(soup)
    assert [o['@type'] for o in objs] == ['WebPage', 'Car', 'Organization']
    assert find_jsonld_node(soup, ['car', 'vehicle'])['name'] == 'A'


def test_find_jsonld_node_matches_type_iri_and_lists():
    html = '<script type="application/ld+json">{"@type": ["Product", "http://schema.org/Vehicle"], "name": "B"}</script>'
    soup = make_soup(html)
    assert find_jsonld_node(soup, ['vehicle'])['name'] == 'B'
    assert find_jsonld_node(soup, ['car']) is None


def test_jsonld_value_helpers():
    assert jsonld_text({'name': ' Chevrolet '}) == 'Chevrolet'
    assert jsonld_text(['Kia', 'Hyundai']) == 'Kia'
    assert jsonld_value({'value': '15000', 'unitCode': 'KMT'}) == '15000'
    assert jsonld_value('15000') == '15000'
    assert first_offer({'offers': [{'price': 1}, {'price': 2}]}) == {'price': 1}
    assert first_offer({'offers': 'bogus'}) == {}


def test_extract_next_data():
    html = '<script id="__NEXT_DATA__" type="application/json">{"props": {"pageProps": {"vehicle": {"year": 2022}}}}</script>'
    data = extract_next_data(make_soup(html))
    assert data['props']['pageProps']['vehicle']['year'] == 2022
    assert extract_next_data(make_soup('<script id="__NEXT_DATA__">{oops</script>')) is None
    assert extract_next_data(make_soup('<p>nothing</p>')) is None


def test_extract_script_assignment():
    html = '<script>window.foo = 1; var listingData = {"make": "Kia", "price": 41000};</script>'
    assert extract_script_assignment(make_soup(html), ['listingData', 'vehicleData']) == {'make': 'Kia', 'price': 41000}
    html = '<script>var state = {}; state.vehicleData = {"model": "EV6"};</script>'
    assert extract_script_assignment(make_soup(html), ['listingData', 'vehicleData']) == {'model': 'EV6'}


def test_clean_photos_normalizes_and_dedupes():
    urls = [
        '//cdn.example.com/a.jpg',
        '/img/b.jpg',
        'data:image/png;base64,AAAA',
        'https://cdn.example.com/placeholder.png',
        {'url': 'https://cdn.example.com/a.jpg'},
        'https://cdn.example.com/a.jpg',
        None,
    ]
    photos = clean_photos(urls, 'https://www.example.ca/listing/1')
    assert photos == ['https://cdn.example.com/a.jpg', 'https://www.example.ca/img/b.jpg']


def test_clean_photos_caps_at_ten():
    urls = [f'https://cdn.example.com/{i}.jpg' for i in range(25)]
    assert len(clean_photos(urls, 'https://www.example.ca/')) == 10


def test_collect_photos_uses_first_selector_with_images():
    html = '''
    <div class="gallery"><img src="data:image/gif;base64,R0lG"></div>
    <picture><img data-src="https://cdn.example.com/1.jpg"><img srcset="https://cdn.example.com/2.jpg 800w, https://cdn.example.com/2s.jpg 400w"></picture>
    '''
    photos = collect_photos(make_soup(html), ('.gallery img', 'picture img'), 'https://www.example.ca/')
    assert photos == ['https://cdn.example.com/1.jpg', 'https://cdn.example.com/2.jpg']


def test_clean_photos_skips_malformed_urls():
    urls = ['http://[broken/b.jpg', '/img/c.jpg']
    assert clean_photos(urls, 'https://www.example.ca/listing/1') == ['https://www.example.ca/img/c.jpg']
