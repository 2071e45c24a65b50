import asyncio
import io
import json

import httpx
from PIL import Image

from ev_scorer import pipeline
from ev_scorer.db.memory_store import MemoryListingStore
from ev_scorer.engine import ExtractionEngine
from ev_scorer.page import Page
from ev_scorer.pipeline import capture, load_page
from ev_scorer.service import MessageService

URL = 'https://www.clutch.ca/vehicles/2022-hyundai-ioniq-5-55501'
PHOTOS = [f'https://images.clutch.ca/{i}.jpg' for i in range(5)]
HTML = '<h1>2022 Hyundai Ioniq 5 Preferred</h1><script id="__NEXT_DATA__" type="application/json">%s</script>' % json.dumps({
    'props': {'pageProps': {'vehicle': {
        'year': 2022, 'make': 'Hyundai', 'model': 'Ioniq 5', 'trim': 'Preferred',
        'price': 43990, 'odometer': 25000, 'images': PHOTOS,
    }}},
})


def _png():
    buf = io.BytesIO()
    Image.new('RGB', (640, 480), (200, 30, 30)).save(buf, 'PNG')
    return buf.getvalue()


def _capture(page, service, engine=None):
    png = _png()

    async def run():
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=png))
        async with httpx.AsyncClient(transport=transport) as client:
            return await capture(page, engine or ExtractionEngine(), service, client=client)

    return asyncio.run(run())


def test_capture_saves_thumbnails_and_keeps_originals():
    service = MessageService(MemoryListingStore())
    result = _capture(Page(URL, HTML), service)

    assert result.status == 'saved'
    car = service.store.get_cars()[0]
    assert car.url == URL
    assert car.is_ev is True
    assert car.range == 488
    assert len(car.photos) == 3
    assert all(p.startswith('data:image/jpeg;base64,') for p in car.photos)
    assert car.original_photo_urls == PHOTOS
    assert result.listing.id == car.id


def test_capture_skips_saved_url():
    service = MessageService(MemoryListingStore())
    _capture(Page(URL, HTML), service)
    again = _capture(Page(URL, HTML), service)
    assert again.status == 'already_saved'
    assert len(service.store.get_cars()) == 1


def test_capture_non_listing_page():
    service = MessageService(MemoryListingStore())
    result = _capture(Page('https://www.clutch.ca/', HTML), service)
    assert result.status == 'no_listing'
    assert service.store.get_cars() == []


def test_capture_respects_stored_ev_mode():
    service = MessageService(MemoryListingStore())
    service.handle({'type': 'SAVE_SETTINGS', 'settings': {'mode': 'ev'}})
    engine = ExtractionEngine(mode_source=service.mode_source)
    gas = Page('https://www.clutch.ca/vehicles/2019-honda-civic-123', '<h1>2019 Honda Civic LX</h1>')
    assert _capture(gas, service, engine).status == 'no_listing'


def test_load_page_renders_in_worker_thread(monkeypatch):
    calls = []

    def fake_render(url, wait, headless, timeout):
        calls.append((url, wait))
        return '<h1>rendered</h1>'

    monkeypatch.setattr(pipeline, 'render_url', fake_render)
    page = asyncio.run(load_page(URL, settle=0.25))
    assert page.url == URL
    assert page.first_text(['h1']) == 'rendered'
    assert calls == [(URL, 0.25)]
