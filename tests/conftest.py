import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from httpx import AsyncClient, ASGITransport

from polytag.config import Settings
from polytag.main import create_app, shutdown, startup
from polytag.services.file_storage import FileDriver


class FakeMeilisearch:
    """Just enough of the Meilisearch documents/search API for one index."""

    def __init__(self):
        self.documents = {}
        self.requests = []
        self.fail_with = None
        self.url = None
        self.app = web.Application()
        self.app.router.add_post("/indexes/{index}/documents", self.add_documents)
        self.app.router.add_post("/indexes/{index}/search", self.search)

    async def add_documents(self, request):
        self.requests.append(("documents", request.match_info["index"], dict(request.query),
                              request.headers.get("Authorization")))
        if self.fail_with:
            return web.json_response({"message": "boom"}, status=self.fail_with)
        for document in await request.json():
            self.documents[document[request.query["primaryKey"]]] = document
        return web.json_response({"taskUid": 1}, status=202)

    async def search(self, request):
        body = await request.json()
        self.requests.append(("search", request.match_info["index"], body,
                              request.headers.get("Authorization")))
        hits = [
            {k: v for k, v in doc.items() if k in body["attributesToRetrieve"]}
            for doc in self.documents.values()
            if body["q"].lower() in doc.get("name", "").lower()
        ]
        return web.json_response({"hits": hits[:body["limit"]]})


@pytest.fixture
async def meilisearch():
    fake = FakeMeilisearch()
    server = TestServer(fake.app)
    await server.start_server()
    fake.url = str(server.make_url(""))
    yield fake
    await server.close()


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite database and storage root."""
    return Settings(
        ENVIRONMENT="development",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'polytag.db'}",
        FILE_STORAGE_PATH=str(tmp_path / "storage"),
        SEARCH_URL="",
    )


@pytest.fixture
async def driver(tmp_path):
    # Small buffer so multi-chunk writes take several flushes
    driver = FileDriver(tmp_path / "driver", write_buffer_size=4, read_chunk_size=3)
    await driver.create_dirs()
    return driver


@pytest.fixture
async def start_app():
    """Start apps for given settings; their services are stopped after the test."""
    started = []

    async def _start(settings):
        # ASGITransport does not run the lifespan, so start the services by hand
        app = create_app(settings)
        await startup(app, settings)
        started.append(app)
        return app

    yield _start

    for app in started:
        await shutdown(app)


@pytest.fixture
async def app(start_app, settings):
    return await start_app(settings)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
