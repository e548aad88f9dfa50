import asyncio
import hashlib
import json
import zipfile
from collections import Counter, defaultdict
from pathlib import Path
from typing import Any, Dict, List

from aiohttp import web
from aiohttp.test_utils import TestServer


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def write_jar(path: Path, entries: Dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return path


class StubServer:
    """
    Local HTTP server with scripted responses.

    Each path holds a list of responses; they are served in order and the
    last one repeats. A response is bytes, str, a JSON-able dict/list, an int
    status, or an async handler taking the request.
    """

    def __init__(self):
        self.routes: Dict[str, List[Any]] = defaultdict(list)
        self.hits: Counter = Counter()
        self.release = asyncio.Event()
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._dispatch)
        self.server = TestServer(self.app)

    async def start(self):
        await self.server.start_server()

    async def close(self):
        self.release.set()
        await self.server.close()

    def url(self, path: str = "/") -> str:
        return str(self.server.make_url(path))

    def add(self, path: str, *responses: Any) -> str:
        self.routes[path].extend(responses)
        return self.url(path)

    async def _dispatch(self, request: web.Request) -> web.StreamResponse:
        path = request.path
        self.hits[path] += 1
        queue = self.routes.get(path)
        if not queue:
            return web.Response(status=404)
        canned = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(canned, int):
            return web.Response(status=canned)
        if isinstance(canned, bytes):
            return web.Response(body=canned)
        if isinstance(canned, str):
            return web.Response(text=canned)
        if isinstance(canned, (dict, list)):
            return web.Response(text=json.dumps(canned), content_type="application/json")
        return await canned(request)
