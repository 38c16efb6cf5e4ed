"""Remote 包测试 fixtures -- httpx.MockTransport 模拟 Firebase REST"""

import json
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport:
    """记录所有请求，并交给当前 handler 生成响应"""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Handler = lambda request: httpx.Response(500)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def http_client(transport: RecordingTransport) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(transport)) as client:
        yield client

