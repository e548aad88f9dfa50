"""
弹性 HTTP 客户端

在 aiohttp 之上提供有限次数的重试、指数退避与随机抖动。
传输异常以及 408/429/503/504 会被重试，其他非 2xx 响应立即失败；
重试耗尽后把最后一次失败原样抛给调用方。
"""

import asyncio
import json
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

import aiohttp
from loguru import logger as default_logger

from modsync.exceptions import APIError

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({408, 429, 503, 504})
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass(frozen=True)
class RetryEvent:
    """一次重试的诊断信息"""

    url: str
    attempt: int
    max_attempts: int
    delay: float
    status: Optional[int] = None
    error: Optional[BaseException] = None


class ResilientHttpClient:
    """带重试策略的 HTTP 客户端"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        jitter: float = 0.2,
        on_retry: Optional[Callable[[RetryEvent], None]] = None,
        logger=None,
    ):
        self._session = session
        self._owned_session = session is None
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.jitter = jitter
        self.on_retry = on_retry
        self.logger = logger or default_logger

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owned_session = True
        return self._session

    def compute_delay(self, attempt: int) -> float:
        """第 attempt 次失败后的等待时间"""
        delay = self.retry_delay * (2 ** (attempt - 1))
        if self.jitter > 0:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    async def _execute(
        self,
        method: str,
        url: str,
        reader: Optional[Callable[[aiohttp.ClientResponse], Awaitable[T]]] = None,
        **kwargs,
    ) -> Union[T, aiohttp.ClientResponse]:
        """
        执行请求并按策略重试

        Args:
            method: HTTP 方法
            url: 请求地址
            reader: 读取响应体的协程函数；为 None 时返回未读取的响应，由调用方释放

        Returns:
            reader 的结果，或未读取的响应
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            status: Optional[int] = None
            try:
                response = await self.session.request(method, url, **kwargs)
                status = response.status
                if 200 <= status < 300:
                    if reader is None:
                        return response
                    try:
                        return await reader(response)
                    finally:
                        response.release()

                error = APIError.from_response(response)
                response.release()
                if status not in RETRYABLE_STATUSES:
                    self.logger.error(f"[HTTP] {method} {url} 返回 {status}，不重试")
                    raise error
                last_error = error
            except TRANSPORT_ERRORS as e:
                last_error = e

            if attempt >= self.max_attempts:
                break

            delay = self.compute_delay(attempt)
            event = RetryEvent(
                url=url,
                attempt=attempt,
                max_attempts=self.max_attempts,
                delay=delay,
                status=status,
                error=None if status else last_error,
            )
            if status:
                self.logger.warning(
                    f"[重试] {method} {url} 返回 {status} "
                    f"(第 {attempt}/{self.max_attempts} 次)，{delay:.2f}s 后重试"
                )
            else:
                self.logger.warning(
                    f"[重试] {method} {url} 失败 (第 {attempt}/{self.max_attempts} 次): "
                    f"{last_error!r}，{delay:.2f}s 后重试"
                )
            if self.on_retry:
                self.on_retry(event)
            await asyncio.sleep(delay)

        self.logger.error(f"[HTTP] {method} {url} 重试耗尽: {last_error!r}")
        if last_error is None:
            raise APIError(f"{method} {url} 未发出任何请求")
        raise last_error

    async def get_text(self, url: str) -> str:
        """GET 并返回文本"""
        self.logger.debug(f"[HTTP] GET {url}")

        async def read(response: aiohttp.ClientResponse) -> str:
            return await response.text()

        content = await self._execute("GET", url, read)
        self.logger.debug(f"[HTTP] GET {url} 成功 ({len(content)} 字符)")
        return content

    async def get_bytes(self, url: str) -> bytes:
        """GET 并返回字节"""
        self.logger.debug(f"[HTTP] GET(bytes) {url}")

        async def read(response: aiohttp.ClientResponse) -> bytes:
            return await response.read()

        return await self._execute("GET", url, read)

    async def get_json(self, url: str) -> Any:
        """GET 并解析 JSON，解析失败抛出 ValueError"""
        return json.loads(await self.get_text(url))

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        以流的方式 GET

        重试只覆盖建立连接与响应头阶段；读取超时按单次读取计算，不限制总时长。
        """
        self.logger.debug(f"[HTTP] GET(stream) {url}")
        response = await self._execute(
            "GET",
            url,
            timeout=aiohttp.ClientTimeout(
                total=None, sock_connect=self.timeout, sock_read=self.timeout
            ),
        )
        try:
            yield response
        finally:
            response.release()

    async def post_json(self, url: str, body: Any) -> str:
        """POST JSON 并返回响应文本"""
        payload = body if isinstance(body, str) else json.dumps(body)
        self.logger.debug(f"[HTTP] POST {url} ({len(payload)} 字符)")

        async def read(response: aiohttp.ClientResponse) -> str:
            return await response.text()

        return await self._execute(
            "POST",
            url,
            read,
            data=payload.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
