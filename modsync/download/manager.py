"""
下载器

把 URL 流式写入 ``目标路径.part``，完成后原子地替换目标文件。
任何失败都会删除临时文件，目标路径上不会出现写了一半的文件。
"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

import aiofiles
import aiohttp
from loguru import logger as default_logger

from modsync.download.progress import ProgressSink, report
from modsync.download.verifier import FileVerifier
from modsync.exceptions import APIError, require

if TYPE_CHECKING:
    from modsync.services.http_client import ResilientHttpClient

CHUNK_SIZE = 8192
PART_SUFFIX = ".part"


@dataclass
class DownloadStats:
    """下载统计"""

    completed: int = 0
    failed: int = 0
    bytes_downloaded: int = 0


class Downloader:
    """单文件下载器"""

    def __init__(
        self,
        http: "ResilientHttpClient",
        verifier: Optional[FileVerifier] = None,
        logger=None,
    ):
        self.http = http
        self.logger = logger or default_logger
        self.verifier = verifier or FileVerifier(self.logger)
        self.stats = DownloadStats()

    @staticmethod
    def part_path(dest: Union[str, Path]) -> Path:
        return Path(f"{dest}{PART_SUFFIX}")

    async def download(
        self,
        url: str,
        dest: Union[str, Path],
        progress: Optional[ProgressSink] = None,
    ) -> bool:
        """
        下载单个文件

        Args:
            url: 下载地址（支持 file:// 本地文件）
            dest: 目标路径
            progress: 0-100 的整数进度接收者

        Returns:
            True 如果下载成功，False 如果失败
        """
        require(url, "url")
        require(str(dest or ""), "dest")

        dest = Path(dest)
        part = self.part_path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"[开始] 下载 {url} -> {dest}")

        try:
            if url.startswith("file://"):
                await self._copy_local_file(url[7:], part)
            else:
                await self._stream_to(url, part, dest.name, progress)

            # 替换目标文件，之前的文件在此之前保持不变
            os.replace(part, dest)
        except asyncio.CancelledError:
            self._discard(part)
            self.logger.warning(f"[取消] 下载 '{dest.name}' 已取消")
            raise
        except (APIError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._discard(part)
            self.stats.failed += 1
            self.logger.error(f"[错误] 下载 '{dest.name}' 失败: {e}")
            return False

        report(progress, 100)
        self.stats.completed += 1
        self.logger.success(f"[完成] '{dest.name}' 下载完成")
        return True

    async def _stream_to(
        self,
        url: str,
        part: Path,
        name: str,
        progress: Optional[ProgressSink],
    ) -> None:
        async with self.http.stream(url) as response:
            total_size = int(response.headers.get("Content-Length", 0) or 0)
            if total_size:
                self.logger.debug(
                    f"[信息] {name} 文件大小: {total_size / (1024 * 1024):.2f} MB"
                )

            async with aiofiles.open(part, "wb") as f:
                downloaded = 0
                last_percent = -1

                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await f.write(chunk)
                    downloaded += len(chunk)
                    self.stats.bytes_downloaded += len(chunk)

                    # 长度已知且百分比变化时才上报
                    if total_size > 0:
                        percent = min(100, downloaded * 100 // total_size)
                        if percent != last_percent and percent < 100:
                            report(progress, percent)
                            last_percent = percent

    async def _copy_local_file(self, src_path: str, part: Path) -> None:
        """复制本地文件"""
        self.logger.info(f"[复制] 本地文件: {os.path.basename(src_path)}")
        await asyncio.to_thread(shutil.copyfile, src_path, part)

    def _discard(self, part: Path) -> None:
        """清理不完整的文件"""
        try:
            part.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"[清理] 无法删除临时文件 {part}: {e}")

    async def verify_checksum(self, path: Union[str, Path], expected: str) -> bool:
        """校验文件摘要"""
        return await self.verifier.verify_checksum(str(path), expected)

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats
