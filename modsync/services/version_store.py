"""
游戏版本存储

检测与安装指定的游戏版本：版本清单 → 版本 JSON → 客户端 jar → 校验。
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiohttp
from loguru import logger as default_logger

from modsync.download.manager import Downloader
from modsync.download.progress import ProgressSink, report, scaled
from modsync.download.verifier import FileVerifier
from modsync.exceptions import APIError, ManifestError, require
from modsync.models import (
    ErrorKind,
    InstalledVersion,
    Outcome,
    VersionDetail,
    VersionManifest,
)
from modsync.models.config import EndpointsConfig
from modsync.paths import LauncherPaths
from modsync.services.http_client import ResilientHttpClient


class RuntimeVersionStore:
    """游戏版本存储"""

    def __init__(
        self,
        http: ResilientHttpClient,
        downloader: Downloader,
        paths: LauncherPaths,
        verifier: Optional[FileVerifier] = None,
        endpoints: Optional[EndpointsConfig] = None,
        logger=None,
    ):
        self.http = http
        self.downloader = downloader
        self.paths = paths
        self.logger = logger or default_logger
        self.verifier = verifier or downloader.verifier
        self.endpoints = endpoints or EndpointsConfig()

    def version_dir(self, version_id: str) -> Path:
        """主目录下的版本目录"""
        require(version_id, "version_id")
        return self.paths.version_dir(version_id)

    def _candidates(self, version_id: str) -> List[InstalledVersion]:
        return [
            InstalledVersion(version_id, self.paths.version_dir(version_id)),
            InstalledVersion(version_id, self.paths.fallback_versions_dir / version_id),
        ]

    @staticmethod
    def _is_complete(candidate: InstalledVersion) -> bool:
        jar = candidate.jar_path
        return (
            candidate.json_path.is_file()
            and jar.is_file()
            and jar.stat().st_size > 0
        )

    def locate(self, version_id: str) -> Optional[InstalledVersion]:
        """
        查找已安装的版本

        先查主目录，再查官方游戏目录；JSON 与非空 jar 都存在才算安装。
        """
        require(version_id, "version_id")
        for candidate in self._candidates(version_id):
            if self._is_complete(candidate):
                self.logger.debug(f"[版本] {version_id} 位于 {candidate.directory}")
                return candidate
        self.logger.debug(f"[版本] {version_id} 未安装")
        return None

    def is_installed(self, version_id: str) -> bool:
        """检查版本是否已安装"""
        return self.locate(version_id) is not None

    def list_installed(self) -> List[str]:
        """列出主目录与官方目录中带版本 JSON 的版本，去重并升序排列"""
        versions = set()
        for root in (self.paths.versions_dir, self.paths.fallback_versions_dir):
            if not root.is_dir():
                continue
            for version_dir in root.iterdir():
                if (version_dir / f"{version_dir.name}.json").is_file():
                    versions.add(version_dir.name)

        result = sorted(versions)
        self.logger.debug(f"[版本] 共找到 {len(result)} 个已安装版本")
        return result

    async def fetch_manifest(self) -> Optional[VersionManifest]:
        """获取全局版本清单，失败时返回 None"""
        url = self.endpoints.version_manifest
        try:
            data = await self.http.get_json(url)
            manifest = VersionManifest.from_dict(data)
        except (APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"[版本] 获取版本清单失败: {e}")
            return None
        except (ValueError, ManifestError) as e:
            self.logger.error(f"[版本] 版本清单解析失败: {e}")
            return None

        self.logger.info(f"[版本] 版本清单包含 {len(manifest.versions)} 个版本")
        return manifest

    def load_detail(self, version_id: str) -> Optional[VersionDetail]:
        """读取已缓存的版本 JSON"""
        installed = self.locate(version_id)
        json_path = (
            installed.json_path
            if installed
            else self.version_dir(version_id) / f"{version_id}.json"
        )
        if not json_path.is_file():
            return None
        try:
            return VersionDetail.from_dict(
                json.loads(json_path.read_text(encoding="utf-8"))
            )
        except (ValueError, ManifestError, OSError) as e:
            self.logger.error(f"[版本] 读取 {json_path} 失败: {e}")
            return None

    async def install(
        self, version_id: str, progress: Optional[ProgressSink] = None
    ) -> Outcome:
        """
        安装指定版本

        Args:
            version_id: 版本号，如 "1.20.1"
            progress: 0-100 的整数进度接收者

        Returns:
            Outcome
        """
        require(version_id, "version_id")
        self.logger.info(f"[安装] 开始安装 Minecraft {version_id}")

        if self.is_installed(version_id):
            self.logger.info(f"[安装] {version_id} 已安装，跳过")
            report(progress, 100)
            return Outcome.success("already installed")

        try:
            return await self._install(version_id, progress)
        except (APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"[安装] {version_id} 网络错误: {e}")
            return Outcome.failure(ErrorKind.NETWORK, str(e))
        except (ValueError, ManifestError) as e:
            self.logger.error(f"[安装] {version_id} 解析失败: {e}")
            return Outcome.failure(ErrorKind.PARSE, str(e))
        except OSError as e:
            self.logger.error(f"[安装] {version_id} 文件操作失败: {e}")
            return Outcome.failure(ErrorKind.IO, str(e))

    async def _install(
        self, version_id: str, progress: Optional[ProgressSink]
    ) -> Outcome:
        # 获取版本清单
        report(progress, 10)
        manifest = VersionManifest.from_dict(
            await self.http.get_json(self.endpoints.version_manifest)
        )

        # 查找版本
        report(progress, 20)
        entry = manifest.find(version_id)
        if entry is None:
            self.logger.error(f"[安装] 版本清单中没有 {version_id}")
            return Outcome.failure(ErrorKind.NOT_FOUND, f"version {version_id} not found")
        if not entry.url:
            return Outcome.failure(ErrorKind.PARSE, f"version {version_id} has no url")

        # 下载并保存版本 JSON
        report(progress, 30)
        version_dir = self.version_dir(version_id)
        version_dir.mkdir(parents=True, exist_ok=True)
        json_path = version_dir / f"{version_id}.json"
        content = await self.http.get_text(entry.url)
        async with aiofiles.open(json_path, "w", encoding="utf-8") as f:
            await f.write(content)
        self.logger.debug(f"[安装] 已保存版本 JSON: {json_path}")

        # 解析客户端下载信息
        report(progress, 50)
        detail = VersionDetail.from_dict(json.loads(content))
        client = detail.client
        if client is None or not client.url or not client.checksum:
            self.logger.error(f"[安装] {version_id} 缺少客户端下载信息")
            return Outcome.failure(
                ErrorKind.PARSE, f"client download info missing for {version_id}"
            )

        # 下载客户端 jar，进度映射到 60-90
        report(progress, 60)
        jar_path = version_dir / f"{version_id}.jar"
        if not await self.downloader.download(
            client.url, jar_path, scaled(progress, 60, 90)
        ):
            self.logger.error(f"[安装] {version_id} 客户端下载失败")
            return Outcome.failure(ErrorKind.NETWORK, "client download failed")

        # 校验
        report(progress, 95)
        if not await self.verifier.verify_checksum(str(jar_path), client.checksum):
            self.logger.error(f"[安装] {version_id} 客户端校验失败，已删除")
            jar_path.unlink(missing_ok=True)
            return Outcome.failure(ErrorKind.INTEGRITY, "client checksum mismatch")

        report(progress, 100)
        self.logger.success(f"[安装] Minecraft {version_id} 安装完成")
        return Outcome.success()
