"""
加载器安装服务

检测与安装 Forge / Fabric 加载器。已安装的加载器通过档案注册表
（launcher_profiles.json）中的 lastVersionId 识别。
"""

import asyncio
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiohttp
from loguru import logger as default_logger

from modsync.download.manager import Downloader
from modsync.download.progress import ProgressSink, report
from modsync.exceptions import APIError, require
from modsync.loaders import LoaderBackend, default_backends
from modsync.models import ErrorKind, LoaderKind, Outcome
from modsync.paths import LauncherPaths
from modsync.services.http_client import ResilientHttpClient


class LoaderInstaller:
    """加载器安装服务"""

    def __init__(
        self,
        http: ResilientHttpClient,
        downloader: Downloader,
        paths: LauncherPaths,
        backends: Optional[Dict[LoaderKind, LoaderBackend]] = None,
        scratch_dir: Optional[Path] = None,
        logger=None,
    ):
        self.http = http
        self.downloader = downloader
        self.paths = paths
        self.backends = backends if backends is not None else default_backends()
        self.scratch_dir = Path(scratch_dir or tempfile.gettempdir())
        self.logger = logger or default_logger

    @property
    def registry_path(self) -> Path:
        return self.paths.launcher_profiles_file

    def _backend(self, kind: LoaderKind) -> Optional[LoaderBackend]:
        return self.backends.get(kind)

    def _read_registry(self) -> Optional[Dict[str, Any]]:
        path = self.registry_path
        if not path.is_file():
            self.logger.debug(f"[加载器] 档案注册表不存在: {path}")
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as e:
            self.logger.warning(f"[加载器] 无法解析档案注册表: {e}")
            return None
        return data if isinstance(data, dict) else None

    def is_installed(self, version_id: str, kind: LoaderKind) -> bool:
        """
        检查加载器是否已安装

        Args:
            version_id: 游戏版本
            kind: 加载器类型

        Returns:
            NONE 总是返回 True
        """
        require(version_id, "version_id")
        if kind is LoaderKind.NONE:
            return True

        backend = self._backend(kind)
        if backend is None:
            return False

        registry = self._read_registry()
        profiles = (registry or {}).get("profiles")
        if not isinstance(profiles, dict):
            return False

        for name, profile in profiles.items():
            last_version = profile.get("lastVersionId") if isinstance(profile, dict) else None
            if last_version and backend.matches(str(last_version), version_id):
                self.logger.debug(f"[加载器] 找到 {kind.value} 档案: {name}")
                return True
        return False

    async def list_available_versions(
        self, version_id: str, kind: LoaderKind
    ) -> List[str]:
        """列出可用的加载器版本，失败时返回空列表"""
        require(version_id, "version_id")
        if kind is LoaderKind.NONE:
            return []

        backend = self._backend(kind)
        if backend is None:
            self.logger.warning(f"[加载器] 不支持的加载器: {kind.value}")
            return []

        try:
            versions = await backend.list_versions(self.http, version_id)
        except (APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"[加载器] 获取 {kind.value} 版本列表失败: {e}")
            return []
        except ValueError as e:
            self.logger.warning(f"[加载器] {kind.value} 版本列表解析失败: {e}")
            return []

        if not versions:
            self.logger.warning(f"[加载器] {version_id} 没有可用的 {kind.value} 版本")
        return versions

    async def install(
        self,
        version_id: str,
        kind: LoaderKind,
        progress: Optional[ProgressSink] = None,
    ) -> Outcome:
        """
        安装加载器

        Args:
            version_id: 游戏版本
            kind: 加载器类型
            progress: 0-100 的整数进度接收者

        Returns:
            Outcome
        """
        require(version_id, "version_id")
        if kind is LoaderKind.NONE or self.is_installed(version_id, kind):
            report(progress, 100)
            return Outcome.success("already installed")

        backend = self._backend(kind)
        if backend is None:
            return Outcome.failure(ErrorKind.UNSUPPORTED, f"unsupported loader {kind.value}")

        self.logger.info(f"[加载器] 开始为 {version_id} 安装 {kind.value}")

        report(progress, 10)
        versions = await self.list_available_versions(version_id, kind)
        if not versions:
            return Outcome.failure(
                ErrorKind.NOT_FOUND, f"no {kind.value} version for {version_id}"
            )

        report(progress, 20)
        loader_version = versions[0]
        self.logger.info(f"[加载器] 选择 {kind.value} {loader_version}")

        report(progress, 40)
        scratch = self.scratch_dir / backend.artifact_filename(version_id, loader_version)
        try:
            if not await self.downloader.download(
                backend.artifact_url(version_id, loader_version), scratch
            ):
                return Outcome.failure(ErrorKind.NETWORK, f"{kind.value} download failed")

            report(progress, 70)
            profile_id = backend.profile_version_id(version_id, loader_version)
            try:
                await self._register_profile(profile_id, kind)
            except OSError as e:
                self.logger.error(f"[加载器] 写入档案注册表失败: {e}")
                return Outcome.failure(ErrorKind.IO, str(e))
            report(progress, 90)
        finally:
            scratch.unlink(missing_ok=True)

        report(progress, 100)
        self.logger.success(f"[加载器] {kind.value} {loader_version} 安装完成")
        return Outcome.success()

    async def _register_profile(self, profile_id: str, kind: LoaderKind) -> None:
        """在档案注册表中登记加载器档案，先写临时文件再替换"""
        registry = self._read_registry() or {}
        profiles = registry.get("profiles")
        if not isinstance(profiles, dict):
            profiles = {}
            registry["profiles"] = profiles

        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")
        entry = profiles.setdefault(profile_id, {"created": now})
        entry.update(
            {
                "name": profile_id,
                "type": "custom",
                "lastVersionId": profile_id,
                "lastUsed": now,
                "icon": kind.value.capitalize(),
            }
        )

        path = self.registry_path
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(registry, indent=2, ensure_ascii=False))
        os.replace(temp_path, path)
        self.logger.debug(f"[加载器] 已登记档案 {profile_id}")
