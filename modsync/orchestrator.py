"""
主协调器

整合服务层与启动层组件：准备版本与加载器、同步模组、构建命令并启动游戏。
"""

import asyncio
from typing import Optional

import aiofiles
from loguru import logger

from modsync.download import Downloader
from modsync.download.progress import ProgressSink, scaled
from modsync.exceptions import require
from modsync.launch import LaunchCommandBuilder, ProcessHandle, ProcessSupervisor, ProcessTree
from modsync.loaders import default_backends
from modsync.models import (
    LauncherConfig,
    LaunchResult,
    LoaderKind,
    Outcome,
    ProfileConfig,
)
from modsync.paths import LauncherPaths
from modsync.services import (
    ArtifactSynchronizer,
    LoaderInstaller,
    ResilientHttpClient,
    RuntimeVersionStore,
)

LAST_LAUNCH_FILE = "last_launch.txt"


class Launcher:
    """ModSync 主协调器"""

    def __init__(
        self,
        config: LauncherConfig,
        paths: Optional[LauncherPaths] = None,
        http: Optional[ResilientHttpClient] = None,
        process_tree: Optional[ProcessTree] = None,
        base_logger=None,
    ):
        self.config = config
        self.paths = paths or LauncherPaths(config.root_dir, config.minecraft_dir)
        base = base_logger or logger

        self.http = http or ResilientHttpClient(
            timeout=config.http.timeout,
            max_attempts=config.http.max_attempts,
            retry_delay=config.http.retry_delay,
            logger=base.bind(component="http"),
        )
        self.downloader = Downloader(self.http, logger=base.bind(component="download"))
        self.versions = RuntimeVersionStore(
            self.http,
            self.downloader,
            self.paths,
            endpoints=config.endpoints,
            logger=base.bind(component="versions"),
        )
        self.loaders = LoaderInstaller(
            self.http,
            self.downloader,
            self.paths,
            backends=default_backends(config.endpoints),
            scratch_dir=self.paths.cache_dir,
            logger=base.bind(component="loaders"),
        )
        self.synchronizer = ArtifactSynchronizer(
            self.http,
            self.downloader,
            self.paths,
            endpoints=config.endpoints,
            logger=base.bind(component="sync"),
        )
        self.builder = LaunchCommandBuilder(
            java_path=config.java_path, logger=base.bind(component="launch")
        )
        self.supervisor = ProcessSupervisor(
            process_tree, logger=base.bind(component="process")
        )
        self.logger = base.bind(component="launcher")
        self.handle: Optional[ProcessHandle] = None

    async def prepare(
        self, profile: ProfileConfig, progress: Optional[ProgressSink] = None
    ) -> Outcome:
        """安装档案所需的游戏版本与加载器"""
        self.paths.ensure_directories()
        self.logger.info(f"准备档案 {profile.id} ({profile.minecraft_version}, {profile.loader.value})")

        outcome = await self.versions.install(
            profile.minecraft_version, scaled(progress, 0, 50)
        )
        if not outcome:
            return outcome

        return await self.loaders.install(
            profile.minecraft_version, profile.loader, scaled(progress, 50, 100)
        )

    def validate_installation(self, version_id: str) -> bool:
        return self.versions.is_installed(version_id)

    async def sync(
        self, profile: ProfileConfig, progress: Optional[ProgressSink] = None
    ) -> Outcome:
        """同步档案的模组，没有模组服务器时直接成功"""
        if not profile.syncs_mods:
            self.logger.debug(f"档案 {profile.id} 未配置模组服务器，跳过同步")
            return Outcome.success("no mod server")
        return await self.synchronizer.sync(profile.id, profile.mod_server_url, progress)

    async def launch(
        self,
        profile: ProfileConfig,
        username: str,
        progress: Optional[ProgressSink] = None,
    ) -> LaunchResult:
        """
        启动游戏

        Args:
            profile: 启动档案
            username: 玩家名
            progress: 接收模组同步的 SyncProgress 事件

        Returns:
            LaunchResult
        """
        require(username, "username")
        version_id = profile.minecraft_version

        installed = self.versions.locate(version_id)
        if installed is None:
            return self._fail(f"Minecraft {version_id} 未安装")

        if profile.loader is not LoaderKind.NONE and not self.loaders.is_installed(
            version_id, profile.loader
        ):
            return self._fail(f"{profile.loader.value} 加载器未安装")

        mods_dir = self.paths.target_artifacts_dir(profile.id)
        if profile.syncs_mods:
            outcome = await self.sync(profile, progress)
            if not outcome:
                self.logger.warning(f"模组同步失败，继续启动: {outcome.message}")
            if not mods_dir.is_dir() or not any(mods_dir.iterdir()):
                self.logger.warning(f"模组目录为空: {mods_dir}")

        detail = self.versions.load_detail(version_id)
        if detail is None:
            return self._fail(f"无法读取 {version_id} 的版本 JSON")

        game_dir = self.paths.profile_dir(profile.id)
        plan = await asyncio.to_thread(
            self.builder.build, installed, detail, profile, username, game_dir
        )
        command_line = plan.command_line()
        await self._record_command(command_line)

        handle = await self.supervisor.start(plan)
        if handle is None:
            return self._fail("游戏进程启动失败", command_line)

        self.handle = handle
        return LaunchResult(success=True, handle=handle, command_line=command_line)

    async def _record_command(self, command_line: str) -> None:
        """把最近一次启动命令写入日志目录"""
        path = self.paths.logs_dir / LAST_LAUNCH_FILE
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(command_line + "\n")
        except OSError as e:
            self.logger.warning(f"无法写入 {path}: {e}")

    def _fail(self, message: str, command_line: Optional[str] = None) -> LaunchResult:
        self.logger.error(message)
        return LaunchResult(success=False, error_message=message, command_line=command_line)

    async def kill(self) -> None:
        """终止正在运行的游戏"""
        await self.supervisor.kill(self.handle)
        self.handle = None

    async def close(self):
        await self.http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
