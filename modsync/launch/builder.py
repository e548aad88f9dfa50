"""
启动命令构建器

根据版本 JSON 组装 classpath、解压 natives，并生成完整的 JVM 启动参数。
"""

import hashlib
import os
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger as default_logger

from modsync.exceptions import require
from modsync.launch.natives import stage_natives
from modsync.launch.rules import is_library_allowed, library_path
from modsync.models import (
    InstalledVersion,
    LaunchPlan,
    NativesReport,
    Platform,
    ProfileConfig,
    VersionDetail,
)

DEFAULT_MAIN_CLASS = "net.minecraft.client.main.Main"
DEFAULT_SERVER_PORT = "25565"


def offline_uuid(username: str) -> str:
    """离线模式 UUID：对 "OfflinePlayer:<name>" 做 MD5，并标记为第 3 版"""
    digest = hashlib.md5(f"OfflinePlayer:{username}".encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest, version=3))


def split_server_address(address: str) -> Tuple[str, str]:
    """拆分 host[:port]，缺省端口为 25565"""
    host, _, port = address.strip().partition(":")
    return host, port or DEFAULT_SERVER_PORT


class LaunchCommandBuilder:
    """启动命令构建器"""

    def __init__(
        self,
        java_path: str = "java",
        platform: Optional[Platform] = None,
        logger=None,
    ):
        self.java_path = java_path
        self.platform = platform or Platform.current()
        self.logger = logger or default_logger

    @staticmethod
    def libraries_dir(installed: InstalledVersion) -> Path:
        return installed.game_root / "libraries"

    @staticmethod
    def assets_dir(installed: InstalledVersion) -> Path:
        return installed.game_root / "assets"

    @staticmethod
    def natives_dir(installed: InstalledVersion) -> Path:
        return installed.directory / f"{installed.version_id}-natives"

    def classpath(
        self, installed: InstalledVersion, detail: VersionDetail
    ) -> List[Path]:
        """
        组装 classpath

        客户端 jar 排在首位，其后是规则允许且磁盘上存在的运行库，
        按清单顺序排列，相同路径只出现一次。
        """
        entries: List[Path] = [installed.jar_path]
        seen = {installed.jar_path}
        missing: List[str] = []
        libraries_dir = self.libraries_dir(installed)

        for library in detail.libraries:
            if not is_library_allowed(library, self.platform):
                continue
            path = library_path(libraries_dir, library)
            if path is None:
                missing.append(library.name)
                self.logger.debug(f"[启动] 找不到运行库: {library.name}")
                continue
            if path in seen:
                continue
            seen.add(path)
            entries.append(path)

        self.logger.info(f"[启动] classpath 包含 {len(entries) - 1} 个运行库")
        if missing:
            self.logger.warning(f"[启动] 缺少 {len(missing)} 个运行库，游戏可能无法正常启动")
        return entries

    def stage_natives(
        self, installed: InstalledVersion, detail: VersionDetail
    ) -> NativesReport:
        return stage_natives(
            detail.libraries,
            self.libraries_dir(installed),
            self.natives_dir(installed),
            self.platform,
            self.logger,
        )

    def jvm_args(
        self, profile: ProfileConfig, natives_dir: Path, classpath: List[Path]
    ) -> List[str]:
        return [
            f"-Xmx{profile.max_memory}M",
            f"-Xms{profile.min_memory}M",
            f"-Djava.library.path={natives_dir}",
            "-cp",
            os.pathsep.join(str(p) for p in classpath),
        ]

    def game_args(
        self,
        profile: ProfileConfig,
        username: str,
        detail: VersionDetail,
        game_dir: Path,
        assets_dir: Path,
    ) -> List[str]:
        args = [
            "--username", username,
            "--version", profile.minecraft_version,
            "--gameDir", str(game_dir),
            "--assetsDir", str(assets_dir),
        ]
        if detail.asset_index:
            args += ["--assetIndex", detail.asset_index]
        args += [
            "--uuid", offline_uuid(username),
            "--accessToken", "0",
            "--userType", "legacy",
        ]

        # 自动连接服务器
        if profile.server_address and profile.server_address.strip():
            host, port = split_server_address(profile.server_address)
            args += ["--server", host, "--port", port]
        return args

    def build(
        self,
        installed: InstalledVersion,
        detail: VersionDetail,
        profile: ProfileConfig,
        username: str,
        game_dir: Path,
    ) -> LaunchPlan:
        """
        生成启动计划

        Args:
            installed: 已安装的版本
            detail: 版本详情
            profile: 启动档案
            username: 玩家名（离线模式）
            game_dir: 游戏目录，mods 子目录即同步目标

        Returns:
            LaunchPlan
        """
        require(username, "username")

        classpath = self.classpath(installed, detail)
        natives = self.stage_natives(installed, detail)
        plan = LaunchPlan(
            java_path=self.java_path,
            classpath=classpath,
            natives_dir=natives.natives_dir,
            jvm_args=self.jvm_args(profile, natives.natives_dir, classpath),
            main_class=detail.main_class or DEFAULT_MAIN_CLASS,
            game_args=self.game_args(
                profile, username, detail, game_dir, self.assets_dir(installed)
            ),
            working_dir=game_dir,
        )
        self.logger.debug(f"[启动] 命令: {plan.command_line()}")
        return plan
