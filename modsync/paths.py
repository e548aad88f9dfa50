"""
启动器目录布局

所有磁盘路径都从这里派生。主目录默认位于用户应用数据目录，
官方游戏目录作为版本检测的备用来源。
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

import click

APP_NAME = "ModSync"


def default_minecraft_dir() -> Path:
    """官方启动器的游戏目录"""
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(appdata) / ".minecraft"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "minecraft"
    return Path.home() / ".minecraft"


class LauncherPaths:
    """启动器路径集合"""

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        minecraft_dir: Optional[Union[str, Path]] = None,
    ):
        self.root = Path(root) if root else Path(click.get_app_dir(APP_NAME))
        self.minecraft_dir = (
            Path(minecraft_dir) if minecraft_dir else default_minecraft_dir()
        )

    @property
    def versions_dir(self) -> Path:
        return self.root / "versions"

    @property
    def libraries_dir(self) -> Path:
        return self.root / "libraries"

    @property
    def assets_dir(self) -> Path:
        return self.root / "assets"

    @property
    def profiles_dir(self) -> Path:
        return self.root / "profiles"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def cache_dir(self) -> Path:
        return self.root / "cache"

    @property
    def fallback_versions_dir(self) -> Path:
        return self.minecraft_dir / "versions"

    @property
    def launcher_profiles_file(self) -> Path:
        """加载器档案注册表"""
        return self.minecraft_dir / "launcher_profiles.json"

    def version_dir(self, version_id: str) -> Path:
        return self.versions_dir / version_id

    def profile_dir(self, profile_id: str) -> Path:
        return self.profiles_dir / profile_id

    def target_artifacts_dir(self, profile_id: str) -> Path:
        """目标的模组目录"""
        return self.profile_dir(profile_id) / "mods"

    def ensure_directories(self) -> None:
        for directory in (
            self.root,
            self.versions_dir,
            self.libraries_dir,
            self.assets_dir,
            self.profiles_dir,
            self.logs_dir,
            self.cache_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"LauncherPaths(root={str(self.root)!r}, minecraft_dir={str(self.minecraft_dir)!r})"
