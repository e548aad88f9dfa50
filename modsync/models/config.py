"""
配置数据模型

定义启动器配置、HTTP 配置、接口地址与档案（profile）配置。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from modsync.exceptions import ConfigValidationError


class LoaderKind(Enum):
    """模组加载器类型"""

    NONE = "none"
    FORGE = "forge"
    FABRIC = "fabric"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LoaderKind":
        if value is None or value == "" or str(value).lower() == "vanilla":
            return cls.NONE
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigValidationError(
                f"不支持的加载器: {value}", context={"loader": value}
            )


@dataclass
class HttpConfig:
    """HTTP 客户端配置"""

    timeout: float = 30.0
    max_attempts: int = 3
    retry_delay: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HttpConfig":
        config = cls(
            timeout=float(data.get("timeout", 30.0)),
            max_attempts=int(data.get("max_attempts", 3)),
            retry_delay=float(data.get("retry_delay", 1.0)),
        )
        if config.max_attempts < 1:
            raise ConfigValidationError("http.max_attempts 必须大于 0")
        if config.timeout <= 0:
            raise ConfigValidationError("http.timeout 必须大于 0")
        return config


@dataclass
class EndpointsConfig:
    """远程接口地址"""

    version_manifest: str = (
        "https://launchermeta.mojang.com/mc/game/version_manifest.json"
    )
    forge_promotions: str = (
        "https://files.minecraftforge.net/net/minecraftforge/forge/promotions_slim.json"
    )
    forge_maven: str = "https://maven.minecraftforge.net"
    fabric_meta: str = "https://meta.fabricmc.net"
    fabric_maven: str = "https://maven.fabricmc.net"
    mod_manifest_suffix: str = "/api/mods/manifest"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EndpointsConfig":
        defaults = cls()
        return cls(
            **{
                key: str(data.get(key, getattr(defaults, key)))
                for key in defaults.__dataclass_fields__
            }
        )


@dataclass
class ProfileConfig:
    """
    启动档案。

    server_address 用于游戏内自动连接，mod_server_url 用于模组同步。
    """

    id: str
    name: str
    minecraft_version: str
    loader: LoaderKind = LoaderKind.NONE
    server_address: Optional[str] = None
    mod_server_url: Optional[str] = None
    max_memory: int = 2048
    min_memory: int = 512

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileConfig":
        for key in ("id", "minecraft_version"):
            if not data.get(key):
                raise ConfigValidationError(
                    f"档案缺少必填字段: {key}", context={"profile": data}
                )
        profile = cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            minecraft_version=str(data["minecraft_version"]),
            loader=LoaderKind.parse(data.get("loader")),
            server_address=data.get("server_address") or None,
            mod_server_url=data.get("mod_server_url") or None,
            max_memory=int(data.get("max_memory", 2048)),
            min_memory=int(data.get("min_memory", 512)),
        )
        if profile.min_memory <= 0 or profile.max_memory < profile.min_memory:
            raise ConfigValidationError(
                f"档案 {profile.id} 的内存设置无效",
                context={"max_memory": profile.max_memory, "min_memory": profile.min_memory},
            )
        return profile

    @property
    def syncs_mods(self) -> bool:
        """mod_server_url 为 http(s) 地址时才进行模组同步"""
        url = (self.mod_server_url or "").lower()
        return url.startswith("http://") or url.startswith("https://")


@dataclass
class LauncherConfig:
    """启动器总配置"""

    root_dir: Optional[str] = None
    minecraft_dir: Optional[str] = None
    java_path: str = "java"
    http: HttpConfig = field(default_factory=HttpConfig)
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    profiles: List[ProfileConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LauncherConfig":
        if not isinstance(data, dict):
            raise ConfigValidationError("配置文件顶层必须是表 / 字典")

        profiles = [ProfileConfig.from_dict(p) for p in data.get("profiles", [])]
        ids = [p.id for p in profiles]
        if len(set(ids)) != len(ids):
            raise ConfigValidationError("档案 id 重复")

        return cls(
            root_dir=data.get("root_dir"),
            minecraft_dir=data.get("minecraft_dir"),
            java_path=data.get("java_path", "java"),
            http=HttpConfig.from_dict(data.get("http", {})),
            endpoints=EndpointsConfig.from_dict(data.get("endpoints", {})),
            profiles=profiles,
        )

    def get_profile(self, profile_id: str) -> Optional[ProfileConfig]:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None
