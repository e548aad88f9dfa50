"""
版本数据模型

定义版本清单、版本详情及库规则的数据类。JSON 在边界处一次性解析为类型化结构。
"""

import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from modsync.exceptions import ManifestError


class Platform(Enum):
    """操作系统平台（与版本 JSON 中 os.name 的取值一致）"""

    WINDOWS = "windows"
    LINUX = "linux"
    OSX = "osx"
    UNKNOWN = "unknown"

    @classmethod
    def current(cls) -> "Platform":
        """当前运行平台"""
        if sys.platform.startswith("win"):
            return cls.WINDOWS
        if sys.platform == "darwin":
            return cls.OSX
        if sys.platform.startswith("linux"):
            return cls.LINUX
        return cls.UNKNOWN

    @classmethod
    def from_name(cls, name: str) -> "Platform":
        """解析 os.name，无法识别的名字返回 UNKNOWN（永不匹配）"""
        try:
            platform = cls(name.lower())
        except ValueError:
            return cls.UNKNOWN
        return platform


class Action(Enum):
    """规则动作"""

    ALLOW = "allow"
    DISALLOW = "disallow"


@dataclass(frozen=True)
class Rule:
    """库规则，platform 为 None 表示不限平台"""

    action: Action
    platform: Optional[Platform] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        try:
            action = Action(data.get("action", "allow"))
        except ValueError:
            raise ManifestError(
                f"未知的规则动作: {data.get('action')}", context={"rule": data}
            )

        platform = None
        os_info = data.get("os")
        if isinstance(os_info, dict) and os_info.get("name"):
            platform = Platform.from_name(str(os_info["name"]))
        return cls(action=action, platform=platform)


@dataclass(frozen=True)
class Library:
    """
    运行库条目。

    name 形如 group:artifact:version[:classifier]。
    """

    name: str
    rules: Optional[List[Rule]] = None
    artifact_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Library":
        rules = None
        if data.get("rules") is not None:
            rules = [Rule.from_dict(rule) for rule in data["rules"]]

        artifact = (data.get("downloads") or {}).get("artifact") or {}
        return cls(
            name=data.get("name", ""),
            rules=rules,
            artifact_path=artifact.get("path") or None,
        )

    @property
    def parts(self) -> List[str]:
        return self.name.split(":")

    @property
    def classifier(self) -> Optional[str]:
        """四段式名称的第四段"""
        parts = self.parts
        if len(parts) >= 4:
            return parts[3]
        return None


@dataclass(frozen=True)
class ClientDownload:
    """客户端 jar 的下载信息"""

    url: str = ""
    sha1: str = ""
    sha256: str = ""

    @property
    def checksum(self) -> str:
        """优先使用 sha256，其次 sha1"""
        return self.sha256 or self.sha1


@dataclass
class VersionDetail:
    """
    版本详情（版本 JSON 的类型化视图）。
    """

    id: str
    main_class: Optional[str]
    libraries: List[Library]
    client: Optional[ClientDownload]
    asset_index: Optional[str]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionDetail":
        if not isinstance(data, dict):
            raise ManifestError("版本 JSON 格式错误")

        client = None
        client_data = (data.get("downloads") or {}).get("client")
        if isinstance(client_data, dict):
            client = ClientDownload(
                url=client_data.get("url") or "",
                sha1=client_data.get("sha1") or "",
                sha256=client_data.get("sha256") or "",
            )

        # 旧版本没有 assetIndex，使用 assets 字段
        asset_index = (data.get("assetIndex") or {}).get("id") or data.get("assets")

        return cls(
            id=data.get("id", ""),
            main_class=data.get("mainClass"),
            libraries=[Library.from_dict(lib) for lib in data.get("libraries", [])],
            client=client,
            asset_index=asset_index or None,
        )


@dataclass(frozen=True)
class VersionEntry:
    """版本清单中的单个版本"""

    id: str
    type: str
    url: str
    release_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionEntry":
        release_time = None
        raw_time = data.get("releaseTime")
        if raw_time:
            try:
                release_time = datetime.fromisoformat(raw_time.replace("Z", "+00:00"))
            except ValueError:
                release_time = None
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            url=data.get("url", ""),
            release_time=release_time,
        )


@dataclass
class VersionManifest:
    """全局版本清单"""

    latest_release: str = ""
    latest_snapshot: str = ""
    versions: List[VersionEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionManifest":
        if not isinstance(data, dict) or not isinstance(data.get("versions"), list):
            raise ManifestError("版本清单缺少 versions 列表")
        latest = data.get("latest") or {}
        return cls(
            latest_release=latest.get("release", ""),
            latest_snapshot=latest.get("snapshot", ""),
            versions=[VersionEntry.from_dict(v) for v in data["versions"]],
        )

    def find(self, version_id: str) -> Optional[VersionEntry]:
        """线性查找指定版本"""
        for entry in self.versions:
            if entry.id == version_id:
                return entry
        return None


@dataclass(frozen=True)
class InstalledVersion:
    """磁盘上已安装的版本"""

    version_id: str
    directory: Path

    @property
    def json_path(self) -> Path:
        return self.directory / f"{self.version_id}.json"

    @property
    def jar_path(self) -> Path:
        return self.directory / f"{self.version_id}.jar"

    @property
    def game_root(self) -> Path:
        """versions 目录的上一级（libraries / assets 所在目录）"""
        return self.directory.parent.parent
