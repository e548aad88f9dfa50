"""
模组同步数据模型

定义服务器模组清单、对账计划以及同步进度。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from modsync.exceptions import ManifestError


def _get_ci(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """大小写不敏感地读取字段，按顺序尝试多个候选键"""
    lowered = {str(k).lower(): v for k, v in data.items()}
    for key in keys:
        value = lowered.get(key.lower())
        if value is not None:
            return value
    return default


def _is_bare_filename(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    return "/" not in name and "\\" not in name


@dataclass(frozen=True)
class ArtifactRecord:
    """
    服务器声明的单个模组文件。

    file_name 在同一个目标内唯一。
    """

    file_name: str
    download_url: str
    checksum: str
    size: int = 0
    version: str = ""
    required: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactRecord":
        file_name = str(_get_ci(data, "fileName", "file_name", default=""))
        if not _is_bare_filename(file_name):
            raise ManifestError(
                f"非法的模组文件名: {file_name!r}", context={"entry": data}
            )

        download_url = _get_ci(data, "downloadUrl", "download_url", default="")
        checksum = _get_ci(data, "checksum", default="")
        if not download_url or not checksum:
            raise ManifestError(
                f"模组 {file_name} 缺少下载地址或校验值", context={"entry": data}
            )

        try:
            size = int(_get_ci(data, "fileSize", "file_size", "size", default=0))
        except (TypeError, ValueError):
            size = 0

        return cls(
            file_name=file_name,
            download_url=str(download_url),
            checksum=str(checksum),
            size=size,
            version=str(_get_ci(data, "version", default="")),
            required=bool(_get_ci(data, "required", default=False)),
        )


@dataclass
class ArtifactManifest:
    """服务器声明的目标状态"""

    artifacts: List[ArtifactRecord] = field(default_factory=list)
    version: str = ""
    last_updated: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactManifest":
        if not isinstance(data, dict):
            raise ManifestError("模组清单格式错误")

        # 兼容旧格式的 mods 字段
        entries = _get_ci(data, "artifacts", "mods", default=[])
        if not isinstance(entries, list):
            raise ManifestError("模组清单的 artifacts 字段必须是列表")

        artifacts = [ArtifactRecord.from_dict(entry) for entry in entries]
        names = [a.file_name for a in artifacts]
        if len(set(names)) != len(names):
            raise ManifestError("模组清单中存在重复的文件名")

        return cls(
            artifacts=artifacts,
            version=str(_get_ci(data, "version", default="")),
            last_updated=_get_ci(data, "lastUpdated", "last_updated"),
        )

    @property
    def file_names(self) -> List[str]:
        return [a.file_name for a in self.artifacts]


@dataclass
class ReconciliationPlan:
    """本地状态与清单之间的差异"""

    obsolete: List[str] = field(default_factory=list)
    new: List[ArtifactRecord] = field(default_factory=list)
    to_update: List[ArtifactRecord] = field(default_factory=list)

    @property
    def total_units(self) -> int:
        return len(self.obsolete) + len(self.new) + len(self.to_update)

    @property
    def is_empty(self) -> bool:
        return self.total_units == 0


class SyncStage(Enum):
    """同步阶段，严格按定义顺序推进"""

    FETCHING_MANIFEST = "fetching_manifest"
    COMPARING_MODS = "comparing_mods"
    DELETING_OBSOLETE = "deleting_obsolete"
    DOWNLOADING_NEW = "downloading_new"
    DOWNLOADING_UPDATES = "downloading_updates"
    VERIFYING_INTEGRITY = "verifying_integrity"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SyncProgress:
    """同步进度事件"""

    stage: SyncStage
    total_units: int = 0
    processed_units: int = 0
    current_label: str = ""

    @property
    def percent(self) -> int:
        if self.total_units <= 0:
            return 0
        return self.processed_units * 100 // self.total_units
