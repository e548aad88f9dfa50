"""
ModSync 数据模型包

包含配置模型、版本模型、模组同步模型与启动模型。
"""

from modsync.models.config import (
    LoaderKind,
    HttpConfig,
    EndpointsConfig,
    ProfileConfig,
    LauncherConfig,
)
from modsync.models.version import (
    Platform,
    Action,
    Rule,
    Library,
    ClientDownload,
    VersionDetail,
    VersionEntry,
    VersionManifest,
    InstalledVersion,
)
from modsync.models.artifact import (
    ArtifactRecord,
    ArtifactManifest,
    ReconciliationPlan,
    SyncStage,
    SyncProgress,
)
from modsync.models.launch import LaunchPlan, LaunchResult, NativesReport
from modsync.models.result import ErrorKind, Outcome

__all__ = [
    # 配置模型
    "LoaderKind",
    "HttpConfig",
    "EndpointsConfig",
    "ProfileConfig",
    "LauncherConfig",
    # 版本模型
    "Platform",
    "Action",
    "Rule",
    "Library",
    "ClientDownload",
    "VersionDetail",
    "VersionEntry",
    "VersionManifest",
    "InstalledVersion",
    # 同步模型
    "ArtifactRecord",
    "ArtifactManifest",
    "ReconciliationPlan",
    "SyncStage",
    "SyncProgress",
    # 启动模型
    "LaunchPlan",
    "LaunchResult",
    "NativesReport",
    # 结果
    "ErrorKind",
    "Outcome",
]
