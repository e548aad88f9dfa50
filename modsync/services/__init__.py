"""
ModSync 服务层

包含业务逻辑服务：HTTP 客户端、版本存储、加载器安装、模组同步。
"""

from modsync.services.http_client import ResilientHttpClient, RetryEvent
from modsync.services.version_store import RuntimeVersionStore
from modsync.services.loader_installer import LoaderInstaller
from modsync.services.synchronizer import ArtifactSynchronizer

__all__ = [
    "ResilientHttpClient",
    "RetryEvent",
    "RuntimeVersionStore",
    "LoaderInstaller",
    "ArtifactSynchronizer",
]
