"""
ModSync 加载器后端

包含 Forge 与 Fabric 两种加载器。
"""

from typing import Dict, Optional

from modsync.loaders.base import LoaderBackend
from modsync.loaders.fabric import FabricBackend
from modsync.loaders.forge import ForgeBackend
from modsync.models.config import EndpointsConfig, LoaderKind


def default_backends(
    endpoints: Optional[EndpointsConfig] = None,
) -> Dict[LoaderKind, LoaderBackend]:
    """按加载器类型创建后端"""
    endpoints = endpoints or EndpointsConfig()
    return {
        LoaderKind.FORGE: ForgeBackend(endpoints),
        LoaderKind.FABRIC: FabricBackend(endpoints),
    }


__all__ = [
    "LoaderBackend",
    "ForgeBackend",
    "FabricBackend",
    "default_backends",
]
