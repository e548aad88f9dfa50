from abc import ABC, abstractmethod
from typing import Any, List

from modsync.models.config import EndpointsConfig, LoaderKind


class LoaderBackend(ABC):
    """
    模组加载器后端。

    每个后端负责列出某个游戏版本可用的加载器版本，
    以及给出加载器文件的下载地址和档案中的版本标识。
    """

    kind: LoaderKind
    marker: str

    def __init__(self, endpoints: EndpointsConfig):
        self.endpoints = endpoints

    @abstractmethod
    def versions_url(self, mc_version: str) -> str:
        """
        加载器版本列表的地址。
        """
        pass

    @abstractmethod
    def parse_versions(self, data: Any, mc_version: str) -> List[str]:
        """
        从接口返回的 JSON 中解析加载器版本，首个为推荐版本。
        """
        pass

    async def list_versions(self, http, mc_version: str) -> List[str]:
        return self.parse_versions(await http.get_json(self.versions_url(mc_version)), mc_version)

    @abstractmethod
    def artifact_url(self, mc_version: str, loader_version: str) -> str:
        pass

    @abstractmethod
    def artifact_filename(self, mc_version: str, loader_version: str) -> str:
        pass

    @abstractmethod
    def profile_version_id(self, mc_version: str, loader_version: str) -> str:
        """
        写入档案注册表的 lastVersionId。
        """
        pass

    def matches(self, version_id: str, mc_version: str) -> bool:
        """档案版本标识同时包含加载器标记（大小写不敏感）和游戏版本时视为匹配"""
        return self.marker in version_id.lower() and mc_version in version_id
