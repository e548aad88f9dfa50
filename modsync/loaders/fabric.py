from typing import Any, List

from modsync.loaders.base import LoaderBackend
from modsync.models.config import LoaderKind


class FabricBackend(LoaderBackend):
    """Fabric 后端，版本来自 Fabric meta 接口"""

    kind = LoaderKind.FABRIC
    marker = "fabric"

    def versions_url(self, mc_version: str) -> str:
        base = self.endpoints.fabric_meta.rstrip("/")
        return f"{base}/v2/versions/loader/{mc_version}"

    def parse_versions(self, data: Any, mc_version: str) -> List[str]:
        if not isinstance(data, list):
            return []

        versions: List[str] = []
        for entry in data:
            loader = entry.get("loader") if isinstance(entry, dict) else None
            version = loader.get("version") if isinstance(loader, dict) else None
            if version and version not in versions:
                versions.append(str(version))
        return versions

    def artifact_url(self, mc_version: str, loader_version: str) -> str:
        base = self.endpoints.fabric_maven.rstrip("/")
        return (
            f"{base}/net/fabricmc/fabric-loader/{loader_version}/"
            f"fabric-loader-{loader_version}.jar"
        )

    def artifact_filename(self, mc_version: str, loader_version: str) -> str:
        return f"fabric-loader-{loader_version}.jar"

    def profile_version_id(self, mc_version: str, loader_version: str) -> str:
        return f"fabric-loader-{loader_version}-{mc_version}"
