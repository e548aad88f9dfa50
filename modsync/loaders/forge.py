from typing import Any, List

from modsync.loaders.base import LoaderBackend
from modsync.models.config import LoaderKind


class ForgeBackend(LoaderBackend):
    """Forge 后端，版本来自 promotions_slim.json"""

    kind = LoaderKind.FORGE
    marker = "forge"

    def versions_url(self, mc_version: str) -> str:
        return self.endpoints.forge_promotions

    def parse_versions(self, data: Any, mc_version: str) -> List[str]:
        promos = data.get("promos") if isinstance(data, dict) else None
        if not isinstance(promos, dict):
            return []

        wanted = (f"{mc_version}-latest", f"{mc_version}-recommended")
        versions: List[str] = []
        for key, value in promos.items():
            if key in wanted and value and str(value) not in versions:
                versions.append(str(value))
        return versions

    def artifact_url(self, mc_version: str, loader_version: str) -> str:
        full = f"{mc_version}-{loader_version}"
        base = self.endpoints.forge_maven.rstrip("/")
        return f"{base}/net/minecraftforge/forge/{full}/forge-{full}-installer.jar"

    def artifact_filename(self, mc_version: str, loader_version: str) -> str:
        return f"forge-{mc_version}-{loader_version}-installer.jar"

    def profile_version_id(self, mc_version: str, loader_version: str) -> str:
        return f"{mc_version}-forge-{loader_version}"
