"""
模组同步服务

把目标（档案）的 mods 目录与服务器清单对账，按七个阶段推进：
获取清单 → 比较 → 删除过时 → 下载新增 → 下载更新 → 完整性校验 → 完成。
同一清单重复同步不会产生任何文件改动。
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Set

import aiohttp
from loguru import logger as default_logger

from modsync.download.manager import PART_SUFFIX, Downloader
from modsync.download.progress import ProgressSink, report
from modsync.download.verifier import FileVerifier
from modsync.exceptions import APIError, ManifestError, require
from modsync.models import (
    ArtifactManifest,
    ArtifactRecord,
    ErrorKind,
    Outcome,
    ReconciliationPlan,
    SyncProgress,
    SyncStage,
)
from modsync.models.config import EndpointsConfig
from modsync.paths import LauncherPaths
from modsync.services.http_client import ResilientHttpClient


class ArtifactSynchronizer:
    """模组同步服务"""

    def __init__(
        self,
        http: ResilientHttpClient,
        downloader: Downloader,
        paths: LauncherPaths,
        verifier: Optional[FileVerifier] = None,
        endpoints: Optional[EndpointsConfig] = None,
        logger=None,
    ):
        self.http = http
        self.downloader = downloader
        self.paths = paths
        self.verifier = verifier or downloader.verifier
        self.endpoints = endpoints or EndpointsConfig()
        self.logger = logger or default_logger

    def manifest_url(self, base_url: str) -> str:
        return base_url.rstrip("/") + self.endpoints.mod_manifest_suffix

    def artifacts_dir(self, target_id: str) -> Path:
        return self.paths.target_artifacts_dir(target_id)

    async def fetch_manifest(self, base_url: str) -> Optional[ArtifactManifest]:
        """
        获取服务器模组清单

        Args:
            base_url: 服务器地址

        Returns:
            ArtifactManifest 或 None（网络或解析失败）
        """
        require(base_url, "base_url")
        url = self.manifest_url(base_url)
        try:
            manifest = ArtifactManifest.from_dict(await self.http.get_json(url))
        except (APIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"[同步] 获取模组清单失败 {url}: {e}")
            return None
        except (ValueError, ManifestError) as e:
            self.logger.error(f"[同步] 模组清单解析失败 {url}: {e}")
            return None

        self.logger.info(f"[同步] 服务器声明了 {len(manifest.artifacts)} 个模组")
        return manifest

    def list_installed(self, target_id: str) -> List[str]:
        """列出目标 mods 目录中的文件名（不含 .part 临时文件）"""
        require(target_id, "target_id")
        directory = self.artifacts_dir(target_id)
        if not directory.is_dir():
            return []
        return sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and not entry.name.endswith(PART_SUFFIX)
        )

    async def verify_artifact(self, record: ArtifactRecord, path: Path) -> bool:
        """按清单中的校验值校验文件"""
        return await self.verifier.verify_checksum(str(path), record.checksum)

    async def plan(
        self, manifest: ArtifactManifest, target_id: str
    ) -> ReconciliationPlan:
        """计算本地状态与清单之间的差异"""
        installed: Set[str] = set(self.list_installed(target_id))
        declared = set(manifest.file_names)
        directory = self.artifacts_dir(target_id)

        plan = ReconciliationPlan(
            obsolete=sorted(installed - declared),
            new=[r for r in manifest.artifacts if r.file_name not in installed],
        )
        for record in manifest.artifacts:
            if record.file_name not in installed:
                continue
            if not await self.verify_artifact(record, directory / record.file_name):
                self.logger.info(f"[同步] {record.file_name} 校验不一致，需要更新")
                plan.to_update.append(record)
        return plan

    async def delete_artifact(self, target_id: str, file_name: str) -> bool:
        """删除模组文件，文件已不存在也视为成功"""
        require(target_id, "target_id")
        require(file_name, "file_name")
        path = self.artifacts_dir(target_id) / file_name
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            self.logger.error(f"[同步] 删除 {file_name} 失败: {e}")
            return False
        self.logger.info(f"[同步] 已删除 {file_name}")
        return True

    async def download_artifact(
        self,
        record: ArtifactRecord,
        target_id: str,
        progress: Optional[ProgressSink] = None,
    ) -> bool:
        """
        下载并校验单个模组

        下载或校验失败时删除文件并返回 False，
        磁盘上原有的（校验不一致的）同名文件也一并删除。
        """
        require(target_id, "target_id")
        path = self.artifacts_dir(target_id) / record.file_name
        if not await self.downloader.download(record.download_url, path, progress):
            if path.exists():
                self.logger.error(f"[同步] {record.file_name} 下载失败，已删除旧文件")
                path.unlink(missing_ok=True)
            return False

        if not await self.verify_artifact(record, path):
            self.logger.error(f"[同步] {record.file_name} 校验失败，已删除")
            path.unlink(missing_ok=True)
            return False
        return True

    async def sync(
        self,
        target_id: str,
        base_url: str,
        progress: Optional[ProgressSink] = None,
    ) -> Outcome:
        """
        同步目标的模组目录

        Args:
            target_id: 目标（档案）ID
            base_url: 模组服务器地址
            progress: 接收 SyncProgress 事件

        Returns:
            Outcome
        """
        require(target_id, "target_id")
        require(base_url, "base_url")
        self.logger.info(f"[同步] 开始同步 {target_id} <- {base_url}")

        # 获取清单
        report(progress, SyncProgress(SyncStage.FETCHING_MANIFEST, current_label="manifest"))
        manifest = await self.fetch_manifest(base_url)
        if manifest is None:
            return Outcome.failure(ErrorKind.NETWORK, "failed to fetch mod manifest")

        # 比较
        plan = await self.plan(manifest, target_id)
        total = plan.total_units
        report(progress, SyncProgress(SyncStage.COMPARING_MODS, total_units=total))
        self.logger.info(
            f"[同步] 过时 {len(plan.obsolete)} 个，新增 {len(plan.new)} 个，"
            f"更新 {len(plan.to_update)} 个"
        )

        processed = 0

        for file_name in plan.obsolete:
            if not await self.delete_artifact(target_id, file_name):
                return Outcome.failure(ErrorKind.IO, f"failed to delete {file_name}")
            processed += 1
            report(
                progress,
                SyncProgress(SyncStage.DELETING_OBSOLETE, total, processed, file_name),
            )

        self.artifacts_dir(target_id).mkdir(parents=True, exist_ok=True)

        for stage, records in (
            (SyncStage.DOWNLOADING_NEW, plan.new),
            (SyncStage.DOWNLOADING_UPDATES, plan.to_update),
        ):
            for record in records:
                if not await self.download_artifact(record, target_id):
                    self.logger.error(f"[同步] {record.file_name} 下载失败，中止同步")
                    return Outcome.failure(
                        ErrorKind.INTEGRITY, f"failed to install {record.file_name}"
                    )
                processed += 1
                report(progress, SyncProgress(stage, total, processed, record.file_name))

        # 最终完整性校验
        if manifest.artifacts:
            report(progress, SyncProgress(SyncStage.VERIFYING_INTEGRITY, total, processed))
        directory = self.artifacts_dir(target_id)
        for record in manifest.artifacts:
            if not await self.verify_artifact(record, directory / record.file_name):
                self.logger.error(f"[同步] 完整性校验失败: {record.file_name}")
                return Outcome.failure(
                    ErrorKind.INTEGRITY, f"integrity check failed for {record.file_name}"
                )

        report(progress, SyncProgress(SyncStage.COMPLETE, total, processed))
        self.logger.success(f"[同步] {target_id} 同步完成 ({processed}/{total})")
        return Outcome.success()
