"""
文件校验器

实现 SHA-256 / SHA-1 校验、文件存在性检查、文件完整性验证。
"""

import hashlib
import os
from typing import Optional

import aiofiles

CHUNK_SIZE = 65536


def normalize_hex(value: str) -> str:
    """去掉连字符并转为小写"""
    return value.replace("-", "").strip().lower()


def guess_algorithm(expected: str) -> str:
    """按十六进制长度推断算法：40 位为 sha1，其余按 sha256 处理"""
    if len(normalize_hex(expected)) == 40:
        return "sha1"
    return "sha256"


class FileVerifier:
    """文件校验器"""

    def __init__(self, logger=None):
        self.logger = logger

    @staticmethod
    async def calc_digest(file_path: str, algorithm: str = "sha256") -> Optional[str]:
        """
        计算文件摘要

        Args:
            file_path: 文件路径
            algorithm: hashlib 算法名

        Returns:
            十六进制摘要或 None（如果文件不存在）
        """
        if not os.path.isfile(file_path):
            return None

        digest = hashlib.new(algorithm)
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(CHUNK_SIZE)
                    if not data:
                        break
                    digest.update(data)
            return digest.hexdigest()
        except (IOError, OSError):
            return None

    async def verify_checksum(
        self, file_path: str, expected: Optional[str], algorithm: Optional[str] = None
    ) -> bool:
        """
        校验文件摘要是否匹配（大小写、连字符不敏感）

        Args:
            file_path: 文件路径
            expected: 预期的十六进制摘要
            algorithm: 指定算法，默认按长度推断

        Returns:
            是否匹配；文件不存在或没有预期值时返回 False
        """
        if not expected:
            return False

        algorithm = algorithm or guess_algorithm(expected)
        actual = await self.calc_digest(str(file_path), algorithm)
        if actual is None:
            if self.logger:
                self.logger.warning(f"[校验] 文件不存在，无法校验: {file_path}")
            return False

        matches = actual == normalize_hex(expected)
        if self.logger:
            if matches:
                self.logger.debug(f"[校验] 通过: {file_path}")
            else:
                self.logger.warning(
                    f"[校验] 不匹配: {file_path} 预期 {normalize_hex(expected)}，实际 {actual}"
                )
        return matches
