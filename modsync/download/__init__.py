"""
ModSync 下载层

包含单文件下载、文件校验与进度上报。
"""

from modsync.download.manager import Downloader, DownloadStats
from modsync.download.progress import ProgressStream
from modsync.download.verifier import FileVerifier

__all__ = [
    "Downloader",
    "DownloadStats",
    "FileVerifier",
    "ProgressStream",
]
