"""
ModSync 启动层

包含规则判定、natives 解压、启动命令构建与进程管理。
"""

from modsync.launch.builder import LaunchCommandBuilder, offline_uuid
from modsync.launch.natives import stage_natives
from modsync.launch.process import (
    PosixProcessTree,
    ProcessHandle,
    ProcessSupervisor,
    ProcessTree,
    WindowsProcessTree,
    default_process_tree,
)
from modsync.launch.rules import evaluate_rules

__all__ = [
    "LaunchCommandBuilder",
    "offline_uuid",
    "stage_natives",
    "evaluate_rules",
    "ProcessTree",
    "PosixProcessTree",
    "WindowsProcessTree",
    "default_process_tree",
    "ProcessHandle",
    "ProcessSupervisor",
]
