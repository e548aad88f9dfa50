import sys

import pytest

from modsync.launch import (
    PosixProcessTree,
    ProcessHandle,
    ProcessSupervisor,
    ProcessTree,
    WindowsProcessTree,
    default_process_tree,
)
from modsync.models import LaunchPlan

pytest_plugins = ("pytest_asyncio",)


class FakeTree(ProcessTree):
    def __init__(self, children, failing=()):
        self.tree = children
        self.failing = set(failing)
        self.killed = []
        self.waited = []

    def children(self, pid):
        if pid not in self.tree:
            raise ProcessLookupError(pid)
        return list(self.tree[pid])

    def kill(self, pid):
        self.killed.append(pid)
        if pid in self.failing:
            raise PermissionError(pid)

    def wait(self, pids, timeout):
        self.waited.append(list(pids))


class FakeProcess:
    def __init__(self, pid, returncode=None):
        self.pid = pid
        self.returncode = returncode

    async def wait(self):
        self.returncode = -9
        return self.returncode


def make_plan(tmp_path, java_path, *args):
    return LaunchPlan(
        java_path=java_path,
        classpath=[],
        natives_dir=tmp_path,
        jvm_args=[],
        main_class=args[0],
        game_args=list(args[1:]),
        working_dir=tmp_path / "game",
    )


def test_default_tree_matches_platform():
    expected = WindowsProcessTree if sys.platform.startswith("win") else PosixProcessTree
    assert isinstance(default_process_tree(), expected)


@pytest.mark.asyncio
async def test_kill_terminates_leaves_before_root():
    tree = FakeTree({100: [200, 300], 200: [400], 300: [], 400: []}, failing={300})
    supervisor = ProcessSupervisor(tree)
    handle = ProcessHandle(process=FakeProcess(100))

    await supervisor.kill(handle)

    assert tree.killed == [400, 200, 300, 100]
    assert tree.waited == [[400, 200, 300]]
    assert handle.disposed
    assert not handle.running


@pytest.mark.asyncio
async def test_kill_handles_unenumerable_children():
    tree = FakeTree({100: [200]})
    supervisor = ProcessSupervisor(tree)

    await supervisor.kill(ProcessHandle(process=FakeProcess(100)))

    assert tree.killed == [200, 100]


@pytest.mark.asyncio
async def test_kill_ignores_exited_and_missing_handles():
    tree = FakeTree({})
    supervisor = ProcessSupervisor(tree)
    handle = ProcessHandle(process=FakeProcess(100, returncode=0))

    await supervisor.kill(handle)
    await supervisor.kill(None)

    assert tree.killed == []
    assert handle.disposed


@pytest.mark.asyncio
async def test_start_runs_plan_in_working_dir(tmp_path):
    supervisor = ProcessSupervisor(FakeTree({}))
    plan = make_plan(
        tmp_path,
        sys.executable,
        "-c",
        "import os; open('cwd.txt', 'w').write(os.getcwd())",
    )

    handle = await supervisor.start(plan)

    assert handle is not None
    assert await handle.wait() == 0
    assert (tmp_path / "game" / "cwd.txt").exists()
    assert handle.command_line == plan.command_line()


@pytest.mark.asyncio
async def test_start_failure_returns_none(tmp_path):
    supervisor = ProcessSupervisor(FakeTree({}))
    plan = make_plan(tmp_path, str(tmp_path / "no-such-java"), "Main")

    assert await supervisor.start(plan) is None
