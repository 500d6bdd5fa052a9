import pytest

from sbunix.proc import (
    CS_SLOT,
    INITIAL_RFLAGS,
    KERNEL_CODE_SELECTOR,
    KERNEL_DATA_SELECTOR,
    PRIMAL_NAME,
    RIP_SLOT,
    RSP_SLOT,
    SAVED_RSP_SLOT,
    SS_SLOT,
    USER_CODE_SELECTOR,
    USER_DATA_SELECTOR,
    MemoryMap,
    Mode,
    Scheduler,
    TaskState,
    VmArea,
    VmaType,
)


class _Tables:
    def __init__(self):
        self.freed = 0

    def free_all(self):
        self.freed += 1
        return 0


def test_user_task_frame():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    sched.init_task(task, 0x400000, 0x7000)
    assert task.k_stack[SS_SLOT] == USER_DATA_SELECTOR
    assert task.k_stack[CS_SLOT] == USER_CODE_SELECTOR
    assert task.k_stack[RSP_SLOT] == 0x7000
    assert task.k_stack[RFLAGS_SLOT_VALUE] == INITIAL_RFLAGS
    assert task.rip == task.k_stack[RIP_SLOT] == 0x400000
    assert task.rsp == SAVED_RSP_SLOT
    assert sched.running == [task]


RFLAGS_SLOT_VALUE = RSP_SLOT - 1


def test_kernel_task_frame():
    sched = Scheduler()
    task = sched.allocate_task(Mode.KERNEL)
    sched.init_task(task, 5, 9)
    assert task.k_stack[SS_SLOT] == KERNEL_DATA_SELECTOR
    assert task.k_stack[CS_SLOT] == KERNEL_CODE_SELECTOR


def test_allocate_gives_distinct_pids():
    sched = Scheduler()
    first = sched.allocate_task(Mode.USER)
    second = sched.allocate_task(Mode.USER)
    assert first.pid != second.pid
    assert first.state == TaskState.RUNNING


def test_next_task_removes_first_runnable():
    sched = Scheduler()
    a = sched.allocate_task(Mode.USER)
    b = sched.allocate_task(Mode.USER)
    a.state = TaskState.UNINTERRUPTIBLE
    sched.add(b)
    sched.running.insert(0, a)
    assert sched.next_task() is b
    assert sched.running == [a]
    assert sched.current is b


def test_next_task_falls_back_to_primal():
    sched = Scheduler()
    primal = sched.create_primal()
    assert primal.name == PRIMAL_NAME
    assert sched.next_task() is primal
    assert sched.next_task() is primal


def test_dead_task_is_reused():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    sched.free_task(task)
    assert task.state == TaskState.EXIT_DEAD
    sched.add(task)
    assert task.state == TaskState.STOPPED
    assert sched.allocate_task(Mode.USER) is task


def test_idle_states_are_not_queued():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    task.state = TaskState.EXIT_ZOMBIE
    sched.add(task)
    assert sched.running == []
    assert sched.available_tasks == []


def test_free_task_returns_regions_in_order():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    tables = _Tables()
    task.mm.tables = tables
    first = task.mm.add(sched.allocate_vma(0x1000, 0x2000, 4, VmaType.TEXT, 0))
    second = task.mm.add(sched.allocate_vma(0x3000, 0x4000, 6, VmaType.DATA, 0))
    task.mm.total_vm = 0x2000
    sched.free_task(task)
    assert tables.freed == 1
    assert task.mm.areas == []
    assert task.mm.total_vm == 0
    assert first.end == 0
    assert sched.allocate_vma(1, 2, 0, VmaType.HEAP, 0) is first
    assert sched.allocate_vma(3, 4, 0, VmaType.STACK, 0) is second


def test_memory_map_add_links_owner():
    mm = MemoryMap()
    vma = mm.add(VmArea(start=1, end=2))
    assert mm.areas == [vma]
    assert vma.mm is mm


def test_tick_sleep_wakes_after_count():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    sched.add(task)
    task.state = TaskState.UNINTERRUPTIBLE
    task.sleep_cnt = 1
    sched.tick_sleep()
    assert task.state == TaskState.UNINTERRUPTIBLE
    assert task.sleep_cnt == 0
    sched.tick_sleep()
    assert task.state == TaskState.RUNNING


def test_tick_without_scheduling_counts_only():
    sched = Scheduler()
    task = sched.allocate_task(Mode.USER)
    sched.add(task)
    assert sched.tick() is None
    assert sched.ticks == 1
    assert sched.running == [task]


def test_tick_round_robin():
    sched = Scheduler()
    sched.schedule_flag = True
    a = sched.allocate_task(Mode.USER)
    b = sched.allocate_task(Mode.USER)
    sched.add(a)
    sched.add(b)
    order = [sched.tick() for _ in range(4)]
    assert order == [a, b, a, b]


def test_vma_type_rejects_unknown():
    sched = Scheduler()
    with pytest.raises(ValueError):
        sched.allocate_vma(0, 1, 0, 3, 0)