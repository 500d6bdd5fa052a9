"""Tasks, their address-space records and the round-robin scheduler."""

from dataclasses import dataclass, field
from enum import IntEnum

KERNEL_STACK_SLOTS = 512
PROC_NAME_MAX = 63
FD_SLOTS = 10

USER_STACK_TOP = 0x000000F000000000
USER_STACK_SIZE = 0x10000

PERM_NONE = 0x0
PERM_R = 0x4
PERM_W = 0x2
PERM_X = 0x1

USER_DATA_SELECTOR = 0x23
USER_CODE_SELECTOR = 0x1B
KERNEL_DATA_SELECTOR = 0x10
KERNEL_CODE_SELECTOR = 0x08
INITIAL_RFLAGS = 0x200202
TIMER_RESTORE_OFFSET = 0x20

# Kernel stack positions (stack tops, saved rsp) are slot indices into k_stack.
SS_SLOT = 511
RSP_SLOT = 510
RFLAGS_SLOT = 509
CS_SLOT = 508
RIP_SLOT = 507
RETURN_SLOT = 491
SAVED_RSP_SLOT = 490

PRIMAL_NAME = "primal process"
PRIMAL_ENTRY = 0


class TaskState(IntEnum):
    RUNNING = 0
    INTERRUPTIBLE = 1
    UNINTERRUPTIBLE = 2
    STOPPED = 4
    TRACED = 8
    EXIT_ZOMBIE = 16
    EXIT_DEAD = 32
    DEAD = 64
    WAKEKILL = 128
    WAKING = 256


class Mode(IntEnum):
    KERNEL = 0
    USER = 1


class VmaType(IntEnum):
    COMM = 0
    TEXT = 1
    DATA = 2
    HEAP = 4
    STACK = 8
    ANON = 16
    FILETYPE = 32


@dataclass(eq=False)
class VmArea:
    """One region of a task's virtual address space, end exclusive."""

    start: int = 0
    end: int = 0
    permission: int = PERM_NONE
    type: VmaType = VmaType.COMM
    fd: int = 0
    offset: int = 0
    mm: "MemoryMap | None" = field(default=None, repr=False)

    def reset(self):
        self.start = self.end = self.permission = self.fd = self.offset = 0
        self.type = VmaType.COMM
        self.mm = None


@dataclass(eq=False)
class MemoryMap:
    """The address-space bookkeeping of a task."""

    tables: object = None
    areas: list = field(default_factory=list)
    count: int = 0
    start_code: int = 0
    end_code: int = 0
    start_data: int = 0
    end_data: int = 0
    start_brk: int = 0
    brk: int = 0
    start_stack: int = 0
    start_mmap: int = 0
    arg_start: int = 0
    arg_end: int = 0
    env_start: int = 0
    env_end: int = 0
    rss: int = 0
    total_vm: int = 0
    locked_vm: int = 0

    def add(self, vma):
        """Append a region to the end of the map."""
        vma.mm = self
        self.areas.append(vma)
        return vma

    def reset(self):
        for name in (
            "count", "start_code", "end_code", "start_data", "end_data",
            "start_brk", "brk", "start_stack", "start_mmap", "arg_start",
            "arg_end", "env_start", "env_end", "rss", "total_vm", "locked_vm",
        ):
            setattr(self, name, 0)
        self.areas = []


@dataclass(eq=False)
class Task:
    """A process or kernel thread and its saved kernel stack."""

    pid: int = 0
    ppid: int = 0
    mode: Mode = Mode.USER
    k_stack: list = field(default_factory=lambda: [0] * KERNEL_STACK_SLOTS)
    rip: int = 0
    rsp: int = 0
    state: TaskState = TaskState.RUNNING
    mm: MemoryMap = field(default_factory=MemoryMap)
    name: str = ""
    sleep_cnt: int = 0
    parent: "Task | None" = field(default=None, repr=False)
    children: list = field(default_factory=list, repr=False)
    fd: list = field(default_factory=lambda: [None] * FD_SLOTS)
    wait_on_child_pid: int = 0

    @property
    def num_children(self):
        return len(self.children)


class Scheduler:
    """Run queue, free pools of tasks and regions, and the timer-driven switch."""

    def __init__(self):
        self.pid_mark = 0
        self.available_tasks = []
        self.available_vmas = []
        self.running = []
        self.primal = None
        self.current = None
        self.schedule_flag = False
        self.ticks = 0
        self.timer_entry = 0

    def allocate_task(self, mode):
        """Return a runnable task, reusing a released one when there is one."""
        task = self.available_tasks.pop() if self.available_tasks else Task()
        task.pid = self.pid_mark
        self.pid_mark += 1
        task.mode = Mode(mode)
        task.state = TaskState.RUNNING
        return task

    def allocate_vma(self, start, end, permission, vma_type, fd=0):
        """Return a region record, reusing a released one when there is one."""
        vma = self.available_vmas.pop() if self.available_vmas else VmArea()
        vma.start = start
        vma.end = end
        vma.permission = permission
        vma.type = VmaType(vma_type)
        vma.fd = fd
        vma.mm = None
        return vma

    def free_task(self, task):
        """Clear a task, release its pages, and return its regions to the pool."""
        task.state = TaskState.EXIT_DEAD
        task.pid = task.ppid = 0
        task.mode = Mode.KERNEL
        task.rip = task.rsp = task.sleep_cnt = task.wait_on_child_pid = 0
        task.parent = None
        task.children = []
        task.k_stack = [0] * KERNEL_STACK_SLOTS
        task.name = ""
        task.fd = [None] * FD_SLOTS
        mm = task.mm
        if mm.tables is not None:
            mm.tables.free_all()
        areas = mm.areas
        mm.reset()
        for vma in areas:
            vma.reset()
        self.available_vmas.extend(reversed(areas))

    def create_primal(self):
        """Create the idle kernel task that runs when nothing else can."""
        task = self.allocate_task(Mode.KERNEL)
        task.state = TaskState.RUNNING
        task.name = PRIMAL_NAME
        self.primal = task
        self.init_task(task, PRIMAL_ENTRY, SS_SLOT)
        return task

    def add(self, task):
        """Queue a runnable task, or pool a dead one; other states are left alone."""
        if task.state == TaskState.RUNNING:
            self.running.append(task)
        elif task.state == TaskState.EXIT_DEAD:
            task.state = TaskState.STOPPED
            self.available_tasks.append(task)

    def next_task(self):
        """Take the first runnable task off the queue; fall back to the primal task."""
        for index, task in enumerate(self.running):
            if task.state == TaskState.RUNNING:
                del self.running[index]
                self.current = task
                return task
        self.current = self.primal
        return self.primal

    def tick_sleep(self):
        """Count down sleeping tasks and wake those whose count has run out."""
        for task in self.running:
            if task.state == TaskState.UNINTERRUPTIBLE:
                if task.sleep_cnt:
                    task.sleep_cnt -= 1
                else:
                    task.state = TaskState.RUNNING

    def init_task(self, task, entry, stack_top):
        """Build the interrupt return frame on the kernel stack and queue the task."""
        stack = task.k_stack
        if task.mode == Mode.USER:
            stack[SS_SLOT] = USER_DATA_SELECTOR
            stack[CS_SLOT] = USER_CODE_SELECTOR
        else:
            stack[SS_SLOT] = KERNEL_DATA_SELECTOR
            stack[CS_SLOT] = KERNEL_CODE_SELECTOR
        stack[RSP_SLOT] = stack_top
        stack[RFLAGS_SLOT] = INITIAL_RFLAGS
        stack[RIP_SLOT] = entry
        task.rip = entry
        stack[RETURN_SLOT] = self.timer_entry + TIMER_RESTORE_OFFSET
        task.rsp = SAVED_RSP_SLOT
        self.add(task)

    def tick(self):
        """Handle one timer tick; return the task chosen to run, or None if off."""
        self.ticks += 1
        if not self.schedule_flag:
            return None
        self.tick_sleep()
        if self.current is not None:
            self.add(self.current)
        return self.next_task()