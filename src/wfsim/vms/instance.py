from dataclasses import dataclass
import enum
import math
import typing as tp

import wfsim.utils.cost as cst
import wfsim.workflows as wfs


@dataclass(frozen=True)
class VMType:
    name: str

    # Throughput of VM. Task's mean execution time is divided by it.
    processing_capacity: float

    # Price of leasing VM for one hour.
    # Measures in dollars.
    cost_per_hour: float

    # Power consumption of VM.
    # Measures in watts (joules per second).
    energy_per_second: float

    # Time between lease and readiness to execute tasks.
    # Measures in seconds.
    boot_time: float


class State(enum.Enum):
    # Leased and booting, no task assigned yet.
    LEASED = enum.auto()
    # Has at least one running task.
    SERVING = enum.auto()
    # No running tasks, still leased.
    IDLE = enum.auto()
    RELEASED = enum.auto()


class VM:
    """Representation of leased Virtual Machine. Keeps track of its
    lease, tasks and accumulated time, cost and energy.
    """

    def __init__(
            self,
            vm_id: str,
            vm_type: VMType,
            lease_start_time: float,
            billing_period: float,
    ) -> None:
        self.uuid = vm_id
        self.type = vm_type
        self.billing_period = billing_period

        self.active = True
        self.state: State = State.LEASED

        # Used for calculating price based on billing periods.
        self.lease_start_time = lease_start_time
        self.lease_end_time: tp.Optional[float] = None

        # At this time VM is checked for being idle and released.
        self.next_release_check_time = lease_start_time + billing_period

        self.running_tasks: list[wfs.Task] = []
        self.completed_tasks: list[wfs.Task] = []

        # Time spent on executing tasks and waiting between them.
        self.total_active_time: float = 0.0
        self.total_idle_time: float = 0.0

        # Accrued by executed tasks.
        self.cost: float = 0.0
        self.energy: float = 0.0

    def __hash__(self):
        return hash(self.uuid)

    def __str__(self) -> str:
        return (f"<VM "
                f"uuid = {self.uuid}, "
                f"type = {self.type.name}, "
                f"lease_start_time = {self.lease_start_time}, "
                f"state = {self.state}, "
                f"running_tasks = {[t.id for t in self.running_tasks]}>")

    def __repr__(self) -> str:
        return (f"VM("
                f"uuid = {self.uuid}, "
                f"type = {self.type.name}, "
                f"lease_start_time = {self.lease_start_time})")

    def get_state(self) -> State:
        return self.state

    @property
    def ready_time(self) -> float:
        """Time when VM finishes booting."""

        return self.lease_start_time + self.type.boot_time

    @property
    def last_completion_time(self) -> float:
        """Completion time of the latest task assigned to VM or its
        ready time if there were no tasks.
        """

        return max(
            (task.completion_time
             for task in self.running_tasks + self.completed_tasks),
            default=self.ready_time,
        )

    def get_available_time(self) -> float:
        """Return time from which VM can start new task."""

        return max(self.ready_time, self.last_completion_time)

    def is_available(self, time: float) -> bool:
        return self.get_available_time() <= time

    def get_remaining_billing_time(self, time: float) -> float:
        """Return time left in billing period that includes `time`.

        :param time: virtual time.
        :return: remaining time in seconds.
        """

        return cst.time_until_next_billing_period(
            current_time=time,
            lease_start_time=self.lease_start_time,
            billing_period=self.billing_period,
        )

    def get_cost_for_duration(self, duration: float) -> float:
        return cst.calculate_price_for_duration(
            duration=duration,
            cost_per_hour=self.type.cost_per_hour,
        )

    def get_energy_for_duration(self, duration: float) -> float:
        return duration * self.type.energy_per_second

    def add_task(self, task: wfs.Task) -> None:
        """Register dispatched task as running on VM. Updates active and
        idle time, cost and energy.

        :param task: dispatched task.
        :return: None.
        """

        assert self.active
        assert task.vm_id == self.uuid

        # Idle gap between previous task (or boot) and current one.
        idle_time = task.start_time - self.last_completion_time
        if idle_time > 0:
            self.total_idle_time += idle_time

        self.total_active_time += task.execution_time
        self.cost += task.cost
        self.energy += task.energy

        self.running_tasks.append(task)
        self.state = State.SERVING

    def update_status(self, time: float) -> list[wfs.Task]:
        """Move tasks that have finished by `time` to completed.

        :param time: current virtual time.
        :return: list of tasks that have just finished.
        """

        just_completed = [task for task in self.running_tasks
                          if task.completion_time <= time]

        for task in just_completed:
            self.running_tasks.remove(task)
            self.completed_tasks.append(task)

        if self.active and just_completed and not self.running_tasks:
            self.state = State.IDLE

        return just_completed

    def advance_next_release_check_time(self) -> None:
        self.next_release_check_time += self.billing_period

    def release(self, time: float) -> None:
        """Finish lease of VM.

        :param time: time of release.
        :return: None.
        """

        assert self.active

        self.active = False
        self.lease_end_time = time
        self.state = State.RELEASED

    @property
    def lease_duration(self) -> float:
        if self.lease_end_time is None:
            return 0.0

        return max(0.0, self.lease_end_time - self.lease_start_time)

    def calculate_cost(self, time: tp.Optional[float] = None) -> float:
        """Calculate billed cost of lease, where every started billing
        period is paid in full. By default use `lease_end_time`.

        :param time: time until cost is calculated.
        :return: cost.
        """

        assert time is not None or self.lease_end_time is not None

        finish_time = time if time is not None else self.lease_end_time

        billing_periods = math.ceil(
            max(0.0, finish_time - self.lease_start_time)
            / self.billing_period
        )

        return (billing_periods
                * cst.price_per_second(self.type.cost_per_hour)
                * self.billing_period)

    def clamp_idle_time(self, simulation_duration: float) -> None:
        """Idle time can not exceed time when VM was not active."""

        limit = max(0.0, simulation_duration - self.total_active_time)
        if self.total_idle_time > limit:
            self.total_idle_time = limit
