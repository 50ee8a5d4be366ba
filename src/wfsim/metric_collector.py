import typing as tp

import wfsim.workflows as wfs


class TaskStats:
    """Final state of a task."""

    def __init__(self, task: wfs.Task) -> None:
        self.id = task.id
        self.workflow_uuid = task.workflow_uuid
        self.vm_id: tp.Optional[str] = task.vm_id

        self.earliest_start_time = task.earliest_start_time
        self.latest_completion_time = task.latest_completion_time
        self.sub_deadline = task.sub_deadline

        self.start_time = task.start_time
        self.execution_time = task.execution_time
        self.completion_time = task.completion_time

        self.cost = task.cost
        self.energy = task.energy

        self.dispatched = task.is_dispatched()
        self.deadline_violated = (self.dispatched
                                  and task.has_deadline_violation())
        self.delay = task.delay() if self.dispatched else 0.0


class VMStats:
    """Final state of a VM instance. `vm` is duck-typed as `vms.VM`."""

    def __init__(self, vm: tp.Any) -> None:
        self.uuid: str = vm.uuid
        self.type_name: str = vm.type.name
        self.processing_capacity: float = vm.type.processing_capacity

        self.lease_start_time: float = vm.lease_start_time
        self.lease_end_time: tp.Optional[float] = vm.lease_end_time
        self.lease_duration: float = vm.lease_duration

        self.active_time: float = vm.total_active_time
        self.idle_time: float = vm.total_idle_time

        self.cost: float = vm.cost
        # Cost with every started billing period paid in full.
        self.billed_cost: float = (vm.calculate_cost()
                                   if vm.lease_end_time is not None
                                   else 0.0)
        self.energy: float = vm.energy

        self.executed_tasks: int = len(vm.completed_tasks)


class Stats:
    """Holds various statistics for workflow."""

    def __init__(self) -> None:
        self.name: str = ""

        # Arrival and finish time of workflow.
        self.arrival_time: float = 0.0
        self.finish_time: float = 0.0
        self.makespan: float = 0.0

        self.deadline: float = 0.0
        self.critical_path_length: float = 0.0

        # Cost and energy of workflow's tasks.
        self.cost: float = 0.0
        self.energy: float = 0.0

        self.tasks: list[TaskStats] = []
        # IDs of VMs that executed workflow's tasks.
        self.used_vms: set[str] = set()

        self.completed: bool = False

        # Flag if deadline was met.
        self.constraint_met: bool = False
        self.constraint_overflow: float = 0.0

    @classmethod
    def from_workflow(cls, workflow: wfs.Workflow) -> "Stats":
        stats = cls()
        stats.name = workflow.name
        stats.arrival_time = workflow.arrival_time
        stats.deadline = workflow.deadline
        stats.critical_path_length = workflow.critical_path_length()
        stats.completed = workflow.is_completed()
        stats.finish_time = workflow.finish_time
        stats.makespan = workflow.makespan

        for task in workflow.tasks:
            task_stats = TaskStats(task)
            stats.tasks.append(task_stats)
            stats.cost += task_stats.cost
            stats.energy += task_stats.energy

            if task_stats.vm_id is not None:
                stats.used_vms.add(task_stats.vm_id)

        return stats


class MetricCollector:
    """Collects various metrics from simulation. Its instance is passed
    as argument to important classes, so important and interesting
    information can be collected everywhere in simulation.
    """

    def __init__(self) -> None:
        # Scheduler name.
        self.scheduler_name: str = ""

        # Map from workflow UUID to Stats instance.
        self.workflows: dict[str, Stats] = dict()

        # Map from VM ID to its final stats. Filled on VM release.
        self.vms: dict[str, VMStats] = dict()

        # Total cost and energy of executing workload.
        self.cost: float = 0.0
        self.energy: float = 0.0
        # Total cost with billing periods paid in full.
        self.billed_cost: float = 0.0

        # Start and finish time of simulation.
        self.start_time: tp.Optional[float] = None
        self.finish_time: tp.Optional[float] = None

        # Number of new (initialized) VMs leased.
        self.initialized_vms: int = 0
        # Number of idle VMs removed by scheduler.
        self.removed_vms: int = 0
        # Number of VMs left active after simulation.
        self.vms_left: int = 0

        # Number of tasks in workload (all workflows).
        self.workflows_total_tasks: int = 0
        # Number of dispatched tasks.
        self.scheduled_tasks: int = 0
        # Number of failed placements (task was re-queued).
        self.deferred_tasks: int = 0
        # Number of placement attempts taken from ready queue after
        # failure.
        self.retried_placements: int = 0
        # Number of tasks placed ignoring sub-deadline after retries.
        self.forced_placements: int = 0
        # Number of finished tasks.
        self.finished_tasks: int = 0

        # Number of workflows that met their deadlines.
        self.constraints_met: int = 0

        # Simulation stopped with tasks that can never become ready.
        self.deadlock: bool = False

        # Aggregates calculated by `calculate_metrics`.
        self.deadline_violation_probability: float = 0.0
        # Total tasks' execution time to total VM lease time.
        self.resource_utilization: float = 0.0
        self.average_task_delay: float = 0.0
        self.average_vm_idle_time: float = 0.0
        self.total_data_transfer_time: float = 0.0

    def record_vm(self, vm: tp.Any) -> None:
        """Save final state of released VM.

        :param vm: released VM.
        :return: None.
        """

        self.vms[vm.uuid] = VMStats(vm)

    def record_workflow(self, workflow: wfs.Workflow) -> None:
        self.workflows[workflow.uuid] = Stats.from_workflow(workflow)
        self.total_data_transfer_time += sum(
            task.data_transfer_time for task in workflow.tasks
        )

    def parse_constraints(self) -> None:
        """Calculate how many deadlines were met in workload.

        :return: None.
        """

        self.constraints_met = 0

        for _, stats in self.workflows.items():
            constraint_met = (stats.completed
                              and stats.finish_time <= stats.deadline)

            self.constraints_met += constraint_met
            stats.constraint_met = constraint_met

            if not constraint_met and stats.completed:
                extra_time = stats.finish_time - stats.deadline
                available_time = stats.deadline - stats.arrival_time
                stats.constraint_overflow = (extra_time / available_time
                                             if available_time > 0
                                             else float("inf"))

    def calculate_metrics(self) -> None:
        """Calculate simulation-wide aggregates from recorded workflows
        and VMs.

        :return: None.
        """

        self.parse_constraints()

        tasks = [task_stats
                 for stats in self.workflows.values()
                 for task_stats in stats.tasks]
        dispatched = [t for t in tasks if t.dispatched]

        self.cost = sum(stats.cost for stats in self.workflows.values())
        self.energy = sum(stats.energy for stats in self.workflows.values())
        self.billed_cost = sum(v.billed_cost for v in self.vms.values())

        if self.workflows:
            violated = len(self.workflows) - self.constraints_met
            self.deadline_violation_probability = (violated
                                                   / len(self.workflows))

        total_execution_time = sum(t.execution_time for t in dispatched)
        total_lease_time = sum(v.lease_duration for v in self.vms.values())
        if total_lease_time > 0:
            self.resource_utilization = (total_execution_time
                                         / total_lease_time)

        if dispatched:
            self.average_task_delay = (sum(t.delay for t in dispatched)
                                       / len(dispatched))

        if self.vms:
            self.average_vm_idle_time = (
                sum(v.idle_time for v in self.vms.values()) / len(self.vms)
            )
