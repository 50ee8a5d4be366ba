import random
import typing as tp

from loguru import logger

import wfsim.config as config
import wfsim.utils.task_execution_prediction as tep
import wfsim.vms as vms
import wfsim.workflows as wfs

from ..event import Event, EventType
from ..interface import SchedulerInterface
from .partitioner import DeadlinePartitioner


class NOSFScheduler(SchedulerInterface):
    """Deadline-constrained cost and energy aware scheduler.

    Workflow deadline is partitioned into sub-deadlines of tasks. Every
    ready task is placed on active VM with minimal cost growth that
    meets its sub-deadline, otherwise new VM of the cheapest suitable
    type is leased. When task finishes, its children get real earliest
    start times and keep allocated slack (feedback processing).
    """

    def __init__(
            self,
            settings: config.Settings,
            vm_types: list[vms.VMType],
            rng: tp.Optional[random.Random] = None,
    ) -> None:
        super().__init__(settings=settings, vm_types=vm_types, rng=rng)

        self.name = "NOSF"

    def submit_workflow(self, workflow: wfs.Workflow) -> None:
        logger.debug(f"Got new workflow {workflow.uuid} {workflow.name}")

        self.workflows[workflow.uuid] = workflow

        # Preprocess.
        DeadlinePartitioner(workflow=workflow).partition()

        logger.debug(f"Workflow {workflow.name}: arrival time "
                     f"{workflow.arrival_time:.2f}, deadline "
                     f"{workflow.deadline:.2f}, critical path "
                     f"{workflow.critical_path_length():.2f}")

        # IMPORTANT: tasks are not sorted here because they will be
        #   automatically sorted in event loop.
        for task in workflow.tasks:
            if task.is_ready():
                self._enqueue(task=task, event_type=EventType.SCHEDULE_TASK)

        # Save info to metric collector.
        self.collector.workflows_total_tasks += len(workflow.tasks)

    def _enqueue(self, task: wfs.Task, event_type: EventType) -> None:
        task.priority = task.earliest_start_time
        task.mark_queued()

        self.event_loop.add_event(event=Event(
            start_time=task.priority,
            event_type=event_type,
            task=task,
        ))

    def schedule_task(self, task: wfs.Task) -> None:
        """Place task according to NOSF policy. If no VM can be found,
        task is returned to ready queue with postponed start.

        :param task: task to schedule.
        :return: None.
        """

        current_time = self.event_loop.get_current_time()

        vm = self.vm_manager.find_or_create_vm(task=task, time=current_time)

        retries_exhausted = (task.dispatch_retries
                             >= self.settings.max_dispatch_retries)

        if vm is None and retries_exhausted:
            # Placement failed too many times, so sub-deadline is
            # sacrificed.
            vm = self.vm_manager.find_earliest_available_vm(
                task=task,
                time=current_time,
            )

            if vm is not None:
                logger.warning(f"Task {task.id} placed on VM {vm.uuid} "
                               f"ignoring its sub-deadline after "
                               f"{task.dispatch_retries} retries")
                self.collector.forced_placements += 1

        if vm is None:
            task.dispatch_retries += 1
            task.earliest_start_time = (max(task.earliest_start_time,
                                            current_time)
                                        + self.settings.requeue_delay)

            logger.info(f"No VM available for task {task.id}, retry at "
                        f"{task.earliest_start_time:.2f}")

            self.collector.deferred_tasks += 1
            self._enqueue(task=task, event_type=EventType.RETRY_TASK)
            return

        self._dispatch(task=task, vm=vm, time=current_time)

    def _dispatch(self, task: wfs.Task, vm: vms.VM, time: float) -> None:
        start_time = self.vm_manager.calculate_predicted_start_time(
            task=task,
            vm=vm,
            time=time,
        )
        execution_time = self.vm_manager.calculate_predicted_execution_time(
            task=task,
            vm_type=vm.type,
        )

        task.mark_dispatched(
            vm_id=vm.uuid,
            start_time=start_time,
            execution_time=execution_time,
            cost=vm.get_cost_for_duration(execution_time),
            energy=vm.get_energy_for_duration(execution_time),
        )
        vm.add_task(task=task)

        logger.info(f"Scheduled task {task.id} on VM {vm.uuid}: "
                    f"start = {task.start_time:.2f}, "
                    f"end = {task.completion_time:.2f}, "
                    f"execution = {task.execution_time:.2f}, "
                    f"sub-deadline = {task.sub_deadline:.2f}, "
                    f"cost = ${task.cost:.4f}, "
                    f"energy = {task.energy:.2f} Ws")

        self.collector.scheduled_tasks += 1

    def finish_task(self, task: wfs.Task) -> None:
        """Mark task as finished and update timing of its children that
        became ready.

        :param task: task that has finished.
        :return: None.
        """

        current_time = self.event_loop.get_current_time()
        task.mark_finished(time=current_time)

        logger.debug(f"Task {task.id} finished at "
                     f"{task.completion_time:.2f}")

        for child in task.children:
            # Child is already queued or dispatched.
            if child.state != wfs.State.CREATED:
                continue

            if not child.is_ready():
                continue

            self._update_child_timing(child=child)
            self._enqueue(task=child, event_type=EventType.SCHEDULE_TASK)

    @staticmethod
    def _update_child_timing(child: wfs.Task) -> None:
        """Replace estimated EST of child with real one and keep the
        slack allocated during preprocessing. Sub-deadline never
        exceeds LCT.

        :param child: task which parents have all been dispatched.
        :return: None.
        """

        new_est = max(parent.completion_time + parent.transfer_time_to(child)
                      for parent in child.parents)

        allocated_duration = (child.sub_deadline
                              - (child.earliest_start_time
                                 - tep.estimated_execution_time(child)))

        child.earliest_start_time = new_est
        child.sub_deadline = min(new_est + allocated_duration,
                                 child.latest_completion_time)

    def manage_resources(self) -> None:
        """Release VMs that are idle at their billing period boundary.

        :return: None.
        """

        self.vm_manager.check_idle_vms(
            time=self.event_loop.get_current_time(),
        )

    def finish_simulation(self) -> None:
        for workflow in self.workflows.values():
            self.collector.record_workflow(workflow)

        self.collector.calculate_metrics()
