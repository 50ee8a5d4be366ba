import heapq as hq
import itertools
import typing as tp

from loguru import logger

from .event import Event, EventType
from .interface import SchedulerInterface


class EventLoop:
    """Implementation of event loop.
    Works over standard heapq package. Holds ready queue and simulation
    clock, which only moves forward.
    """

    def __init__(self) -> None:
        self.event_queue: list[Event] = []
        hq.heapify(self.event_queue)

        self.current_time: float = 0.0

        self._counter = itertools.count()

    def add_event(self, event: Event) -> None:
        event.order = next(self._counter)
        hq.heappush(self.event_queue, event)

    def peek_closest_event(self) -> tp.Optional[Event]:
        if not len(self.event_queue):
            return None

        return self.event_queue[0]

    def get_current_time(self) -> float:
        return self.current_time

    def advance_time(self, scheduler: SchedulerInterface, time: float) -> None:
        """Move clock to given time, process tasks finished by that
        time and let scheduler manage resources.

        :param scheduler: scheduler of simulation.
        :param time: new virtual time.
        :return: None.
        """

        assert time >= self.current_time

        self.current_time = time

        finished = scheduler.vm_manager.update_vms_and_get_completed_tasks(
            time=time,
        )
        for task in finished:
            scheduler.collector.finished_tasks += 1
            scheduler.finish_task(task=task)

        scheduler.manage_resources()

    @staticmethod
    def _process_event(scheduler: SchedulerInterface, event: Event) -> None:
        if event.type == EventType.SUBMIT_WORKFLOW:
            assert event.workflow is not None
            scheduler.submit_workflow(workflow=event.workflow)
            return

        assert event.task is not None

        if event.type == EventType.RETRY_TASK:
            scheduler.collector.retried_placements += 1
            logger.debug(f"Retrying placement of task {event.task.id}, "
                         f"attempt {event.task.dispatch_retries + 1}")

        scheduler.schedule_task(task=event.task)

    def run(self, scheduler: SchedulerInterface) -> None:
        # Set start time of simulation in metric collector.
        if scheduler.collector.start_time is None:
            scheduler.collector.start_time = self.current_time

        while True:
            event = self.peek_closest_event()

            if event is not None and event.start_time <= self.current_time:
                hq.heappop(self.event_queue)
                self._process_event(scheduler, event)
                continue

            # Clock lags behind earliest event or running tasks.
            next_times = [event.start_time] if event is not None else []

            next_completion = scheduler.vm_manager.get_next_completion_time(
                time=self.current_time,
            )
            if next_completion is not None:
                next_times.append(next_completion)

            if not next_times:
                break

            # Stop at billing checkpoints on the way, so idle VMs are
            # released in time.
            next_check = scheduler.vm_manager.get_next_release_check_time()
            if next_check is not None and next_check > self.current_time:
                next_times.append(next_check)

            self.advance_time(scheduler, min(next_times))

        if scheduler.has_pending_work():
            logger.error(f"Simulation is stuck at time "
                         f"{self.current_time:.2f}: no ready tasks and "
                         f"nothing is running, but workflows are not "
                         f"completed")
            scheduler.collector.deadlock = True

        # No events left, so shutdown all VMs to calculate total cost.
        scheduler.vm_manager.shutdown_vms(time=self.current_time)

        # Set finish time of simulation.
        scheduler.collector.finish_time = self.current_time

        scheduler.finish_simulation()
