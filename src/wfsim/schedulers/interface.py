from abc import ABC, abstractmethod
import random
import typing as tp

import wfsim.config as config
import wfsim.metric_collector as mc
import wfsim.schedulers as sch
import wfsim.vms as vms
import wfsim.workflows as wfs


class SchedulerInterface(ABC):
    """Interface for implementing scheduling algorithms. Scheduler owns
    simulation context: settings, VM manager, event loop and source of
    randomness.
    """

    def __init__(
            self,
            settings: config.Settings,
            vm_types: list[vms.VMType],
            rng: tp.Optional[random.Random] = None,
    ) -> None:
        settings.validate()

        self.settings: config.Settings = settings

        if rng is None:
            rng = random.Random(settings.seed)

        self.vm_manager: vms.Manager = vms.Manager(
            settings=settings,
            vm_types=vm_types,
            rng=rng,
        )

        # Map from workflow UUID to workflow instance.
        self.workflows: dict[str, wfs.Workflow] = dict()

        # Collector for metrics. Can be replaced by simulator.
        self.collector: mc.MetricCollector = mc.MetricCollector()
        self.vm_manager.set_metric_collector(collector=self.collector)

        self.event_loop: sch.EventLoop = sch.EventLoop()

        self.name = ""

    def run_event_loop(self) -> None:
        self.event_loop.run(scheduler=self)

    def set_metric_collector(self, collector: mc.MetricCollector) -> None:
        self.collector = collector
        self.collector.scheduler_name = self.name
        self.vm_manager.set_metric_collector(collector=collector)

    def has_pending_work(self) -> bool:
        """Return True if some submitted workflow has tasks that were
        not dispatched.
        """

        return any(not workflow.is_completed()
                   for workflow in self.workflows.values())

    @abstractmethod
    def submit_workflow(self, workflow: wfs.Workflow) -> None:
        """This method can be used for any preprocessing required by
        algorithm. Workflow should be saved to `workflows` and its
        ready tasks should be put to event loop.

        :param workflow: workflow for saving and preprocessing.
        :return: None.
        """

        pass

    @abstractmethod
    def schedule_task(self, task: wfs.Task) -> None:
        """This method should be used for scheduling every ready task
        according to algorithm's policy. It is called each time when
        task is taken from ready queue.

        :param task: task to schedule.
        :return: None.
        """

        pass

    @abstractmethod
    def finish_task(self, task: wfs.Task) -> None:
        """This method is called each time when simulation clock reaches
        completion time of dispatched task. It can be used for any
        postprocessing required by algorithm.

        :param task: task that has finished.
        :return: None.
        """

        pass

    @abstractmethod
    def manage_resources(self) -> None:
        """This method is called after every clock advance. It can be
        used for any manipulations with cloud resources.

        :return: None.
        """

        pass

    @abstractmethod
    def finish_simulation(self) -> None:
        """This method is called when event loop is over and all VMs are
        released. It can be used for collecting final metrics.

        :return: None.
        """

        pass
