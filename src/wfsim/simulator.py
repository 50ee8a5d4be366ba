import sys
import typing as tp

from loguru import logger

import wfsim.config as config
import wfsim.metric_collector as mc
import wfsim.schedulers as sch
import wfsim.workflows as wfs


class Simulator:
    """Main holder of simulation. Accepts workflows and passes them to
    scheduler, which owns virtual clock.
    """

    def __init__(
            self,
            scheduler: sch.SchedulerInterface,
            logger_flag: bool = False,
            log_dir: tp.Optional[str] = None,
            stdout_level: str = "INFO",
    ) -> None:
        self.scheduler: sch.SchedulerInterface = scheduler
        self.workflows: dict[str, wfs.Workflow] = dict()

        if logger_flag:
            self._init_logger(
                log_dir=log_dir or config.LOGS_DIR,
                stdout_level=stdout_level,
            )

        # Collector for metrics.
        self.collector: mc.MetricCollector = mc.MetricCollector()

        self.scheduler.set_metric_collector(collector=self.collector)

    @staticmethod
    def _init_logger(log_dir: str, stdout_level: str) -> None:
        iter_num = config.ITER_NUMBER

        logger.remove()

        logger.add(
            sink=sys.stdout,
            level=stdout_level,
        )

        logger.add(
            sink=log_dir + "/info/info-{:03d}.txt".format(iter_num),
            level="INFO",
            rotation="50MB",
        )

        logger.add(
            sink=log_dir + "/debug/debug-{:03d}.txt".format(iter_num),
            level="DEBUG",
            rotation="50MB",
        )

    def submit_workflow(self, workflow: wfs.Workflow) -> None:
        """Put workflow to event loop. Scheduler receives it when
        simulation clock reaches its arrival time.

        :param workflow: workflow with arrival time and deadline set.
        :return: None.
        """

        if workflow.deadline - workflow.arrival_time < (
                workflow.critical_path_length()):
            logger.warning(f"Workflow {workflow.name} has deadline "
                           f"{workflow.deadline:.2f} shorter than its "
                           f"critical path, it may be violated")

        self.workflows[workflow.uuid] = workflow
        self.scheduler.event_loop.add_event(event=sch.Event(
            start_time=workflow.arrival_time,
            event_type=sch.EventType.SUBMIT_WORKFLOW,
            workflow=workflow,
        ))

    def run_simulation(self) -> None:
        self.scheduler.run_event_loop()

    def get_metric_collector(self) -> mc.MetricCollector:
        return self.collector
