import wfsim.utils.task_execution_prediction as tep
import wfsim.workflows as wfs


class DeadlinePartitioner:
    """Converts global deadline of workflow into sub-deadlines of its
    tasks, so that every task can be placed independently.

    Earliest start times (EST) go forward from workflow arrival, latest
    completion times (LCT) go backward from workflow deadline. Spare
    time of workflow (deadline minus critical path) is distributed
    among tasks proportionally to their share of total estimated
    execution time.

    EST and LCT are memoized by task ID, so one partitioner should be
    used for one preprocessing of one workflow.
    """

    def __init__(self, workflow: wfs.Workflow) -> None:
        self.workflow = workflow

        self._ests: dict[str, float] = dict()
        self._lcts: dict[str, float] = dict()

    def partition(self) -> None:
        """Calculate EST, LCT and sub-deadline for every task of
        workflow. EST is required for all tasks before LCT and both
        before sub-deadlines.

        :return: None.
        """

        order = self.workflow.topological_order()

        for task in order:
            task.earliest_start_time = self.earliest_start_time(task)

        for task in reversed(order):
            task.latest_completion_time = self.latest_completion_time(task)

        for task in order:
            task.sub_deadline = self.sub_deadline(task)
            task.priority = task.earliest_start_time

    def workflow_slack(self) -> float:
        """Return spare time of workflow. It is never negative."""

        return max(
            0.0,
            self.workflow.deadline
            - self.workflow.arrival_time
            - self.workflow.critical_path_length(),
        )

    def earliest_start_time(self, task: wfs.Task) -> float:
        if task.id in self._ests:
            return self._ests[task.id]

        if not task.parents:
            est = self.workflow.arrival_time
        else:
            est = max(
                self.earliest_start_time(parent)
                + tep.estimated_execution_time(parent)
                + parent.transfer_time_to(task)
                for parent in task.parents
            )

        self._ests[task.id] = est
        return est

    def latest_completion_time(self, task: wfs.Task) -> float:
        if task.id in self._lcts:
            return self._lcts[task.id]

        if not task.children:
            lct = self.workflow.deadline
        else:
            lct = min(
                self.latest_completion_time(child)
                - tep.estimated_execution_time(child)
                - task.transfer_time_to(child)
                for child in task.children
            )

        self._lcts[task.id] = lct
        return lct

    def sub_deadline(self, task: wfs.Task) -> float:
        """Return sub-deadline of task. It is EST plus estimated
        execution time plus task's share of workflow spare time, but
        never later than LCT.

        :param task: task for calculation.
        :return: sub-deadline.
        """

        estimated = tep.estimated_execution_time(task)
        total = self.workflow.total_execution_time()
        weight = estimated / total if total > 0 else 0.0

        sub_deadline = (self.earliest_start_time(task)
                        + estimated
                        + self.workflow_slack() * weight)

        return min(sub_deadline, self.latest_completion_time(task))
