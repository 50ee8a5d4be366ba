import typing as tp
import uuid

import networkx as nx

from .task import Task


class Workflow:
    """Representation of a workflow model.
    Contains a list of Tasks and DAG of their dependencies. Structure
    of workflow should not be changed after submitting it to scheduler,
    because structural metrics are cached.
    """

    def __init__(
            self,
            name: str,
            arrival_time: float = 0.0,
            deadline: float = 0.0,
            description: str = "",
    ) -> None:
        self.uuid = str(uuid.uuid4())
        self.name = name
        self.description = description
        self.tasks: list[Task] = []

        # Map from task ID to task.
        self._tasks_by_id: dict[str, Task] = dict()

        # Simulation time when workflow is submitted.
        self.arrival_time = arrival_time

        # Absolute time by which all tasks should be completed.
        self.deadline = deadline

        # Directed Acyclic Graph over task IDs.
        self.dag: nx.DiGraph = nx.DiGraph()

        self._critical_path_length: tp.Optional[float] = None
        self._total_execution_time: tp.Optional[float] = None

    def __str__(self) -> str:
        return (f"<Workflow "
                f"uuid = {self.uuid}, "
                f"name = {self.name}, "
                f"arrival_time = {self.arrival_time}, "
                f"deadline = {self.deadline}, "
                f"tasks = {self.tasks}>")

    def __repr__(self) -> str:
        return (f"Workflow("
                f"name = {self.name}, "
                f"arrival_time = {self.arrival_time}, "
                f"deadline = {self.deadline})")

    def set_deadline(self, time: float) -> None:
        self.deadline = time

    def add_task(self, task: Task) -> None:
        assert task.id not in self._tasks_by_id

        task.workflow_uuid = self.uuid
        self.tasks.append(task)
        self._tasks_by_id[task.id] = task
        self.dag.add_node(task.id)

    def add_dependency(self, parent_id: str, child_id: str) -> None:
        """Add edge from parent to child.

        :param parent_id: ID of task that produces data.
        :param child_id: ID of task that depends on parent.
        :return: None.
        """

        parent = self.get_task(parent_id)
        child = self.get_task(child_id)

        child.add_parent(parent)
        self.dag.add_edge(parent_id, child_id)

    def get_task(self, task_id: str) -> Task:
        return self._tasks_by_id[task_id]

    def topological_order(self) -> list[Task]:
        """Return tasks so that every parent goes before its children."""

        return [self._tasks_by_id[task_id]
                for task_id in nx.topological_sort(self.dag)]

    @property
    def entry_task(self) -> tp.Optional[Task]:
        """First task without parents. It is a logical start of
        workflow.
        """

        for task in self.tasks:
            if not task.parents:
                return task

        return None

    @property
    def entry_tasks(self) -> list[Task]:
        return [task for task in self.tasks if not task.parents]

    @property
    def exit_tasks(self) -> list[Task]:
        return [task for task in self.tasks if not task.children]

    def _longest_path_to(self, task: Task, memo: dict[str, float]) -> float:
        if task.id in memo:
            return memo[task.id]

        longest_parent_path = max(
            (self._longest_path_to(parent, memo) for parent in task.parents),
            default=0.0,
        )
        memo[task.id] = task.mean_execution_time + longest_parent_path

        return memo[task.id]

    def critical_path_length(self) -> float:
        """Return length of the longest path (by mean execution time)
        from any entry task to any exit task. Calculated once.

        :return: critical path length in seconds.
        """

        if self._critical_path_length is not None:
            return self._critical_path_length

        memo: dict[str, float] = dict()

        # Filling memo in topological order keeps recursion shallow.
        for task in self.topological_order():
            self._longest_path_to(task, memo)

        self._critical_path_length = max(
            (self._longest_path_to(task, memo) for task in self.exit_tasks),
            default=0.0,
        )

        return self._critical_path_length

    def total_execution_time(self) -> float:
        """Return sum of estimated execution times (mean plus standard
        deviation) of all tasks. Calculated once.

        :return: total execution time in seconds.
        """

        if self._total_execution_time is None:
            self._total_execution_time = sum(
                task.estimated_execution_time for task in self.tasks
            )

        return self._total_execution_time

    def is_completed(self) -> bool:
        return all(task.completion_time > 0 for task in self.tasks)

    @property
    def finish_time(self) -> float:
        return max((task.completion_time for task in self.tasks),
                   default=0.0)

    @property
    def makespan(self) -> float:
        """Time between arrival and completion of the last task."""

        if not self.is_completed():
            return 0.0

        return self.finish_time - self.arrival_time

    def has_deadline_violation(self) -> bool:
        return self.finish_time > self.deadline
