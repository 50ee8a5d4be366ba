import enum
import math
import typing as tp


class State(enum.Enum):
    CREATED = enum.auto()
    QUEUED = enum.auto()
    DISPATCHED = enum.auto()
    FINISHED = enum.auto()


class Task:
    """Representation of a task entity. Static attributes are set when
    workflow is loaded, scheduling attributes are filled during
    preprocessing, feedback and dispatch.
    """

    def __init__(
            self,
            workflow_uuid: str,
            task_id: str,
            mean_execution_time: float,
            variance_execution_time: float = 0.0,
            data_transfer_time: float = 0.0,
    ) -> None:
        # UUID of workflow that holds task
        self.workflow_uuid = workflow_uuid
        # Task ID in workflow
        self.id = task_id

        # Runtime statistics. Measure in seconds (seconds^2 for variance).
        self.mean_execution_time = mean_execution_time
        self.variance_execution_time = variance_execution_time

        # Time to send task's output to a child. Used for every child
        # unless overridden in `transfer_times`.
        self.data_transfer_time = data_transfer_time
        # Map from child task ID to its specific transfer time.
        self.transfer_times: dict[str, float] = dict()

        # Lists of parents and children as `Task` objects. They are
        # shared within workflow.
        self.parents: list[Task] = []
        self.children: list[Task] = []

        # Current state of task.
        self.state: State = State.CREATED

        # Timing derived from workflow deadline.
        self.earliest_start_time: float = 0.0
        self.latest_completion_time: float = 0.0
        self.sub_deadline: float = 0.0

        # Key for ready queue.
        self.priority: float = 0.0

        # Number of failed attempts to find VM for task.
        self.dispatch_retries: int = 0

        # Set once on dispatch. VM is referenced by its ID only.
        self.vm_id: tp.Optional[str] = None
        self.start_time: float = 0.0
        self.execution_time: float = 0.0
        self.completion_time: float = 0.0
        self.cost: float = 0.0
        self.energy: float = 0.0

        # Time when simulation noticed that task had finished.
        self.finish_time: tp.Optional[float] = None

    def __str__(self) -> str:
        return (f"<Task "
                f"workflow_uuid = {self.workflow_uuid}, "
                f"id = {self.id}, "
                f"mean_execution_time = {self.mean_execution_time}, "
                f"sub_deadline = {self.sub_deadline}, "
                f"vm_id = {self.vm_id}, "
                f"state = {self.state}>")

    def __repr__(self) -> str:
        return (f"Task("
                f"workflow_uuid = {self.workflow_uuid}, "
                f"id = {self.id}, "
                f"parents = {[p.id for p in self.parents]})")

    @property
    def estimated_execution_time(self) -> float:
        """Mean execution time with one standard deviation of safety
        margin.
        """

        return self.mean_execution_time + math.sqrt(
            self.variance_execution_time
        )

    def add_parent(self, parent: "Task") -> None:
        assert parent is not self
        assert parent not in self.parents

        self.parents.append(parent)
        parent.children.append(self)

    def transfer_time_to(self, child: "Task") -> float:
        """Return time for moving task's output to given child.

        :param child: task that consumes output.
        :return: transfer time in seconds.
        """

        return self.transfer_times.get(child.id, self.data_transfer_time)

    def is_ready(self) -> bool:
        """Task is ready when every parent was dispatched, i.e. got its
        completion time.

        :return: True if ready, False otherwise.
        """

        return all(parent.completion_time > 0 for parent in self.parents)

    def is_dispatched(self) -> bool:
        return self.state in [State.DISPATCHED, State.FINISHED]

    def has_deadline_violation(self) -> bool:
        return self.completion_time > self.sub_deadline

    def delay(self) -> float:
        """Return how late task finished relative to its sub-deadline."""

        return max(0.0, self.completion_time - self.sub_deadline)

    def mark_queued(self) -> None:
        assert self.state in [State.CREATED, State.QUEUED]

        self.state = State.QUEUED

    def mark_dispatched(
            self,
            vm_id: str,
            start_time: float,
            execution_time: float,
            cost: float,
            energy: float,
    ) -> None:
        """Save placement of task. Can be done only once.

        :param vm_id: ID of VM that hosts task.
        :param start_time: time when task starts on VM.
        :param execution_time: time of execution on VM.
        :param cost: cost of execution.
        :param energy: energy consumed by execution.
        :return: None.
        """

        assert self.state == State.QUEUED
        assert self.vm_id is None

        self.state = State.DISPATCHED
        self.vm_id = vm_id
        self.start_time = start_time
        self.execution_time = execution_time
        self.completion_time = start_time + execution_time
        self.cost = cost
        self.energy = energy

    def mark_finished(self, time: float) -> None:
        """Mark current task as finished.

        :param time: time when task was finished
        :return: None.
        """

        assert self.state == State.DISPATCHED

        self.state = State.FINISHED
        self.finish_time = time
