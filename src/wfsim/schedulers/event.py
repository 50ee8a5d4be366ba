import enum
import typing as tp

import wfsim.workflows as wfs


class EventType(enum.Enum):
    # Workflow arrives and is preprocessed by scheduler.
    SUBMIT_WORKFLOW = enum.auto()
    # Task became ready after workflow submission or feedback.
    SCHEDULE_TASK = enum.auto()
    # Task was not placed and is tried again later.
    RETRY_TASK = enum.auto()


class Event:
    """Represent objects for ready queue of event loop. Events are
    ordered by start time, ties are broken by insertion order.
    """

    def __init__(
            self,
            start_time: float,
            event_type: EventType,
            **kwargs: tp.Any,
    ) -> None:
        self.start_time = start_time
        self.type: EventType = event_type

        self.workflow: tp.Optional[wfs.Workflow] = kwargs.get("workflow", None)
        self.task: tp.Optional[wfs.Task] = kwargs.get("task", None)

        # Set by event loop when event is added.
        self.order: int = 0

    def __lt__(self, other: "Event") -> bool:
        return (self.start_time, self.order) < (other.start_time, other.order)

    def __str__(self) -> str:
        return (f"<Event "
                f"start_time = {self.start_time}, "
                f"type = {self.type}, "
                f"workflow = {self.workflow}, "
                f"task = {self.task}>")

    def __repr__(self) -> str:
        return (f"Event("
                f"start_time = {self.start_time}, "
                f"event_type = {self.type})")
