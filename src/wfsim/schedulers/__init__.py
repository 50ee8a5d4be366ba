from .event import Event, EventType
from .event_loop import EventLoop
from .interface import SchedulerInterface

from .nosf import DeadlinePartitioner, NOSFScheduler
