from .partitioner import DeadlinePartitioner
from .scheduler import NOSFScheduler
