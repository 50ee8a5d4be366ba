from .file import File
from .task import State, Task
from .instance import Workflow
from .parser import (
    DaxParser,
    PegasusTraceParser,
    TraceParser,
    WorkflowSetParser,
    is_dax_file,
)
