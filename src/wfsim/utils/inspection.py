from collections import defaultdict
import typing as tp

import networkx as nx

import wfsim.config as config
import wfsim.utils.cost as cst
import wfsim.utils.task_execution_prediction as tep
import wfsim.vms as vms
import wfsim.workflows as wfs


class InspectedWorkflow:
    def __init__(self, workflow: wfs.Workflow) -> None:
        self.workflow: wfs.Workflow = workflow

        # Critical path by mean execution time.
        self.critical_path_length: float = 0.0  # in seconds

        # Total execution time of workflow on unlimited number of
        # slowest and fastest VMs (including boot time).
        self.exec_time_slowest_vm: float = 0.0  # in seconds
        self.exec_time_fastest_vm: float = 0.0  # in seconds

        # Total execution cost on slowest and fastest VM types, one VM
        # per task.
        self.exec_cost_slowest_vm: float = 0.0
        self.exec_cost_fastest_vm: float = 0.0

        # Number of levels in DAG.
        self.levels: int = 0
        # Map from level to number of tasks on it.
        self.levels_tasks: dict[int, int] = dict()

        # Sum of default data transfer times of tasks.
        self.total_transfer_time: float = 0.0  # in seconds


def calculate_exec_time_and_cost(
        workflow: wfs.Workflow,
        vm_type: vms.VMType,
        settings: config.Settings,
) -> tp.Tuple[float, float]:
    """Calculate total workflow's execution time on a given VM type.

    :param workflow: workflow for calculations.
    :param vm_type: VM type where tasks should be executed.
    :param settings: simulation settings.
    :return: total execution time and cost.
    """

    # Map from task ID to its EFT.
    efts: dict[str, float] = dict()
    makespan: float = 0.0
    cost: float = 0.0

    for task in workflow.topological_order():
        max_parent_eft = max(
            (efts[p.id] + p.transfer_time_to(task) for p in task.parents),
            default=0.0,
        )

        task_exec_time = vm_type.boot_time + tep.expected_execution_time(
            task=task,
            processing_capacity=vm_type.processing_capacity,
            normalization_factor=settings.normalization_factor,
        )

        cost += cst.estimate_price_for_vm_type(
            use_time=task_exec_time,
            cost_per_hour=vm_type.cost_per_hour,
            billing_period=settings.billing_period,
        )

        efts[task.id] = max_parent_eft + task_exec_time

        if efts[task.id] > makespan:
            makespan = efts[task.id]

    return makespan, cost


def parse_dag_levels(workflow: wfs.Workflow) -> tp.Tuple[int, dict[int, int]]:
    """Parse DAG of workflow and return number of levels with number
    of tasks on each level. Level of task is the length of the longest
    path from any entry task.

    :param workflow: workflow to parse.
    :return: tuple[levels, map from level to number of tasks on it].
    """

    # Map from task ID to its level.
    task_levels: dict[str, int] = dict()

    for task_id in nx.topological_sort(workflow.dag):
        task_levels[task_id] = max(
            (task_levels[p] + 1 for p in workflow.dag.predecessors(task_id)),
            default=0,
        )

    levels_tasks: dict[int, int] = defaultdict(int)
    for level in task_levels.values():
        levels_tasks[level] += 1

    return len(levels_tasks), dict(levels_tasks)


def inspect_workflow(
        workflow: wfs.Workflow,
        settings: config.Settings,
        vm_types: list[vms.VMType],
        inspect_levels: bool = True,
) -> InspectedWorkflow:
    """Inspect inner structure of given workflow.

    :param workflow: workflow to inspect.
    :param settings: simulation settings.
    :param vm_types: catalog of VM types.
    :param inspect_levels: flag for parsing levels.
    :return: inspected workflow.
    """

    inspected = InspectedWorkflow(workflow=workflow)
    vm_manager = vms.Manager(settings=settings, vm_types=vm_types)

    inspected.critical_path_length = workflow.critical_path_length()

    makespan, cost = calculate_exec_time_and_cost(
        workflow=workflow,
        vm_type=vm_manager.get_slowest_vm_type(),
        settings=settings,
    )
    inspected.exec_time_slowest_vm = makespan
    inspected.exec_cost_slowest_vm = cost

    makespan, cost = calculate_exec_time_and_cost(
        workflow=workflow,
        vm_type=vm_manager.get_fastest_vm_type(),
        settings=settings,
    )
    inspected.exec_time_fastest_vm = makespan
    inspected.exec_cost_fastest_vm = cost

    if inspect_levels:
        levels, levels_tasks = parse_dag_levels(workflow=workflow)
        inspected.levels = levels
        inspected.levels_tasks = levels_tasks

    inspected.total_transfer_time = sum(task.data_transfer_time
                                        for task in workflow.tasks)

    return inspected
