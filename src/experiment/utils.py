import pathlib
import typing as tp

import wfsim.config as wfsim_config
import wfsim.workflows as wfs


# Map from file suffix to parser of workflow traces. XML files holding
# sets of workflows instead of DAX are recognised by their root element.
PARSERS: dict[str, tp.Type[wfs.TraceParser]] = {
    ".json": wfs.PegasusTraceParser,
    ".xml": wfs.DaxParser,
    ".dax": wfs.DaxParser,
}


def parse_workflow_file(
        path: str,
        bandwidth_mbps: float,
        arrival_time: float = 0.0,
        variance_factor: float = 0.0,
) -> list[wfs.Workflow]:
    """Parse workflows from file with parser chosen by file suffix.
    Traces hold one workflow, which arrives at `arrival_time`. Workflow
    sets keep their own arrival times, deadlines and variances.

    :param path: path to file.
    :param bandwidth_mbps: network bandwidth for transfer times.
    :param arrival_time: time of trace submission.
    :param variance_factor: ratio of runtime standard deviation to mean.
    :return: parsed workflows.
    """

    suffix = pathlib.Path(path).suffix.lower()

    if suffix not in PARSERS:
        raise ValueError(
            f"Unknown workflow format {suffix!r} of {path}.\n"
            f"Possible values = {list(PARSERS.keys())}\n"
        )

    if suffix == ".xml" and not wfs.is_dax_file(path):
        return wfs.WorkflowSetParser(filename=path).get_workflows()

    parser = PARSERS[suffix](
        filename=path,
        bandwidth_mbps=bandwidth_mbps,
        arrival_time=arrival_time,
        variance_factor=variance_factor,
    )

    return [parser.get_workflow()]


def parse_workflows(
        paths: list[str],
        settings: wfsim_config.Settings,
        arrival_interval: float = 0.0,
        variance_factor: float = 0.0,
) -> list[wfs.Workflow]:
    """Parse workflows in given order. File number `i` arrives at
    `i * arrival_interval` if it is a single trace.

    :param paths: paths to workflow files.
    :param settings: simulation settings (for bandwidth).
    :param arrival_interval: time between consecutive arrivals.
    :param variance_factor: ratio of runtime standard deviation to mean.
    :return: list of workflows.
    """

    if arrival_interval < 0:
        raise ValueError(f"Arrival interval should be non-negative, "
                         f"got {arrival_interval}")

    workflows: list[wfs.Workflow] = []
    for i, path in enumerate(paths):
        workflows.extend(parse_workflow_file(
            path=path,
            bandwidth_mbps=settings.bandwidth_mbps,
            arrival_time=i * arrival_interval,
            variance_factor=variance_factor,
        ))

    return workflows


def set_deadlines(workflows: list[wfs.Workflow], factor: float) -> None:
    """Set deadline of every workflow as its arrival time plus critical
    path length multiplied by `factor`. Workflows which already have
    deadline (from workflow set files) are kept as is.

    :param workflows: workflows for setting deadlines.
    :param factor: critical path multiplier.
    :return: None.
    """

    if factor <= 0:
        raise ValueError(f"Deadline factor should be positive, got {factor}")

    for workflow in workflows:
        if workflow.deadline > 0:
            continue

        workflow.set_deadline(
            time=(workflow.arrival_time
                  + factor * workflow.critical_path_length())
        )
