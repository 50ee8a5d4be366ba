import argparse
import typing as tp

from loguru import logger

import experiment.config as config
import experiment.utils as utils
import wfsim as sm
import wfsim.schedulers as sch
import wfsim.utils.inspection as ins
import wfsim.vms as vms


def parse_args(argv: tp.Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wfsim",
        description="Simulate deadline-constrained scheduling of "
                    "workflows on leased VMs with NOSF algorithm.",
    )

    parser.add_argument(
        "workflows",
        metavar="WORKFLOW",
        nargs="+",
        help="workflow trace: Pegasus json (.json) or DAX (.xml, .dax), "
             "or xml set of workflows with own arrivals and deadlines",
    )
    parser.add_argument(
        "--config",
        default=config.DEFAULT_CONFIG,
        help="json file with `simulation` and `vms` sections",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="seed for execution time jitter (overrides config)",
    )
    parser.add_argument(
        "--deadline-factor",
        type=float,
        default=config.DEADLINE_FACTOR,
        help="deadline = arrival + factor * critical path length",
    )
    parser.add_argument(
        "--arrival-interval",
        type=float,
        default=config.ARRIVAL_INTERVAL,
        help="seconds between arrivals of consecutive workflows",
    )
    parser.add_argument(
        "--variance-factor",
        type=float,
        default=config.VARIANCE_FACTOR,
        help="ratio of task runtime standard deviation to its mean",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="directory for info and debug logs",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="print debug messages to stdout",
    )

    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> sm.MetricCollector:
    """Load configuration and workflows, run one simulation.

    :param args: parsed command line arguments.
    :return: metric collector of finished simulation.
    """

    settings = sm.load_settings(args.config)
    if args.seed is not None:
        settings.seed = args.seed

    vm_types = vms.load_vm_types(args.config)

    workflows = utils.parse_workflows(
        paths=args.workflows,
        settings=settings,
        arrival_interval=args.arrival_interval,
        variance_factor=args.variance_factor,
    )
    utils.set_deadlines(workflows=workflows, factor=args.deadline_factor)

    scheduler = sch.NOSFScheduler(settings=settings, vm_types=vm_types)
    simulator = sm.Simulator(
        scheduler=scheduler,
        logger_flag=True,
        log_dir=args.log_dir,
        stdout_level="DEBUG" if args.verbose else "INFO",
    )

    for workflow in workflows:
        inspected = ins.inspect_workflow(
            workflow=workflow,
            settings=settings,
            vm_types=vm_types,
        )
        logger.info(
            f"Workflow {workflow.name}: "
            f"tasks = {len(workflow.tasks)}, "
            f"levels = {inspected.levels}, "
            f"critical path = {inspected.critical_path_length:.2f}, "
            f"exec time on fastest VM = "
            f"{inspected.exec_time_fastest_vm:.2f}, "
            f"exec time on slowest VM = "
            f"{inspected.exec_time_slowest_vm:.2f}, "
            f"arrival = {workflow.arrival_time:.2f}, "
            f"deadline = {workflow.deadline:.2f}"
        )

        simulator.submit_workflow(workflow=workflow)

    simulator.run_simulation()

    return simulator.get_metric_collector()


def report(stats: sm.MetricCollector) -> None:
    # Print splitter for convenience.
    splitter = "=" * 79 + "\n"
    logger.opt(raw=True).info(splitter)

    for _, workflow_stats in stats.workflows.items():
        logger.info(
            f"Workflow name = {workflow_stats.name}\n"
            f"Arrival time = {workflow_stats.arrival_time:.2f}\n"
            f"Deadline = {workflow_stats.deadline:.2f}\n"
            f"Finish time = {workflow_stats.finish_time:.2f}\n"
            f"Makespan = {workflow_stats.makespan:.2f}\n"
            f"Deadline met = {workflow_stats.constraint_met}\n"
            f"Deadline overflow = {workflow_stats.constraint_overflow:.4f}\n"
            f"Cost = ${workflow_stats.cost:.4f}\n"
            f"Energy = {workflow_stats.energy:.2f} Ws\n"
            f"Used VMs = {len(workflow_stats.used_vms)}\n"
        )

    for vm_id, vm_stats in sorted(stats.vms.items()):
        logger.info(
            f"VM {vm_id} ({vm_stats.type_name}): "
            f"lease = [{vm_stats.lease_start_time:.2f}, "
            f"{vm_stats.lease_end_time:.2f}], "
            f"tasks = {vm_stats.executed_tasks}, "
            f"active = {vm_stats.active_time:.2f}, "
            f"idle = {vm_stats.idle_time:.2f}, "
            f"cost = ${vm_stats.cost:.4f}, "
            f"billed = ${vm_stats.billed_cost:.4f}, "
            f"energy = {vm_stats.energy:.2f} Ws"
        )

    logger.opt(raw=True).info(splitter)

    logger.info(
        f"Scheduler name = {stats.scheduler_name}\n"
        f"Number of workflows = {len(stats.workflows.keys())}\n"
        f"Total cost = ${stats.cost:.4f}\n"
        f"Total billed cost = ${stats.billed_cost:.4f}\n"
        f"Total energy = {stats.energy:.2f} Ws\n"
        f"Start time = {stats.start_time}\n"
        f"Finish time = {stats.finish_time}\n"
        f"Initialized VMs = {stats.initialized_vms}\n"
        f"Removed VMs = {stats.removed_vms}\n"
        f"VMs left = {stats.vms_left}\n"
        f"Total tasks = {stats.workflows_total_tasks}\n"
        f"Scheduled tasks = {stats.scheduled_tasks}\n"
        f"Deferred placements = {stats.deferred_tasks}\n"
        f"Retried placements = {stats.retried_placements}\n"
        f"Forced placements = {stats.forced_placements}\n"
        f"Finished tasks = {stats.finished_tasks}\n"
        f"Deadlines met = {stats.constraints_met}\n"
        f"Deadline violation probability = "
        f"{stats.deadline_violation_probability:.4f}\n"
        f"Resource utilization = {stats.resource_utilization:.4f}\n"
        f"Average task delay = {stats.average_task_delay:.2f}\n"
        f"Average VM idle time = {stats.average_vm_idle_time:.2f}\n"
        f"Total data transfer time = {stats.total_data_transfer_time:.2f}\n"
        f"Deadlock = {stats.deadlock}\n"
    )


def main(argv: tp.Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        stats = run(args)
    except (sm.ConfigurationError, ValueError, OSError) as e:
        logger.error(f"Simulation was not started: {e}")
        return 1

    report(stats)

    return 0


if __name__ == '__main__':
    raise SystemExit(main())
