import random

from wfsim.workflows import Task


def estimated_execution_time(task: Task) -> float:
    """Return estimated execution time of task, that is mean plus one
    standard deviation. Used for deadline partitioning.
    IMPORTANT: Calculations are made in seconds.

    :param task: task for estimation.
    :return: estimated execution time.
    """

    return task.estimated_execution_time


def expected_execution_time(
        task: Task,
        processing_capacity: float,
        normalization_factor: float,
) -> float:
    """Return mean execution time of task on VM with given processing
    capacity.

    :param task: task for prediction.
    :param processing_capacity: VM throughput.
    :param normalization_factor: workload to time scaling constant.
    :return: mean execution time.
    """

    return (task.mean_execution_time
            / processing_capacity
            * normalization_factor)


def sample_execution_time(
        mean: float,
        variance_factor: float,
        rng: random.Random,
        minimum: float,
) -> float:
    """Draw execution time from normal distribution that models
    performance jitter of VMs. Standard deviation is proportional to
    mean.

    :param mean: mean execution time.
    :param variance_factor: ratio of standard deviation to mean.
    :param rng: source of randomness.
    :param minimum: lower bound for result.
    :return: sampled execution time.
    """

    sampled = rng.gauss(mean, mean * variance_factor)

    return max(minimum, sampled)


def data_ready_time(task: Task, vm_id: str, current_time: float) -> float:
    """Return time when all input data of task is available on VM.
    Data of parents executed on the same VM is not transferred.

    :param task: task for prediction.
    :param vm_id: ID of VM where task is going to be executed.
    :param current_time: current virtual time. Used for entry tasks.
    :return: data ready time.
    """

    if not task.parents:
        return current_time

    return max(
        parent.completion_time
        if parent.vm_id == vm_id
        else parent.completion_time + parent.transfer_time_to(task)
        for parent in task.parents
    )
