import math

from wfsim.config import SECONDS_IN_HOUR


def price_per_second(cost_per_hour: float) -> float:
    return cost_per_hour / SECONDS_IN_HOUR


def calculate_price_for_duration(
        duration: float,
        cost_per_hour: float,
) -> float:
    """Calculate price of using VM for given amount of time without
    rounding to billing periods.

    :param duration: time of use (in seconds).
    :param cost_per_hour: VM price per hour.
    :return: price in dollars.
    """

    return duration * price_per_second(cost_per_hour)


def time_until_next_billing_period(
        current_time: float,
        lease_start_time: float,
        billing_period: float,
) -> float:
    """Calculate how much time left until next billing period.

    :param current_time: current virtual time.
    :param lease_start_time: time when VM was leased.
    :param billing_period: length of billing period (in seconds).
    :return: time until next billing period.
    """

    vm_awake_time = current_time - lease_start_time
    time_passed_in_current_period = vm_awake_time % billing_period
    return billing_period - time_passed_in_current_period


def calculate_cost_growth(
        use_time: float,
        remaining_billing_time: float,
        cost_per_hour: float,
) -> float:
    """Calculate additional cost of running task for `use_time` on VM
    that has `remaining_billing_time` already paid.

    :param use_time: predicted execution time (in seconds).
    :param remaining_billing_time: time left in current billing period.
    :param cost_per_hour: VM price per hour.
    :return: cost growth in dollars.
    """

    overflow = max(0.0, use_time - remaining_billing_time)
    return calculate_price_for_duration(overflow, cost_per_hour)


def estimate_price_for_vm_type(
        use_time: float,
        cost_per_hour: float,
        billing_period: float,
) -> float:
    """Estimate price of leasing new VM for given time. Every started
    billing period is paid in full.

    :param use_time: time of using VM in seconds (including boot).
    :param cost_per_hour: VM price per hour.
    :param billing_period: length of billing period (in seconds).
    :return: estimated price.
    """

    billing_periods = math.ceil(use_time / billing_period)

    return (billing_periods
            * price_per_second(cost_per_hour)
            * billing_period)
