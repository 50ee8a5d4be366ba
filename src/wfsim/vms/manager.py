import json
import random
import typing as tp

from loguru import logger

import wfsim.config as config
import wfsim.metric_collector as mc
import wfsim.utils.cost as cst
import wfsim.utils.task_execution_prediction as tep
import wfsim.workflows as wfs

from .instance import VM, VMType


def load_vm_types(filename: str) -> list[VMType]:
    """Load catalog of VM types from json file. Types are expected
    under `vms` key. Disabled types (`"enable": false`) are skipped.

    :param filename: json file with configuration.
    :return: list of VM types sorted by price in ascending order.
    """

    try:
        with open(filename) as f:
            json_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise config.ConfigurationError(
            f"Failed to load VM types from {filename}: {e}"
        ) from e

    if not isinstance(json_data, dict) or "vms" not in json_data:
        raise config.ConfigurationError(
            f"Config {filename} has no `vms` section"
        )

    return parse_vm_types(json_data["vms"])


def parse_vm_types(json_vms: list[dict[str, tp.Any]]) -> list[VMType]:
    vm_types: list[VMType] = []

    for json_vm in json_vms:
        if not json_vm.get("enable", True):
            continue

        try:
            vm_type = VMType(
                name=str(json_vm["name"]),
                processing_capacity=float(json_vm["processingCapacity"]),
                cost_per_hour=float(json_vm["costPerHour"]),
                energy_per_second=float(json_vm["energyPerSecond"]),
                boot_time=float(json_vm["bootTime"]),
            )
        except KeyError as e:
            raise config.ConfigurationError(
                f"VM type {json_vm.get('name')} has no {e.args[0]}"
            ) from e
        except (TypeError, ValueError) as e:
            raise config.ConfigurationError(
                f"Bad VM type {json_vm.get('name')}: {e}"
            ) from e

        if vm_type.processing_capacity <= 0:
            raise config.ConfigurationError(
                f"VM type {vm_type.name} should have positive "
                f"processing capacity"
            )

        vm_types.append(vm_type)

    if not vm_types:
        raise config.ConfigurationError("No VM types are enabled")

    return sorted(vm_types, key=lambda v: v.cost_per_hour)


class Manager:
    """VM Manager is top-level entity that is responsible for
    communicating with VMs.
    It has information about available VM types and leased VMs, finds
    VM for every task and returns idle VMs at billing period
    boundaries.
    """

    def __init__(
            self,
            settings: config.Settings,
            vm_types: list[VMType],
            rng: tp.Optional[random.Random] = None,
    ) -> None:
        if not vm_types:
            raise config.ConfigurationError("No VM types are given")

        self.settings = settings

        # List of VM types. Sorted by price in ascending order.
        self.vm_types: list[VMType] = sorted(
            vm_types,
            key=lambda v: v.cost_per_hour,
        )

        # Map from VM ID to VM. Active ones are currently leased.
        self.active_vms: dict[str, VM] = dict()
        self.vms: dict[str, VM] = dict()

        self._vm_counter = 0

        # Source of execution time jitter.
        self.rng: random.Random = rng if rng is not None else random.Random()

        # Collector for metrics. Should be set by scheduler.
        self.collector: tp.Optional[mc.MetricCollector] = None

    def set_metric_collector(self, collector: mc.MetricCollector) -> None:
        self.collector = collector

    def get_slowest_vm_type(self) -> VMType:
        return min(self.vm_types, key=lambda v: v.processing_capacity)

    def get_fastest_vm_type(self) -> VMType:
        return max(self.vm_types, key=lambda v: v.processing_capacity)

    def get_active_vms(self) -> list[VM]:
        return list(self.active_vms.values())

    def get_vm(self, vm_id: str) -> VM:
        return self.vms[vm_id]

    def get_vm_count(self) -> int:
        """Return number of VMs leased during simulation."""

        return self._vm_counter

    def calculate_expected_execution_time(
            self,
            task: wfs.Task,
            vm_type: VMType,
    ) -> float:
        return tep.expected_execution_time(
            task=task,
            processing_capacity=vm_type.processing_capacity,
            normalization_factor=self.settings.normalization_factor,
        )

    def calculate_predicted_execution_time(
            self,
            task: wfs.Task,
            vm_type: VMType,
    ) -> float:
        """Return execution time of task on VM type with performance
        jitter. Each call draws new value.

        :param task: task for prediction.
        :param vm_type: type of VM.
        :return: execution time in seconds.
        """

        return tep.sample_execution_time(
            mean=self.calculate_expected_execution_time(task, vm_type),
            variance_factor=self.settings.variance_factor_alpha,
            rng=self.rng,
            minimum=self.settings.min_execution_time,
        )

    def calculate_data_ready_time(
            self,
            task: wfs.Task,
            vm: VM,
            time: float,
    ) -> float:
        return tep.data_ready_time(task=task, vm_id=vm.uuid, current_time=time)

    def calculate_predicted_start_time(
            self,
            task: wfs.Task,
            vm: VM,
            time: float,
    ) -> float:
        """Return time when task can start on VM. It is the latest of
        data ready time, VM available time and current time.

        :param task: task for prediction.
        :param vm: VM where task is going to be executed.
        :param time: current virtual time.
        :return: start time.
        """

        return max(
            self.calculate_data_ready_time(task, vm, time),
            vm.get_available_time(),
            time,
        )

    def find_or_create_vm(
            self,
            task: wfs.Task,
            time: float,
    ) -> tp.Optional[VM]:
        """Find active VM that can finish task before its sub-deadline
        with minimal cost growth. If there is no such VM, lease new one
        of the cheapest suitable type. Return None if limit of active
        VMs is reached.

        :param task: task to place.
        :param time: current virtual time.
        :return: VM or None.
        """

        vm = self.find_suitable_vm(task=task, time=time)
        if vm is not None:
            return vm

        if len(self.active_vms) >= self.settings.max_vms:
            logger.warning(f"Cannot create new VM for task {task.id}: "
                           f"maximum VM limit {self.settings.max_vms} "
                           f"reached")
            return None

        vm_type = self.select_vm_type_for_new_lease(task=task, time=time)

        return self.init_vm(vm_type=vm_type, time=time)

    def find_suitable_vm(
            self,
            task: wfs.Task,
            time: float,
    ) -> tp.Optional[VM]:
        """Find active VM that can finish task before its sub-deadline
        with minimal cost growth. Ties are broken by lower idle time.

        :param task: task to place.
        :param time: current virtual time.
        :return: best VM or None.
        """

        best_vm: tp.Optional[VM] = None
        min_cost_growth: tp.Optional[float] = None

        for vm in self.active_vms.values():
            start_time = self.calculate_predicted_start_time(task, vm, time)
            execution_time = self.calculate_predicted_execution_time(
                task=task,
                vm_type=vm.type,
            )

            # Doesn't fit sub-deadline, so skip it.
            if start_time + execution_time > task.sub_deadline:
                continue

            cost_growth = cst.calculate_cost_growth(
                use_time=execution_time,
                remaining_billing_time=vm.get_remaining_billing_time(
                    start_time
                ),
                cost_per_hour=vm.type.cost_per_hour,
            )

            if (min_cost_growth is None
                    or cost_growth < min_cost_growth
                    or (cost_growth == min_cost_growth
                        and vm.total_idle_time < best_vm.total_idle_time)):
                min_cost_growth = cost_growth
                best_vm = vm

        if best_vm is not None:
            logger.debug(f"Found suitable VM {best_vm.uuid} for task "
                         f"{task.id} with cost growth {min_cost_growth}")

        return best_vm

    def select_vm_type_for_new_lease(
            self,
            task: wfs.Task,
            time: float,
    ) -> VMType:
        """Select VM type with minimal cost of hosting given task alone
        among types that finish it before sub-deadline. If there is no
        such type, fastest type is chosen.

        :param task: task to place.
        :param time: current virtual time.
        :return: VM type.
        """

        best_type: tp.Optional[VMType] = None
        min_cost: tp.Optional[float] = None

        for vm_type in self.vm_types:
            execution_time = self.calculate_expected_execution_time(
                task=task,
                vm_type=vm_type,
            )

            if time + vm_type.boot_time + execution_time > task.sub_deadline:
                continue

            cost = cst.estimate_price_for_vm_type(
                use_time=vm_type.boot_time + execution_time,
                cost_per_hour=vm_type.cost_per_hour,
                billing_period=self.settings.billing_period,
            )

            if min_cost is None or cost < min_cost:
                min_cost = cost
                best_type = vm_type

        if best_type is None:
            best_type = self.get_fastest_vm_type()
            logger.debug(f"No VM type meets sub-deadline of task "
                         f"{task.id}, best effort with {best_type.name}")

        return best_type

    def find_earliest_available_vm(
            self,
            task: wfs.Task,
            time: float,
    ) -> tp.Optional[VM]:
        """Find active VM that finishes task earliest regardless of its
        sub-deadline. Used when task can not be placed for too long.

        :param task: task to place.
        :param time: current virtual time.
        :return: VM or None if there are no active VMs.
        """

        best_vm: tp.Optional[VM] = None
        best_completion: tp.Optional[float] = None

        for vm in self.active_vms.values():
            completion_time = (
                self.calculate_predicted_start_time(task, vm, time)
                + self.calculate_expected_execution_time(task, vm.type)
            )

            if best_completion is None or completion_time < best_completion:
                best_completion = completion_time
                best_vm = vm

        return best_vm

    def init_vm(self, vm_type: VMType, time: float) -> VM:
        """Lease new VM of given type. It starts booting immediately.

        :param vm_type: type of VM to lease.
        :param time: virtual time of lease.
        :return: VM instance.
        """

        assert len(self.active_vms) < self.settings.max_vms

        self._vm_counter += 1
        vm = VM(
            vm_id=f"vm-{self._vm_counter}",
            vm_type=vm_type,
            lease_start_time=time,
            billing_period=self.settings.billing_period,
        )

        self.active_vms[vm.uuid] = vm
        self.vms[vm.uuid] = vm

        if self.collector is not None:
            self.collector.initialized_vms += 1

        logger.info(f"Created new VM {vm.uuid} (type {vm_type.name}) at "
                    f"time {time:.2f}")

        return vm

    def release_vm(self, vm: VM, time: float) -> None:
        """Release given VM. It will be not available anymore.

        :param vm: VM to release.
        :param time: virtual time when VM is released.
        :return: None.
        """

        assert vm.uuid in self.active_vms

        vm.release(time=time)
        del self.active_vms[vm.uuid]

        if self.collector is not None:
            self.collector.record_vm(vm)

        logger.info(f"Released VM {vm.uuid} at time {time:.2f}")

    def shutdown_vms(self, time: float) -> None:
        """Release all active VMs. Used when simulation is over.

        :param time: virtual time when VMs are released.
        :return: None.
        """

        for vm in self.get_active_vms():
            vm.clamp_idle_time(simulation_duration=time - vm.lease_start_time)
            self.release_vm(vm=vm, time=time)

            if self.collector is not None:
                self.collector.vms_left += 1

    def check_idle_vms(self, time: float) -> None:
        """Release VMs that reached their billing period checkpoint
        without running tasks. For busy VMs checkpoint is moved to next
        billing period.

        :param time: current virtual time.
        :return: None.
        """

        for vm in self.get_active_vms():
            if time < vm.next_release_check_time:
                continue

            if not vm.running_tasks:
                logger.info(f"Releasing idle VM {vm.uuid} at time "
                            f"{time:.2f}")
                self.release_vm(vm=vm, time=time)

                if self.collector is not None:
                    self.collector.removed_vms += 1
                continue

            logger.debug(f"VM {vm.uuid} still busy at time {time:.2f}, "
                         f"delaying release to next billing period")
            vm.advance_next_release_check_time()

    def get_next_release_check_time(self) -> tp.Optional[float]:
        """Return closest billing period checkpoint among active VMs or
        None if there are no active VMs.
        """

        return min(
            (vm.next_release_check_time for vm in self.active_vms.values()),
            default=None,
        )

    def get_next_completion_time(self, time: float) -> tp.Optional[float]:
        """Return closest completion time after `time` among tasks
        running on active VMs.

        :param time: current virtual time.
        :return: completion time or None if nothing is running.
        """

        return min(
            (task.completion_time
             for vm in self.active_vms.values()
             for task in vm.running_tasks
             if task.completion_time > time),
            default=None,
        )

    def update_vms_and_get_completed_tasks(
            self,
            time: float,
    ) -> list[wfs.Task]:
        """Update state of active VMs and return tasks that have
        finished by `time`.

        :param time: current virtual time.
        :return: list of finished tasks.
        """

        completed: list[wfs.Task] = []

        for vm in self.active_vms.values():
            completed.extend(vm.update_status(time=time))

        return completed
