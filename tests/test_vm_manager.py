import json
import os
import tempfile
import unittest

import wfsim.config as config
import wfsim.metric_collector as mc
import wfsim.vms as vms

from tests import factories


class VMTypeLoadingTests(unittest.TestCase):

    def test_load_bundled_catalog(self):
        vm_types = vms.load_vm_types(config.SIMULATION_CONFIG)

        # One type is disabled.
        self.assertEqual(len(vm_types), 3)
        prices = [v.cost_per_hour for v in vm_types]
        self.assertEqual(prices, sorted(prices))

    def test_missing_field(self):
        with self.assertRaises(config.ConfigurationError) as ctx:
            vms.parse_vm_types([{"name": "x", "processingCapacity": 1}])

        self.assertIn("costPerHour", str(ctx.exception))

    def test_empty_catalog(self):
        with self.assertRaises(config.ConfigurationError):
            vms.parse_vm_types([])

    def test_missing_section(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, "config.json")
            with open(filename, "w") as f:
                json.dump({"simulation": {}}, f)

            with self.assertRaises(config.ConfigurationError):
                vms.load_vm_types(filename)


class ManagerPlacementTests(unittest.TestCase):

    def setUp(self):
        self.manager = factories.make_manager()
        self.collector = mc.MetricCollector()
        self.manager.set_metric_collector(self.collector)

        workflow = factories.make_workflow(runtimes={"t": 100.0})
        self.task = workflow.get_task("t")
        self.task.sub_deadline = 10000.0

    def test_new_lease_uses_cheapest_suitable_type(self):
        vm = self.manager.find_or_create_vm(task=self.task, time=0.0)

        self.assertEqual(vm.type.name, "small")
        self.assertEqual(vm.uuid, "vm-1")
        self.assertEqual(self.collector.initialized_vms, 1)

    def test_tight_sub_deadline_needs_faster_type(self):
        self.task.sub_deadline = 60.0

        vm_type = self.manager.select_vm_type_for_new_lease(task=self.task,
                                                            time=0.0)

        self.assertEqual(vm_type.name, "large")

    def test_infeasible_sub_deadline_falls_back_to_fastest(self):
        self.task.sub_deadline = 1.0

        vm_type = self.manager.select_vm_type_for_new_lease(task=self.task,
                                                            time=0.0)

        self.assertEqual(vm_type.name, "large")

    def test_minimal_cost_growth_wins(self):
        # At 3590 first VM has 10 seconds of paid time left, second one
        # has 3010.
        first = self.manager.init_vm(factories.SMALL, time=0.0)
        second = self.manager.init_vm(factories.SMALL, time=3000.0)

        vm = self.manager.find_suitable_vm(task=self.task, time=3590.0)

        self.assertIs(vm, second)
        self.assertIsNot(vm, first)

    def test_tie_broken_by_idle_time(self):
        first = self.manager.init_vm(factories.SMALL, time=0.0)
        second = self.manager.init_vm(factories.SMALL, time=0.0)
        first.total_idle_time = 50.0

        vm = self.manager.find_suitable_vm(task=self.task, time=0.0)

        self.assertIs(vm, second)

    def test_vm_missing_sub_deadline_is_skipped(self):
        self.manager.init_vm(factories.SMALL, time=0.0)
        self.task.sub_deadline = 50.0

        self.assertIsNone(
            self.manager.find_suitable_vm(task=self.task, time=0.0)
        )

    def test_limit_of_vms(self):
        manager = factories.make_manager(max_vms=1)
        manager.init_vm(factories.SMALL, time=0.0)
        self.task.sub_deadline = 50.0

        self.assertIsNone(manager.find_or_create_vm(task=self.task, time=0.0))
        self.assertEqual(manager.get_vm_count(), 1)

    def test_start_time_waits_for_parents_and_vm(self):
        workflow = factories.make_workflow(
            runtimes={"p": 10.0, "c": 10.0},
            edges=[("p", "c")],
            transfer_time=5.0,
        )
        parent = workflow.get_task("p")
        child = workflow.get_task("c")

        first = self.manager.init_vm(factories.SMALL, time=0.0)
        second = self.manager.init_vm(factories.SMALL, time=0.0)
        factories.dispatch(parent, first, start_time=0.0,
                           execution_time=10.0)

        # Same VM has no data transfer, but waits for parent.
        self.assertEqual(
            self.manager.calculate_predicted_start_time(child, first, 0.0),
            10.0,
        )
        self.assertEqual(
            self.manager.calculate_predicted_start_time(child, second, 0.0),
            15.0,
        )


class ManagerReleaseTests(unittest.TestCase):

    def setUp(self):
        self.manager = factories.make_manager()
        self.collector = mc.MetricCollector()
        self.manager.set_metric_collector(self.collector)

    def test_idle_vm_released_at_checkpoint(self):
        vm = self.manager.init_vm(factories.SMALL, time=0.0)

        self.manager.check_idle_vms(time=3599.0)
        self.assertTrue(vm.active)

        self.manager.check_idle_vms(time=3600.0)
        self.assertFalse(vm.active)
        self.assertEqual(vm.lease_end_time, 3600.0)
        self.assertEqual(self.collector.removed_vms, 1)
        self.assertIn(vm.uuid, self.collector.vms)

    def test_busy_vm_checkpoint_moves_by_one_period(self):
        vm = self.manager.init_vm(factories.SMALL, time=0.0)
        workflow = factories.make_workflow(runtimes={"t": 5000.0})
        factories.dispatch(workflow.get_task("t"), vm, start_time=0.0,
                           execution_time=5000.0)

        self.manager.check_idle_vms(time=3600.0)

        self.assertTrue(vm.active)
        self.assertEqual(vm.next_release_check_time, 7200.0)
        self.assertEqual(self.collector.removed_vms, 0)

    def test_next_release_check_time(self):
        self.assertIsNone(self.manager.get_next_release_check_time())

        self.manager.init_vm(factories.SMALL, time=0.0)
        late = self.manager.init_vm(factories.LARGE, time=1000.0)

        self.assertEqual(self.manager.get_next_release_check_time(), 3600.0)

        self.manager.check_idle_vms(time=3600.0)

        self.assertEqual(self.manager.get_active_vms(), [late])
        self.assertEqual(self.manager.get_next_release_check_time(), 4600.0)

    def test_shutdown_releases_everything(self):
        self.manager.init_vm(factories.SMALL, time=0.0)
        self.manager.init_vm(factories.LARGE, time=0.0)

        self.manager.shutdown_vms(time=100.0)

        self.assertEqual(self.manager.get_active_vms(), [])
        self.assertEqual(self.collector.vms_left, 2)
        for vm_stats in self.collector.vms.values():
            self.assertEqual(vm_stats.lease_duration, 100.0)

    def test_next_completion_time(self):
        vm = self.manager.init_vm(factories.SMALL, time=0.0)
        workflow = factories.make_workflow(runtimes={"a": 1.0, "b": 1.0})
        factories.dispatch(workflow.get_task("a"), vm, start_time=0.0,
                           execution_time=10.0)
        factories.dispatch(workflow.get_task("b"), vm, start_time=10.0,
                           execution_time=10.0)

        self.assertEqual(self.manager.get_next_completion_time(0.0), 10.0)
        self.assertEqual(self.manager.get_next_completion_time(10.0), 20.0)

        finished = self.manager.update_vms_and_get_completed_tasks(10.0)
        self.assertEqual([t.id for t in finished], ["a"])


if __name__ == '__main__':
    unittest.main()
