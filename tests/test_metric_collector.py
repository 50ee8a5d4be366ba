import unittest

import wfsim.metric_collector as mc
import wfsim.vms as vms

from tests import factories


class ConstraintTests(unittest.TestCase):

    def make_stats(self, finish_time, completed=True):
        stats = mc.Stats()
        stats.arrival_time = 0.0
        stats.deadline = 100.0
        stats.finish_time = finish_time
        stats.completed = completed
        return stats

    def test_overflow_ratio(self):
        collector = mc.MetricCollector()
        collector.workflows = {
            "met": self.make_stats(finish_time=90.0),
            "late": self.make_stats(finish_time=150.0),
            "stuck": self.make_stats(finish_time=0.0, completed=False),
        }

        collector.parse_constraints()

        self.assertEqual(collector.constraints_met, 1)
        self.assertTrue(collector.workflows["met"].constraint_met)
        self.assertAlmostEqual(
            collector.workflows["late"].constraint_overflow, 0.5
        )
        self.assertFalse(collector.workflows["stuck"].constraint_met)


class AggregateTests(unittest.TestCase):

    def setUp(self):
        self.workflow = factories.make_workflow(
            runtimes={"a": 10.0, "b": 20.0},
            edges=[("a", "b")],
            deadline=25.0,
            transfer_time=1.5,
        )
        a = self.workflow.get_task("a")
        b = self.workflow.get_task("b")
        a.sub_deadline = 10.0
        b.sub_deadline = 25.0

        self.vm = vms.VM(vm_id="vm-1", vm_type=factories.SMALL,
                         lease_start_time=0.0, billing_period=3600.0)
        factories.dispatch(a, self.vm, start_time=0.0, execution_time=10.0)
        factories.dispatch(b, self.vm, start_time=20.0, execution_time=20.0)
        self.vm.update_status(time=50.0)
        self.vm.release(time=50.0)

        self.collector = mc.MetricCollector()
        self.collector.record_vm(self.vm)
        self.collector.record_workflow(self.workflow)
        self.collector.calculate_metrics()

    def test_workflow_stats(self):
        stats = self.collector.workflows[self.workflow.uuid]

        self.assertEqual(stats.makespan, 40.0)
        self.assertEqual(stats.used_vms, {"vm-1"})
        self.assertFalse(stats.constraint_met)
        self.assertAlmostEqual(stats.constraint_overflow, 15.0 / 25.0)

    def test_totals(self):
        self.assertAlmostEqual(self.collector.cost, 30.0 * 0.1 / 3600.0)
        self.assertAlmostEqual(self.collector.energy, 300.0)
        self.assertAlmostEqual(self.collector.billed_cost, 0.1)
        self.assertAlmostEqual(self.collector.total_data_transfer_time, 3.0)

    def test_ratios(self):
        self.assertEqual(self.collector.deadline_violation_probability, 1.0)
        self.assertAlmostEqual(self.collector.resource_utilization,
                               30.0 / 50.0)
        # Only second task is late, by 15 seconds.
        self.assertAlmostEqual(self.collector.average_task_delay, 7.5)
        self.assertAlmostEqual(self.collector.average_vm_idle_time, 10.0)

    def test_vm_stats(self):
        vm_stats = self.collector.vms["vm-1"]

        self.assertEqual(vm_stats.type_name, "small")
        self.assertEqual(vm_stats.executed_tasks, 2)
        self.assertEqual(vm_stats.active_time, 30.0)
        self.assertEqual(vm_stats.lease_duration, 50.0)

    def test_task_stats(self):
        stats = self.collector.workflows[self.workflow.uuid]
        late = [t for t in stats.tasks if t.deadline_violated]

        self.assertEqual([t.id for t in late], ["b"])
        self.assertEqual(late[0].vm_id, "vm-1")


if __name__ == '__main__':
    unittest.main()
