import unittest

import wfsim.workflows as wfs

from tests import factories


class WorkflowStructureTests(unittest.TestCase):

    def setUp(self):
        self.workflow = factories.make_diamond()

    def test_critical_path_length(self):
        self.assertAlmostEqual(self.workflow.critical_path_length(), 31.0)

    def test_critical_path_length_is_cached(self):
        first = self.workflow.critical_path_length()

        self.assertEqual(self.workflow._critical_path_length, first)

        self.workflow.get_task("B").mean_execution_time = 100.0

        self.assertEqual(self.workflow.critical_path_length(), first)
        self.assertEqual(self.workflow.critical_path_length(), 31.0)

    def test_total_execution_time(self):
        self.assertAlmostEqual(self.workflow.total_execution_time(), 36.0)

    def test_entry_and_exit_tasks(self):
        self.assertEqual(self.workflow.entry_task.id, "A")
        self.assertEqual([t.id for t in self.workflow.entry_tasks], ["A"])
        self.assertEqual([t.id for t in self.workflow.exit_tasks], ["D"])

    def test_topological_order(self):
        order = [t.id for t in self.workflow.topological_order()]

        self.assertEqual(order[0], "A")
        self.assertEqual(order[-1], "D")
        self.assertEqual(set(order), {"A", "B", "C", "D"})

    def test_dependencies_are_shared(self):
        a = self.workflow.get_task("A")
        d = self.workflow.get_task("D")

        self.assertEqual([t.id for t in a.children], ["B", "C"])
        self.assertEqual([t.id for t in d.parents], ["B", "C"])
        self.assertTrue(self.workflow.dag.has_edge("B", "D"))

    def test_tasks_belong_to_workflow(self):
        for task in self.workflow.tasks:
            self.assertEqual(task.workflow_uuid, self.workflow.uuid)

    def test_not_completed_before_dispatch(self):
        self.assertFalse(self.workflow.is_completed())
        self.assertEqual(self.workflow.makespan, 0.0)


class TaskTests(unittest.TestCase):

    def test_estimated_execution_time_adds_deviation(self):
        task = wfs.Task(
            workflow_uuid="",
            task_id="t",
            mean_execution_time=10.0,
            variance_execution_time=4.0,
        )

        self.assertAlmostEqual(task.estimated_execution_time, 12.0)

    def test_readiness_follows_parent_completion(self):
        workflow = factories.make_workflow(
            runtimes={"A": 1.0, "B": 1.0},
            edges=[("A", "B")],
        )
        a = workflow.get_task("A")
        b = workflow.get_task("B")

        self.assertTrue(a.is_ready())
        self.assertFalse(b.is_ready())

        a.completion_time = 5.0
        self.assertTrue(b.is_ready())

    def test_transfer_time_override(self):
        workflow = factories.make_workflow(
            runtimes={"A": 1.0, "B": 1.0, "C": 1.0},
            edges=[("A", "B"), ("A", "C")],
            transfer_time=3.0,
        )
        a = workflow.get_task("A")
        a.transfer_times["C"] = 7.0

        self.assertEqual(a.transfer_time_to(workflow.get_task("B")), 3.0)
        self.assertEqual(a.transfer_time_to(workflow.get_task("C")), 7.0)

    def test_dispatch_is_done_once(self):
        task = wfs.Task(workflow_uuid="", task_id="t",
                        mean_execution_time=1.0)
        task.mark_queued()
        task.mark_dispatched(vm_id="vm-1", start_time=2.0,
                             execution_time=3.0, cost=0.5, energy=30.0)

        self.assertEqual(task.completion_time, 5.0)
        self.assertTrue(task.is_dispatched())

        with self.assertRaises(AssertionError):
            task.mark_dispatched(vm_id="vm-2", start_time=2.0,
                                 execution_time=3.0, cost=0.5, energy=30.0)

    def test_delay_past_sub_deadline(self):
        task = wfs.Task(workflow_uuid="", task_id="t",
                        mean_execution_time=1.0)
        task.sub_deadline = 10.0
        task.completion_time = 12.5

        self.assertTrue(task.has_deadline_violation())
        self.assertAlmostEqual(task.delay(), 2.5)


class FileTests(unittest.TestCase):

    def test_transfer_time(self):
        # 1250 KB is 10 megabits.
        f = wfs.File(name="data", size=1250)

        self.assertAlmostEqual(f.size_in_megabits(), 10.0)
        self.assertAlmostEqual(f.transfer_time(bandwidth_mbps=5.0), 2.0)

    def test_from_bytes(self):
        f = wfs.File.from_bytes(name="data", size=2000)

        self.assertEqual(f.size, 2.0)
        self.assertEqual(f, wfs.File(name="data", size=2.0))


if __name__ == '__main__':
    unittest.main()
