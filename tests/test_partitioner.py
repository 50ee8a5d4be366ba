import unittest

import wfsim.schedulers as sch

from tests import factories


class DeadlinePartitionerTests(unittest.TestCase):

    def partition(self, workflow):
        partitioner = sch.DeadlinePartitioner(workflow=workflow)
        partitioner.partition()
        return partitioner

    def test_earliest_start_times(self):
        workflow = factories.make_diamond()
        self.partition(workflow)

        ests = {t.id: t.earliest_start_time for t in workflow.tasks}
        self.assertEqual(ests, {"A": 0.0, "B": 10.0, "C": 10.0, "D": 30.0})

    def test_latest_completion_times(self):
        workflow = factories.make_diamond(deadline=62.0)
        self.partition(workflow)

        lcts = {t.id: t.latest_completion_time for t in workflow.tasks}
        self.assertEqual(lcts, {"A": 41.0, "B": 61.0, "C": 61.0, "D": 62.0})

    def test_sub_deadline_distributes_slack(self):
        workflow = factories.make_diamond(deadline=62.0)
        partitioner = self.partition(workflow)

        self.assertAlmostEqual(partitioner.workflow_slack(), 31.0)

        a = workflow.get_task("A")
        self.assertAlmostEqual(a.sub_deadline, 10.0 + 31.0 * 10.0 / 36.0)

        for task in workflow.tasks:
            self.assertLessEqual(task.sub_deadline,
                                 task.latest_completion_time)
            self.assertGreaterEqual(
                task.sub_deadline,
                task.earliest_start_time + task.estimated_execution_time,
            )
            self.assertEqual(task.priority, task.earliest_start_time)

    def test_transfer_times_shift_timing(self):
        workflow = factories.make_diamond(deadline=100.0, transfer_time=2.0)
        self.partition(workflow)

        self.assertEqual(workflow.get_task("B").earliest_start_time, 12.0)
        self.assertEqual(workflow.get_task("D").earliest_start_time, 34.0)
        self.assertEqual(workflow.get_task("B").latest_completion_time,
                         100.0 - 1.0 - 2.0)

    def test_arrival_time_offsets_timing(self):
        workflow = factories.make_diamond(deadline=162.0, arrival_time=100.0)
        partitioner = self.partition(workflow)

        self.assertEqual(workflow.get_task("A").earliest_start_time, 100.0)
        self.assertAlmostEqual(partitioner.workflow_slack(), 31.0)

    def test_infeasible_deadline_clamps_slack(self):
        workflow = factories.make_diamond(deadline=20.0)
        partitioner = self.partition(workflow)

        self.assertEqual(partitioner.workflow_slack(), 0.0)

        for task in workflow.tasks:
            self.assertLessEqual(task.sub_deadline,
                                 task.latest_completion_time)

    def test_long_chain(self):
        runtimes = {f"t{i}": 1.0 for i in range(3000)}
        edges = [(f"t{i}", f"t{i + 1}") for i in range(2999)]
        workflow = factories.make_workflow(runtimes=runtimes, edges=edges,
                                           deadline=6000.0)
        self.partition(workflow)

        last = workflow.get_task("t2999")
        self.assertEqual(last.earliest_start_time, 2999.0)
        self.assertEqual(last.latest_completion_time, 6000.0)


if __name__ == '__main__':
    unittest.main()
