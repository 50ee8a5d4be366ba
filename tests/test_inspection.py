import unittest

import wfsim.utils.inspection as ins

from tests import factories


class InspectionTests(unittest.TestCase):

    def setUp(self):
        self.inspected = ins.inspect_workflow(
            workflow=factories.make_diamond(),
            settings=factories.make_settings(),
            vm_types=factories.make_vm_types(),
        )

    def test_levels(self):
        self.assertEqual(self.inspected.levels, 3)
        self.assertEqual(self.inspected.levels_tasks, {0: 1, 1: 2, 2: 1})

    def test_execution_time_bounds(self):
        self.assertAlmostEqual(self.inspected.critical_path_length, 31.0)
        self.assertAlmostEqual(self.inspected.exec_time_slowest_vm, 31.0)
        self.assertAlmostEqual(self.inspected.exec_time_fastest_vm, 15.5)

    def test_cost_bounds(self):
        # Every task pays one billing period on its own VM.
        self.assertAlmostEqual(self.inspected.exec_cost_slowest_vm, 0.4)
        self.assertAlmostEqual(self.inspected.exec_cost_fastest_vm, 1.6)


if __name__ == '__main__':
    unittest.main()
