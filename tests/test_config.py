import json
import os
import tempfile
import unittest

import wfsim.config as config


VALID = {
    "maxVMs": 5,
    "normalizationFactor": 1.5,
    "bandwidthMbps": 50,
    "billingPeriod": 60,
    "varianceFactorAlpha": 0.2,
    "deadlineFactorBeta": 1.0,
    "estimationFactorEta": 1.0,
}


class ParseSettingsTests(unittest.TestCase):

    def test_required_settings(self):
        settings = config.parse_settings(dict(VALID))

        self.assertEqual(settings.max_vms, 5)
        self.assertEqual(settings.normalization_factor, 1.5)
        self.assertEqual(settings.bandwidth_mbps, 50.0)
        self.assertEqual(settings.billing_period, 60.0)
        self.assertEqual(settings.variance_factor_alpha, 0.2)

        # Defaults of optional settings.
        self.assertEqual(settings.requeue_delay, 1.0)
        self.assertEqual(settings.max_dispatch_retries, 50)
        self.assertIsNone(settings.seed)

    def test_optional_settings(self):
        settings = config.parse_settings(dict(VALID, seed=3,
                                              requeueDelay=0.5))

        self.assertEqual(settings.seed, 3)
        self.assertEqual(settings.requeue_delay, 0.5)

    def test_missing_setting_is_named(self):
        data = dict(VALID)
        del data["billingPeriod"]

        with self.assertRaises(config.ConfigurationError) as ctx:
            config.parse_settings(data)

        self.assertIn("billingPeriod", str(ctx.exception))

    def test_malformed_value(self):
        with self.assertRaises(config.ConfigurationError) as ctx:
            config.parse_settings(dict(VALID, maxVMs="many"))

        self.assertIn("maxVMs", str(ctx.exception))

    def test_bool_is_not_number(self):
        with self.assertRaises(config.ConfigurationError):
            config.parse_settings(dict(VALID, maxVMs=True))

    def test_invalid_values(self):
        bad_values = [
            ("maxVMs", 0),
            ("billingPeriod", 0),
            ("bandwidthMbps", -1),
            ("normalizationFactor", 0),
            ("varianceFactorAlpha", -0.1),
        ]

        for key, value in bad_values:
            with self.subTest(key=key):
                with self.assertRaises(config.ConfigurationError):
                    config.parse_settings(dict(VALID, **{key: value}))

    def test_configuration_error_is_value_error(self):
        self.assertTrue(issubclass(config.ConfigurationError, ValueError))


class LoadSettingsTests(unittest.TestCase):

    def test_bundled_config(self):
        settings = config.load_settings(config.SIMULATION_CONFIG)

        self.assertEqual(settings.max_vms, 20)
        self.assertEqual(settings.billing_period, 3600.0)
        self.assertEqual(settings.seed, 42)

    def test_missing_file(self):
        with self.assertRaises(config.ConfigurationError):
            config.load_settings("/nonexistent/simulation.json")

    def test_broken_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, "config.json")
            with open(filename, "w") as f:
                f.write("{not json")

            with self.assertRaises(config.ConfigurationError):
                config.load_settings(filename)

    def test_missing_section(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, "config.json")
            with open(filename, "w") as f:
                json.dump({"vms": []}, f)

            with self.assertRaises(config.ConfigurationError):
                config.load_settings(filename)


if __name__ == '__main__':
    unittest.main()
