"""
Config Tests: JSON Configuration Loading

Tests:
- Loading the shipped configuration
- Engine settings validation
- Preset parsing and validation
- Engine construction from configuration
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import json
import tempfile
import unittest
from acnesim import AcneSimulation
from acnesim.config import (
    ConfigLoader, ConfigError, load_config,
    AcneSimConfig, EngineConfig,
)
from acnesim.core.clock import DEFAULT_TICK_HOURS
from acnesim.core.stages import Stage
from acnesim.output import DebugLogger, LogLevel


CONFIG_DIR = os.path.join(os.path.dirname(__file__), '..', 'config')


class ConfigDirTestCase(unittest.TestCase):
    """Base class writing config files into a temporary directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, filename, data):
        with open(os.path.join(self.config_dir, filename), 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def write_engine(self, **settings):
        self.write("engine.json", {"engine": settings})


class TestShippedConfig(unittest.TestCase):
    """Test the configuration bundled with the project."""

    def test_loads(self):
        config = load_config(CONFIG_DIR)
        self.assertIsInstance(config, AcneSimConfig)
        self.assertAlmostEqual(config.engine.tick_hours, DEFAULT_TICK_HOURS)
        self.assertTrue(config.engine.incubation_bacteria_growth)
        self.assertEqual(config.engine.log_interval_hours, 10.0)

    def test_presets(self):
        config = load_config(CONFIG_DIR)
        ids = config.get_valid_preset_ids()
        self.assertIn("default", ids)
        self.assertIn("treated", ids)

        aggravated = config.get_preset("aggravated")
        self.assertEqual(aggravated.progression_accelerator, 2.0)
        self.assertEqual(aggravated.parameters['bacteria'], 800)

        self.assertIsNone(config.get_preset("missing"))


class TestEngineConfig(ConfigDirTestCase):
    """Test engine.json parsing."""

    def test_defaults_for_missing_fields(self):
        self.write_engine()
        engine = ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(engine, EngineConfig())

    def test_flat_layout(self):
        self.write("engine.json", {"tick_hours": 0.5, "log_level": "DEBUG"})
        engine = ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(engine.tick_hours, 0.5)
        self.assertEqual(engine.log_level, "debug")

    def test_missing_directory(self):
        with self.assertRaises(ConfigError):
            ConfigLoader(os.path.join(self.config_dir, "nope"))

    def test_missing_engine_file(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(self.config_dir)
        self.assertEqual(ctx.exception.file, "engine.json")

    def test_invalid_json(self):
        self.write("engine.json", "{not json")
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertIn("Invalid JSON", ctx.exception.message)

    def test_top_level_must_be_object(self):
        self.write("engine.json", [1, 2, 3])
        with self.assertRaises(ConfigError):
            ConfigLoader(self.config_dir).load_engine()

    def test_tick_hours_positive(self):
        self.write_engine(tick_hours=0)
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(ctx.exception.path, "engine.tick_hours")

    def test_accelerator_range(self):
        self.write_engine(progression_accelerator=20)
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(ctx.exception.path, "engine.progression_accelerator")
        self.assertIn("engine.progression_accelerator", str(ctx.exception))

    def test_log_level(self):
        self.write_engine(log_level="verbose")
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(ctx.exception.path, "engine.log_level")

    def test_growth_flag_must_be_bool(self):
        self.write_engine(incubation_bacteria_growth="yes")
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(ctx.exception.path, "engine.incubation_bacteria_growth")

    def test_non_numeric(self):
        self.write_engine(log_interval_hours="often")
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_engine()
        self.assertEqual(ctx.exception.path, "engine.log_interval_hours")


class TestPresetConfig(ConfigDirTestCase):
    """Test presets.json parsing."""

    def setUp(self):
        super().setUp()
        self.write_engine()

    def test_presets_optional(self):
        config = load_config(self.config_dir)
        self.assertEqual(config.presets, {})

    def test_parse(self):
        self.write("presets.json", {
            "_description": "ignored",
            "presets": {
                "_note": "ignored too",
                "dry": {
                    "name": "Dry Skin",
                    "parameters": {"sebum": 150.4, "humidity": 200},
                },
            },
        })
        presets = ConfigLoader(self.config_dir).load_presets()

        self.assertEqual(list(presets.keys()), ["dry"])
        dry = presets["dry"]
        self.assertEqual(dry.name, "Dry Skin")
        self.assertEqual(dry.parameters, {"sebum": 150, "humidity": 200})
        self.assertIsNone(dry.progression_accelerator)

    def test_unknown_parameter(self):
        self.write("presets.json", {
            "presets": {"bad": {"parameters": {"acidity": 100}}},
        })
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_presets()
        self.assertEqual(ctx.exception.file, "presets.json")
        self.assertEqual(ctx.exception.path, "presets.bad.parameters.acidity")

    def test_value_out_of_range(self):
        self.write("presets.json", {
            "presets": {"bad": {"parameters": {"sebum": 1200}}},
        })
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_presets()
        self.assertEqual(ctx.exception.path, "presets.bad.parameters.sebum")

    def test_accelerator_out_of_range(self):
        self.write("presets.json", {
            "presets": {"bad": {"parameters": {}, "progression_accelerator": 0}},
        })
        with self.assertRaises(ConfigError) as ctx:
            ConfigLoader(self.config_dir).load_presets()
        self.assertEqual(ctx.exception.path, "presets.bad.progression_accelerator")


class TestEngineFromConfig(ConfigDirTestCase):
    """Test engines built from configuration."""

    def test_config_path(self):
        self.write_engine(tick_hours=2.0, progression_accelerator=3.0)
        engine = AcneSimulation(config_path=self.config_dir,
                                logger=DebugLogger(level=LogLevel.NONE))
        self.assertEqual(engine.progression_accelerator, 3.0)

        engine.update()
        self.assertEqual(engine.simulation_time, 2.0)

    def test_log_level_from_config(self):
        self.write_engine(log_level="error")
        engine = AcneSimulation(config_path=self.config_dir)
        self.assertEqual(engine.logger.level, LogLevel.ERROR)

    def test_growth_flag(self):
        self.write_engine(incubation_bacteria_growth=False)
        engine = AcneSimulation(config_path=self.config_dir,
                                logger=DebugLogger(level=LogLevel.NONE))
        engine.run_for(100, dt=1.0)
        self.assertEqual(engine.current_bacteria_level, 0.0)
        self.assertEqual(engine.simulation_stage, Stage.INCUBATION)

    def test_log_interval_disabled(self):
        self.write_engine(log_interval_hours=0)
        logger = DebugLogger(level=LogLevel.INFO)
        engine = AcneSimulation(config_path=self.config_dir, logger=logger)
        engine.run_for(30, dt=1.0)
        self.assertEqual(logger.search("Time: "), [])


def run_tests():
    """Run all config tests."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestShippedConfig))
    suite.addTests(loader.loadTestsFromTestCase(TestEngineConfig))
    suite.addTests(loader.loadTestsFromTestCase(TestPresetConfig))
    suite.addTests(loader.loadTestsFromTestCase(TestEngineFromConfig))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    success = run_tests()
    sys.exit(0 if success else 1)
