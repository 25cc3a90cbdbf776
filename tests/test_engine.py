"""
Engine Tests: AcneSimulation

Tests:
- Parameter store behaviour through the engine
- Natural progression from incubation
- Medication slowing bacterial growth
- Manual stage control and reset
- Error handling (invalid stage, unknown parameter)
- Observer callbacks and logging
- Independent engine instances
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import random
import unittest
from acnesim import AcneSimulation
from acnesim.core.stages import Stage, STAGE_THRESHOLDS, FORWARD_PATH
from acnesim.core.state import BiologicalLevels, StateSnapshot, PARAMETER_NAMES
from acnesim.core.stage_machine import ChangeCause
from acnesim.config import AcneSimConfig, EngineConfig, ParameterPreset
from acnesim.output import DebugLogger, LogLevel, StageEventLogger


T = STAGE_THRESHOLDS


def make_engine(**engine_kwargs):
    """Engine with an in-memory debug logger."""
    config = AcneSimConfig(engine=EngineConfig(**engine_kwargs))
    return AcneSimulation(config=config, logger=DebugLogger(level=LogLevel.DEBUG))


class TestEngineParameters(unittest.TestCase):
    """Test parameter handling."""

    def setUp(self):
        self.engine = make_engine()

    def test_initial_state(self):
        self.assertEqual(self.engine.simulation_stage, Stage.INCUBATION)
        self.assertEqual(self.engine.simulation_time, 0.0)
        self.assertEqual(self.engine.levels.to_dict(), BiologicalLevels().to_dict())
        self.assertEqual(self.engine.progression_accelerator, 1.0)

    def test_named_setters(self):
        setters = {
            'sebum': self.engine.set_sebum_param,
            'bacteria': self.engine.set_bacteria_param,
            'medication': self.engine.set_medication_param,
            'inflammation': self.engine.set_inflammation_param,
            'healing': self.engine.set_healing_param,
            'temperature': self.engine.set_temperature_param,
            'humidity': self.engine.set_humidity_param,
            'friction': self.engine.set_friction_param,
        }
        self.assertEqual(set(setters.keys()), set(PARAMETER_NAMES))

        for value, (name, setter) in enumerate(setters.items(), start=1):
            self.assertEqual(setter(value * 100), value * 100)
            self.assertEqual(self.engine.get_param(name), value * 100)

    def test_clamping(self):
        self.assertEqual(self.engine.set_param('sebum', 5000), 1000)
        self.assertEqual(self.engine.set_param('friction', -20), 0)
        self.assertEqual(self.engine.stats.clamped_inputs, 2)
        self.assertEqual(len(self.engine.logger.search("Clamped sebum")), 1)

    def test_rounding_is_not_clamping(self):
        self.assertEqual(self.engine.set_param('sebum', 500.4), 500)
        self.assertEqual(self.engine.set_param('friction', 999.6), 1000)
        self.assertEqual(self.engine.stats.clamped_inputs, 0)
        self.assertEqual(self.engine.logger.search("Clamped"), [])

    def test_non_finite_parameter_rejected(self):
        before = self.engine.params.to_dict()

        for value in (float('nan'), float('inf'), float('-inf')):
            self.assertIsNone(self.engine.set_medication_param(value))

        self.assertEqual(self.engine.params.to_dict(), before)
        self.assertEqual(self.engine.stats.rejected_inputs, 3)
        self.assertEqual(self.engine.stats.clamped_inputs, 0)

    def test_unknown_parameter_ignored(self):
        before = self.engine.params.to_dict()

        self.assertIsNone(self.engine.set_param('acidity', 500))
        self.assertIsNone(self.engine.set_param('sebum', "lots"))
        self.assertIsNone(self.engine.get_param('acidity'))

        self.assertEqual(self.engine.params.to_dict(), before)
        self.assertEqual(self.engine.stats.rejected_inputs, 2)
        self.assertGreaterEqual(len(self.engine.logger.get_errors()), 2)

    def test_change_takes_effect_next_tick(self):
        self.engine.set_temperature_param(1000)
        self.assertAlmostEqual(self.engine.derived_rates.sebum_rate, 0.05)

        self.engine.update(1.0)
        self.assertAlmostEqual(self.engine.derived_rates.sebum_rate, 0.1)

    def test_params_property_is_a_copy(self):
        params = self.engine.params
        params.set('sebum', 999)
        self.assertEqual(self.engine.get_param('sebum'), 500)

    def test_accelerator_clamped(self):
        self.assertEqual(self.engine.set_progression_accelerator(50), 10.0)
        self.assertEqual(self.engine.set_progression_accelerator(0), 0.1)
        self.assertEqual(self.engine.set_progression_accelerator(2.5), 2.5)
        self.assertEqual(self.engine.progression_accelerator, 2.5)

    def test_non_finite_accelerator_rejected(self):
        self.engine.set_progression_accelerator(2.0)
        self.assertEqual(self.engine.set_progression_accelerator(float('nan')), 2.0)
        self.assertEqual(self.engine.set_progression_accelerator(float('inf')), 2.0)
        self.assertEqual(self.engine.progression_accelerator, 2.0)
        self.assertEqual(self.engine.stats.rejected_inputs, 2)

    def test_apply_preset(self):
        preset = ParameterPreset(id="flare", name="Flare",
                                 parameters={'bacteria': 900, 'friction': 700},
                                 progression_accelerator=3.0)
        config = AcneSimConfig(presets={"flare": preset})
        engine = AcneSimulation(config=config, logger=DebugLogger(level=LogLevel.NONE))

        self.assertTrue(engine.apply_preset("flare"))
        self.assertEqual(engine.get_param('bacteria'), 900)
        self.assertEqual(engine.get_param('friction'), 700)
        self.assertEqual(engine.progression_accelerator, 3.0)

        self.assertFalse(engine.apply_preset("missing"))


class TestNaturalProgression(unittest.TestCase):
    """Test unattended progression from incubation."""

    def test_default_scenario_reaches_comedone(self):
        engine = make_engine()
        events = StageEventLogger()
        engine.on_stage_change(events.log_change)

        for _ in range(100):
            engine.update(1)

        self.assertNotEqual(engine.simulation_stage, Stage.INCUBATION)
        entry_time = events.first_entry_time('comedone')
        self.assertIsNotNone(entry_time)
        self.assertLess(entry_time, 100.0)

    def test_no_early_transition(self):
        engine = make_engine()
        seen = []

        def check(change, snapshot):
            seen.append(change)
            if change.from_stage == Stage.INCUBATION:
                self.assertGreater(snapshot.bacteria_level, T.bacteria)
                self.assertGreater(snapshot.inflammation_level, T.inflammation)

        engine.on_stage_change(check)
        engine.run_for(100, dt=1.0)
        self.assertTrue(seen)

    def test_no_skipped_stages(self):
        engine = make_engine()
        changes = []
        engine.on_stage_change(lambda change, snapshot: changes.append(change))

        engine.set_healing_param(0)
        engine.run_for(400, dt=0.5)

        previous = Stage.INCUBATION
        for change in changes:
            self.assertEqual(change.cause, ChangeCause.THRESHOLD)
            self.assertEqual(change.from_stage, previous)
            self.assertTrue(
                change.to_stage == FORWARD_PATH.get(change.from_stage) or
                (change.from_stage, change.to_stage) == (Stage.RUPTURE, Stage.WORSENING)
            )
            previous = change.to_stage

    def test_bacteria_grows_until_threshold(self):
        engine = make_engine()
        previous = engine.current_bacteria_level

        while engine.current_bacteria_level <= T.bacteria:
            engine.update(1.0)
            self.assertGreater(engine.current_bacteria_level, previous)
            previous = engine.current_bacteria_level
            self.assertLess(engine.simulation_time, 100.0)

    def test_incubation_gate(self):
        engine = make_engine(incubation_bacteria_growth=False)
        engine.run_for(100, dt=1.0)
        self.assertEqual(engine.current_bacteria_level, 0.0)
        self.assertEqual(engine.simulation_stage, Stage.INCUBATION)


class TestMedication(unittest.TestCase):
    """Medication slows bacterial growth."""

    def test_medicated_run_grows_slower(self):
        control = make_engine()
        treated = make_engine()
        treated.set_medication_param(1000)

        for _ in range(40):
            control.update(1.0)
            treated.update(1.0)

        self.assertAlmostEqual(control.derived_rates.bacteria_growth_rate, 0.05)
        self.assertAlmostEqual(treated.derived_rates.bacteria_growth_rate, 0.025)
        self.assertLess(treated.current_bacteria_level, control.current_bacteria_level)
        self.assertLess(treated.current_bacteria_level, T.bacteria)

    def test_medication_level_ramps(self):
        engine = make_engine()
        engine.set_medication_param(50)
        engine.update(1.0)
        self.assertAlmostEqual(engine.current_medication_level, 0.5)


class TestManualControl(unittest.TestCase):
    """Test set, advance, skip and reset through the engine."""

    def setUp(self):
        self.engine = make_engine()

    def test_set_stage(self):
        self.assertTrue(self.engine.set_stage('pustule'))
        self.assertEqual(self.engine.simulation_stage, Stage.PUSTULE)
        self.assertAlmostEqual(self.engine.current_pus_level, T.pus * 0.8)

    def test_set_stage_twice_is_idempotent(self):
        self.engine.set_stage('papule')
        once = self.engine.levels.to_dict()
        self.engine.set_stage('papule')
        self.assertEqual(self.engine.levels.to_dict(), once)

    def test_invalid_stage(self):
        self.engine.run_for(5, dt=1.0)
        stage = self.engine.simulation_stage
        levels = self.engine.levels.to_dict()

        self.assertFalse(self.engine.set_stage('pimple'))

        self.assertEqual(self.engine.simulation_stage, stage)
        self.assertEqual(self.engine.levels.to_dict(), levels)
        self.assertEqual(self.engine.stats.rejected_inputs, 1)
        errors = self.engine.logger.get_errors()
        self.assertEqual(errors[-1].message, "Invalid stage: pimple")

    def test_advance_cycle(self):
        visited = [self.engine.advance_to_next_stage() for _ in range(8)]
        self.assertEqual(visited, [
            Stage.COMEDONE, Stage.PAPULE, Stage.PUSTULE, Stage.RUPTURE,
            Stage.HEALING, Stage.RESOLVED, Stage.INCUBATION, Stage.COMEDONE,
        ])
        self.assertEqual(self.engine.stats.manual_operations, 8)

    def test_advance_from_worsening(self):
        self.engine.set_stage('worsening')
        self.assertIsNone(self.engine.advance_to_next_stage())
        self.assertEqual(self.engine.simulation_stage, Stage.WORSENING)
        self.assertTrue(self.engine.logger.get_entries(level=LogLevel.WARNING))

    def test_skip(self):
        info = self.engine.skip_to_next_stage()
        self.assertEqual(info.stage, Stage.COMEDONE)
        self.assertTrue(info.is_surface)

        self.engine.set_stage('resolved')
        info = self.engine.skip_to_next_stage()
        self.assertEqual(info.stage, Stage.RESOLVED)
        self.assertEqual(self.engine.current_inflammation_level, 15.0)

    def test_reset(self):
        self.engine.set_sebum_param(900)
        self.engine.set_medication_param(400)
        self.engine.set_progression_accelerator(4.0)
        self.engine.run_for(50, dt=1.0)
        self.engine.set_stage('pustule')
        params = self.engine.params.to_dict()

        self.engine.reset()

        self.assertEqual(self.engine.simulation_stage, Stage.INCUBATION)
        self.assertEqual(self.engine.simulation_time, 0.0)
        self.assertEqual(self.engine.levels.to_dict(), BiologicalLevels().to_dict())
        self.assertEqual(self.engine.params.to_dict(), params)
        self.assertEqual(self.engine.progression_accelerator, 4.0)

    def test_healing_resolution_during_update(self):
        events = StageEventLogger()
        self.engine.on_stage_change(events.log_change)

        self.engine.set_stage('healing')
        self.engine.update(1.0)

        self.assertEqual(self.engine.simulation_stage, Stage.RESOLVED)
        self.assertEqual(events.get_all()[-1].cause, 'healing_resolution')

    def test_rupture_to_worsening(self):
        self.engine.set_stage('rupture')
        self.engine.set_healing_param(0)
        self.engine.run_for(80, dt=1.0)
        self.assertEqual(self.engine.simulation_stage, Stage.WORSENING)


class TestEngineRuntime(unittest.TestCase):
    """Test ticking, callbacks and logging."""

    def test_default_tick(self):
        engine = make_engine(tick_hours=0.5)
        engine.update()
        self.assertEqual(engine.simulation_time, 0.5)
        self.assertEqual(engine.clock.tick_count, 1)

    def test_negative_dt(self):
        engine = make_engine()
        engine.update(-5.0)
        self.assertEqual(engine.simulation_time, 0.0)
        self.assertEqual(engine.stats.total_ticks, 1)

    def test_non_finite_dt_ignored(self):
        engine = make_engine()
        initial = BiologicalLevels().to_dict()

        for dt in (float('nan'), float('inf'), "1"):
            engine.update(dt)

        self.assertEqual(engine.levels.to_dict(), initial)
        self.assertEqual(engine.simulation_time, 0.0)
        self.assertEqual(engine.stats.total_ticks, 0)
        self.assertEqual(engine.stats.rejected_inputs, 3)
        self.assertEqual(len(engine.logger.search("Tick ignored")), 3)

    def test_paused_clock(self):
        engine = make_engine()
        engine.clock.pause()
        engine.update(1.0)
        self.assertEqual(engine.simulation_time, 0.0)
        self.assertEqual(engine.stats.total_ticks, 0)
        self.assertEqual(engine.current_sebum_level, BiologicalLevels().sebum)

    def test_run_for(self):
        engine = make_engine()
        self.assertEqual(engine.run_for(10.0, dt=0.5), 20)
        self.assertAlmostEqual(engine.simulation_time, 10.0)

    def test_run_for_non_finite(self):
        engine = make_engine()
        self.assertEqual(engine.run_for(float('nan'), dt=1.0), 0)
        self.assertEqual(engine.run_for(10.0, dt=float('inf')), 0)
        self.assertEqual(engine.stats.total_ticks, 0)
        self.assertEqual(engine.stats.rejected_inputs, 2)

    def test_tick_callback(self):
        engine = make_engine()
        snapshots = []
        engine.on_tick(snapshots.append)
        engine.run_for(3, dt=1.0)

        self.assertEqual(len(snapshots), 3)
        self.assertIsInstance(snapshots[0], StateSnapshot)
        self.assertEqual(snapshots[-1].simulation_time, 3.0)
        self.assertEqual(snapshots[-1].tick, 3)

        engine.remove_callback(snapshots.append)
        engine.update(1.0)
        self.assertEqual(len(snapshots), 3)

    def test_stage_callback(self):
        engine = make_engine()
        received = []
        engine.on_stage_change(lambda change, snapshot: received.append((change, snapshot)))

        engine.advance_to_next_stage()

        change, snapshot = received[0]
        self.assertEqual(change.to_stage, Stage.COMEDONE)
        self.assertEqual(snapshot.stage, 'comedone')
        self.assertEqual(snapshot.sebum_level, T.sebum)

    def test_periodic_log(self):
        engine = make_engine()
        engine.run_for(25, dt=1.0)
        lines = engine.logger.search("Time: ")
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].message.startswith("Time: 10.0h, Stage:"))

    def test_stage_change_logged(self):
        engine = make_engine()
        engine.advance_to_next_stage()
        entries = engine.logger.get_by_category("stage")
        self.assertEqual(entries[-1].message, "incubation -> comedone")
        self.assertEqual(entries[-1].data['cause'], 'manual_advance')

    def test_levels_in_bounds_for_any_parameters(self):
        rng = random.Random(7)
        violations = []

        def check(snapshot):
            for name, value in snapshot.to_dict().items():
                if name.endswith('_level') or name == 'healing_progress':
                    if not 0.0 <= value <= 100.0:
                        violations.append((name, value))

        for _ in range(15):
            engine = make_engine(log_level="none")
            for name in PARAMETER_NAMES:
                engine.set_param(name, rng.randint(0, 1000))
            engine.set_progression_accelerator(rng.uniform(0.1, 10.0))
            engine.on_tick(check)
            engine.run_for(200, dt=1.0)

        self.assertEqual(violations, [])

    def test_independent_engines(self):
        first = make_engine()
        second = make_engine()

        first.set_bacteria_param(900)
        first.advance_to_next_stage()
        first.run_for(5, dt=1.0)

        self.assertEqual(second.get_param('bacteria'), 200)
        self.assertEqual(second.simulation_stage, Stage.INCUBATION)
        self.assertEqual(second.simulation_time, 0.0)

    def test_get_state(self):
        engine = make_engine()
        engine.update(1.0)
        state = engine.get_state()

        for key in ('simulation_time', 'formatted_time', 'stage', 'stage_progress',
                    'stage_info', 'levels', 'params', 'rates', 'stats'):
            self.assertIn(key, state)
        self.assertEqual(state['stats']['total_ticks'], 1)
        self.assertIn("incubation", repr(engine))


def run_tests():
    """Run all engine tests."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestEngineParameters))
    suite.addTests(loader.loadTestsFromTestCase(TestNaturalProgression))
    suite.addTests(loader.loadTestsFromTestCase(TestMedication))
    suite.addTests(loader.loadTestsFromTestCase(TestManualControl))
    suite.addTests(loader.loadTestsFromTestCase(TestEngineRuntime))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    success = run_tests()
    sys.exit(0 if success else 1)
