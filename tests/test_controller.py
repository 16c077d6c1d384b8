import logging

import numpy as np
import pytest

from de_studio.controller import PARAMETER_RANGES, ConfigError, DEConfig, RunController
from de_studio.population import make_rng


@pytest.fixture
def controller():
    return RunController(DEConfig(population_size=8, max_iterations=50), rng=make_rng(3))


class TestDEConfig:
    def test_defaults_are_valid(self):
        cfg = DEConfig()
        assert cfg.validate() is cfg
        assert (cfg.F, cfg.CR) == (0.8, 0.9)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("population_size", 3),
            ("population_size", 37),
            ("population_size", 5.5),
            ("crossover_probability", -0.1),
            ("crossover_probability", 1.01),
            ("differential_weight", 2.5),
            ("differential_weight", float("nan")),
            ("max_iterations", 0),
            ("max_iterations", 1001),
            ("step_interval_ms", 29),
            ("step_interval_ms", 1001),
        ],
    )
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ConfigError) as exc:
            DEConfig().replace(**{field: value}).validate()
        assert field in str(exc.value)

    def test_boundary_values_accepted(self):
        for name, rng in PARAMETER_RANGES.items():
            DEConfig().replace(**{name: rng.minimum}).validate()
            DEConfig().replace(**{name: rng.maximum}).validate()

    def test_numpy_integers_accepted(self):
        cfg = DEConfig(population_size=np.int64(12)).validate()
        assert cfg.population_size == 12
        assert type(cfg.population_size) is int

    def test_integral_floats_become_ints(self):
        cfg = DEConfig(population_size=8.0, max_iterations=5.0, step_interval_ms=np.int32(200)).validate()
        assert (cfg.population_size, cfg.max_iterations, cfg.step_interval_ms) == (8, 5, 200)
        for name in ("population_size", "max_iterations", "step_interval_ms"):
            assert type(getattr(cfg, name)) is int
        assert f"{cfg.population_size:2d}" == " 8"

    def test_float_parameters_left_alone(self):
        cfg = DEConfig(differential_weight=1, crossover_probability=0.5).validate()
        assert cfg.differential_weight == 1
        assert cfg.crossover_probability == 0.5

    def test_clamped(self):
        cfg = DEConfig(
            population_size=2,
            crossover_probability=1.7,
            differential_weight=-1.0,
            max_iterations=5000,
            step_interval_ms=10,
        ).clamped()
        assert cfg == DEConfig(
            population_size=4,
            crossover_probability=1.0,
            differential_weight=0.0,
            max_iterations=1000,
            step_interval_ms=30,
        )
        cfg.validate()

    def test_unknown_parameter(self):
        with pytest.raises(ConfigError):
            DEConfig().replace(mutation_rate=0.1)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestLifecycle:
    def test_initial_state_is_idle(self, controller):
        assert controller.state == "idle"
        assert not controller.running
        assert controller.generation == 0
        assert controller.prev_population is None
        assert controller.trace == []
        assert len(controller.population) == 8

    def test_invalid_config_rejected_at_construction(self):
        with pytest.raises(ConfigError):
            RunController(DEConfig(population_size=3))

    def test_start_stop_toggle(self, controller):
        controller.start()
        assert controller.running and controller.state == "running"
        controller.stop()
        assert not controller.running
        assert controller.toggle() is True
        assert controller.toggle() is False

    def test_manual_step_keeps_running_flag(self, controller):
        controller.step()
        assert not controller.running
        assert controller.state == "paused"

        controller.start()
        controller.step()
        assert controller.running
        assert controller.generation == 2

    def test_step_updates_read_model(self, controller):
        before = list(controller.population)
        result = controller.step()
        assert result is not None
        assert controller.generation == 1
        assert controller.prev_population == before
        assert controller.trace == result.trace
        assert len(controller.trace) == 8
        assert controller.population == result.next_population

    def test_trace_replaced_each_generation(self, controller):
        first = controller.step().trace
        second = controller.step().trace
        assert controller.trace is second
        assert controller.trace is not first
        assert len(controller.trace) == 8

    def test_tick_only_steps_while_running(self, controller):
        assert controller.tick() is False
        assert controller.generation == 0

        controller.start()
        assert controller.tick() is True
        assert controller.tick() is True
        assert controller.generation == 2

        controller.stop()
        assert controller.tick() is False
        assert controller.generation == 2
        assert len(controller.trace) == 8

    def test_identity_preserved_across_generations(self, controller):
        colors = [p.color for p in controller.population]
        controller.run(30)
        assert [p.color for p in controller.population] == colors


class TestWraparound:
    def test_third_step_reinitializes(self):
        ctl = RunController(DEConfig(population_size=10, max_iterations=2), rng=make_rng(11))
        ctl.step()
        ctl.step()
        assert ctl.generation == 2
        assert ctl.prev_population is not None

        before = [(p.x, p.y) for p in ctl.population]
        assert ctl.step() is None

        assert ctl.generation == 0
        assert ctl.trace == []
        assert ctl.prev_population is None
        assert len(ctl.population) == 10
        assert [(p.x, p.y) for p in ctl.population] != before

    def test_lowering_max_iterations_applies_on_next_step(self, controller):
        controller.run(5)
        controller.set_parameters(max_iterations=3)
        assert controller.generation == 5
        assert controller.step() is None
        assert controller.generation == 0

    def test_wraparound_logged(self, caplog):
        ctl = RunController(DEConfig(max_iterations=1), rng=make_rng(0))
        ctl.step()
        with caplog.at_level(logging.INFO, logger="de_studio.controller"):
            ctl.step()
        assert "restarting experiment" in caplog.text


class TestIdleState:
    def test_wraparound_while_paused_stays_paused(self):
        ctl = RunController(DEConfig(population_size=6, max_iterations=1), rng=make_rng(4))
        ctl.step()
        assert ctl.state == "paused"
        assert ctl.step() is None
        assert ctl.generation == 0
        assert ctl.state == "paused"

    def test_population_change_after_steps_stays_paused(self, controller):
        controller.run(3)
        controller.set_parameters(population_size=10)
        assert controller.generation == 0
        assert controller.state == "paused"

    def test_population_change_before_any_step_stays_idle(self, controller):
        controller.set_parameters(population_size=10)
        assert controller.state == "idle"

    def test_stop_after_start_is_paused(self, controller):
        controller.start()
        controller.stop()
        assert controller.generation == 0
        assert controller.state == "paused"

    def test_reset_returns_to_idle(self, controller):
        controller.run(2)
        controller.reset()
        assert controller.state == "idle"
        controller.step()
        assert controller.state == "paused"


class TestReset:
    def test_reset_clears_state(self, controller):
        controller.start()
        controller.run(7)
        old = list(controller.population)

        controller.reset()

        assert controller.generation == 0
        assert controller.prev_population is None
        assert controller.trace == []
        assert not controller.running
        assert controller.state == "idle"
        assert len(controller.population) == controller.config.population_size
        assert controller.population != old
        assert controller.best_history == [controller.best_fitness]


class TestSetParameters:
    def test_population_size_change_reinitializes(self, controller):
        controller.run(4)
        controller.set_parameters(population_size=12)
        assert len(controller.population) == 12
        assert controller.generation == 0
        assert controller.prev_population is None
        assert controller.trace == []

    def test_other_changes_keep_population(self, controller):
        controller.run(3)
        pop = list(controller.population)
        cfg = controller.set_parameters(differential_weight=0.5, crossover_probability=0.2, step_interval_ms=500)
        assert controller.population == pop
        assert controller.generation == 3
        assert (cfg.F, cfg.CR, cfg.step_interval_ms) == (0.5, 0.2, 500)
        assert controller.config is cfg

    def test_new_cr_takes_effect_on_next_step(self, controller):
        controller.set_parameters(crossover_probability=0.0)
        result = controller.step()
        for rec in result.trace:
            assert rec.sources().count("mutant") == 1

    def test_rejected_change_leaves_state_untouched(self, controller, caplog):
        controller.run(2)
        pop = controller.population
        cfg = controller.config
        with caplog.at_level(logging.WARNING, logger="de_studio.controller"):
            with pytest.raises(ConfigError):
                controller.set_parameters(population_size=3)
        assert controller.population is pop
        assert controller.config is cfg
        assert controller.generation == 2
        assert "Rejected parameter change" in caplog.text

    def test_set_parameters_coerces_integral_floats(self, controller):
        cfg = controller.set_parameters(population_size=12.0, max_iterations=40.0)
        assert type(cfg.population_size) is int
        assert type(cfg.max_iterations) is int
        assert len(controller.population) == 12

    def test_unknown_parameter_rejected(self, controller):
        with pytest.raises(ConfigError):
            controller.set_parameters(seed=1)


class TestObservers:
    def test_subscribe_and_unsubscribe(self, controller):
        seen = []
        unsubscribe = controller.subscribe(lambda c: seen.append(c.generation))
        controller.step()
        controller.start()
        controller.reset()
        assert seen == [1, 1, 0]

        unsubscribe()
        controller.step()
        assert seen == [1, 1, 0]


def test_snapshot_is_read_only_copy(controller):
    controller.step()
    snap = controller.snapshot()
    assert snap.generation == 1
    assert snap.population == tuple(controller.population)
    assert len(snap.trace) == 8
    assert snap.state == "paused"
    controller.step()
    assert snap.generation == 1


def test_history_tracks_generations(controller):
    best = controller.run(10)
    assert len(best) == 11
    assert len(controller.diversity_history) == 11
    assert all(b2 <= b1 for b1, b2 in zip(best, best[1:]))


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_convergence_trend(seed):
    ctl = RunController(
        DEConfig(population_size=20, differential_weight=0.8, crossover_probability=0.9, max_iterations=1000),
        rng=make_rng(seed),
    )
    initial = ctl.best_fitness
    ctl.run(200)
    assert ctl.generation == 200
    assert ctl.best_fitness < initial
