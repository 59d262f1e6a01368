import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from pid_core import ConfigurationReport, PIDController


def test_defaults_are_passive():
    pid = PIDController()
    assert pid.compute(3.0) == 0.0
    assert pid.compute(-7.5) == 0.0
    assert not pid.is_output_constrained()


@pytest.mark.parametrize("value", [0.0, 2.5, -2.5, -1e-9])
def test_gains_store_absolute_value(value):
    pid = PIDController()
    pid.kp = value
    pid.ki = value
    pid.kd = value
    assert pid.kp == abs(value)
    assert pid.ki == abs(value)
    assert pid.kd == abs(value)


def test_constructor_gains_are_normalized():
    pid = PIDController(kp=-1.0, ki=-2.0, kd=-3.0, setpoint=-4.0)
    assert (pid.kp, pid.ki, pid.kd) == (1.0, 2.0, 3.0)
    assert pid.setpoint == -4.0


def test_proportional_only():
    pid = PIDController(kp=1.0, setpoint=10.0)
    assert pid.compute(4.0) == pytest.approx(6.0)
    assert pid.compute(10.0) == pytest.approx(0.0)
    assert pid.compute(15.0) == pytest.approx(-5.0)
    assert pid.error == pytest.approx(-5.0)


def test_integral_uses_accumulator_before_sample():
    pid = PIDController(ki=1.0, setpoint=5.0)
    outputs = []
    sums = []
    for _ in range(3):
        outputs.append(pid.compute(4.0))
        sums.append(pid.error_sum)
    assert outputs == pytest.approx([0.0, 1.0, 2.0])
    assert sums == pytest.approx([1.0, 2.0, 3.0])


def test_anti_windup_resets_accumulator_to_error():
    pid = PIDController(ki=5.0, setpoint=100.0)
    pid.output_max = 10.0
    pid.output_min = -10.0

    assert pid.compute(0.0) == pytest.approx(0.0)
    assert pid.error_sum == pytest.approx(100.0)

    for _ in range(3):
        assert pid.compute(0.0) == pytest.approx(10.0)
        assert pid.error_sum == pytest.approx(100.0)


def test_saturation_at_lower_bound():
    pid = PIDController(kp=1.0, setpoint=-50.0, output_min=-10.0, output_max=10.0)
    assert pid.compute(0.0) == pytest.approx(-10.0)
    assert pid.error_sum == pytest.approx(-50.0)


def test_output_inside_bounds_accumulates():
    pid = PIDController(kp=1.0, setpoint=2.0, output_min=-10.0, output_max=10.0)
    assert pid.compute(0.0) == pytest.approx(2.0)
    assert pid.compute(0.0) == pytest.approx(2.0)
    assert pid.error_sum == pytest.approx(4.0)


def test_derivative_acts_on_measurement():
    pid = PIDController(kd=1.0)
    assert pid.compute(5.0) == pytest.approx(0.0)
    assert pid.compute(8.0) == pytest.approx(-3.0)
    assert pid.last_d == pytest.approx(-3.0)


def test_setpoint_change_does_not_kick_derivative():
    pid = PIDController(kd=2.0, setpoint=0.0)
    pid.compute(1.0)
    pid.setpoint = 100.0
    assert pid.compute(1.0) == pytest.approx(0.0)


def test_reset_clears_history_and_keeps_configuration():
    pid = PIDController(kp=0.5, ki=1.0, kd=1.0, setpoint=3.0, output_min=-5.0, output_max=5.0)
    pid.compute(5.0)
    pid.compute(8.0)

    pid.reset()
    assert pid.error == 0.0
    assert pid.error_sum == 0.0
    assert pid.is_first_sample
    assert (pid.kp, pid.ki, pid.kd, pid.setpoint) == (0.5, 1.0, 1.0, 3.0)
    assert (pid.output_min, pid.output_max) == (-5.0, 5.0)

    pid.compute(100.0)
    assert pid.last_d == 0.0
    assert pid.last_i == 0.0
    assert not pid.is_first_sample


@pytest.mark.parametrize("value", [0.0, 1.0, 42.0])
def test_equal_bounds_are_unconstrained(value):
    pid = PIDController()
    pid.output_max = value
    pid.output_min = value
    assert not pid.is_output_constrained()


def test_equal_negative_bounds_via_pair_setter():
    pid = PIDController()
    pid.set_output_limits(-3.0, -3.0)
    assert not pid.is_output_constrained()


def test_near_equal_bounds_are_unconstrained():
    pid = PIDController(kp=1.0, setpoint=1e6)
    pid.set_output_limits(9999.5, 10000.0)
    assert not pid.is_output_constrained()
    assert pid.compute(0.0) == pytest.approx(1e6)


def test_zero_upper_bound_constrains_any_spread():
    pid = PIDController()
    pid.set_output_limits(-1e-9, 0.0)
    assert pid.is_output_constrained()


def test_crossed_bounds_reset_to_zero(caplog):
    reports = []
    pid = PIDController(on_config_error=reports.append)
    pid.output_max = 5.0

    with caplog.at_level(logging.ERROR, logger="pid_core"):
        pid.output_min = 10.0

    assert pid.output_max == 0.0
    assert pid.output_min == 0.0
    assert not pid.is_output_constrained()
    assert len(reports) == 1
    assert isinstance(reports[0], ConfigurationReport)
    assert reports[0].output_min == 10.0
    assert reports[0].output_max == 5.0
    assert pid.last_config_error is reports[0]
    assert "output_min" in caplog.text


def test_bound_order_matters_for_single_setters():
    pid = PIDController()
    pid.output_min = -20.0
    pid.output_max = -10.0
    assert (pid.output_min, pid.output_max) == (-20.0, -10.0)
    assert pid.last_config_error is None

    pid = PIDController()
    pid.output_max = -10.0
    assert (pid.output_min, pid.output_max) == (0.0, 0.0)
    assert pid.last_config_error is not None


def test_pair_setter_validates_once():
    reports = []
    pid = PIDController(on_config_error=reports.append)
    assert pid.set_output_limits(-20.0, -10.0)
    assert (pid.output_min, pid.output_max) == (-20.0, -10.0)

    assert not pid.set_output_limits(10.0, 5.0)
    assert (pid.output_min, pid.output_max) == (0.0, 0.0)
    assert len(reports) == 1


def test_state_snapshot():
    pid = PIDController(kp=1.0, setpoint=2.0)
    pid.compute(1.5)
    state = pid.state()
    assert state.error == pytest.approx(0.5)
    assert state.error_sum == pytest.approx(0.5)
    assert state.previous_measurement == 1.5
    assert not state.is_first_sample
    with pytest.raises(AttributeError):
        state.kp = 3.0


def test_concurrent_compute_keeps_every_error():
    pid = PIDController(ki=1.0, setpoint=1.0)
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: pid.compute(0.0), range(1000)))
    assert pid.error_sum == pytest.approx(1000.0)


@pytest.mark.parametrize("value", [-1.0, -42.0])
def test_equal_negative_bounds_via_single_setters_stay_constrained(value):
    reports = []
    pid = PIDController(on_config_error=reports.append)
    pid.output_max = value
    pid.output_min = value
    assert len(reports) == 1
    assert (pid.output_min, pid.output_max) == (value, 0.0)
    assert pid.is_output_constrained()


def test_configuration_report_is_immutable():
    pid = PIDController()
    pid.set_output_limits(2.0, 1.0)
    report = pid.last_config_error
    assert isinstance(report, ConfigurationReport)
    assert str(report) == report.message
    with pytest.raises(AttributeError):
        report.output_min = 0.0
