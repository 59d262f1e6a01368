# pid_core.py

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_KP = 0.0
DEFAULT_KI = 0.0
DEFAULT_KD = 0.0
DEFAULT_SETPOINT = 0.0
DEFAULT_OUTPUT_MAX = 0.0
DEFAULT_OUTPUT_MIN = 0.0

# Bounds closer together than this fraction of output_max count as equal,
# which leaves the output unconstrained.
UNCONSTRAINED_TOLERANCE = 0.0001


@dataclass(frozen=True)
class ConfigurationReport:
    """Invalid output bound pair, as it was before both bounds went to 0.

    Handed to the ``on_config_error`` callback and kept on
    ``PIDController.last_config_error``.
    """

    output_min: float
    output_max: float
    message: str

    def __str__(self):
        return self.message


@dataclass(frozen=True)
class ControllerState:
    kp: float
    ki: float
    kd: float
    setpoint: float
    output_min: float
    output_max: float
    error: float
    error_sum: float
    previous_measurement: float
    is_first_sample: bool


class PIDController:
    """Discrete PID controller with output clamping and anti-windup.

    One call to ``compute`` per sample. The controller has no notion of
    time: gains are per-sample, and the caller keeps the sampling interval
    constant.
    """

    def __init__(self, kp=DEFAULT_KP, ki=DEFAULT_KI, kd=DEFAULT_KD,
                 setpoint=DEFAULT_SETPOINT, output_min=DEFAULT_OUTPUT_MIN,
                 output_max=DEFAULT_OUTPUT_MAX, on_config_error=None):
        self._lock = threading.RLock()
        self.on_config_error = on_config_error
        self.last_config_error = None

        self._kp = abs(kp)
        self._ki = abs(ki)
        self._kd = abs(kd)
        self._setpoint = setpoint
        self._output_min = DEFAULT_OUTPUT_MIN
        self._output_max = DEFAULT_OUTPUT_MAX
        self.set_output_limits(output_min, output_max)

        self._error = 0.0
        self._error_sum = 0.0
        self._previous_measurement = 0.0
        self._first_sample = True

        self.last_p = 0.0
        self.last_i = 0.0
        self.last_d = 0.0

    # ------------------------------
    # Gains and setpoint
    # ------------------------------
    @property
    def kp(self):
        return self._kp

    @kp.setter
    def kp(self, value):
        with self._lock:
            self._kp = abs(value)

    @property
    def ki(self):
        return self._ki

    @ki.setter
    def ki(self, value):
        with self._lock:
            self._ki = abs(value)

    @property
    def kd(self):
        return self._kd

    @kd.setter
    def kd(self, value):
        with self._lock:
            self._kd = abs(value)

    @property
    def setpoint(self):
        return self._setpoint

    @setpoint.setter
    def setpoint(self, value):
        with self._lock:
            self._setpoint = value

    # ------------------------------
    # Output bounds
    # ------------------------------
    @property
    def output_max(self):
        return self._output_max

    @output_max.setter
    def output_max(self, value):
        with self._lock:
            self._output_max = value
            self._check_output_limits()

    @property
    def output_min(self):
        return self._output_min

    @output_min.setter
    def output_min(self, value):
        with self._lock:
            self._output_min = value
            self._check_output_limits()

    def set_output_limits(self, output_min, output_max):
        """Assign both bounds, then validate the pair once.

        Unlike the single-bound setters this cannot trip on a transient
        cross-over while moving both bounds.
        """
        with self._lock:
            self._output_min = output_min
            self._output_max = output_max
            return self._check_output_limits()

    def is_output_constrained(self) -> bool:
        """True unless the bounds are equal to within 0.01% of output_max."""
        with self._lock:
            spread = abs(self._output_max - self._output_min)
            return spread > abs(UNCONSTRAINED_TOLERANCE * self._output_max)

    def _check_output_limits(self):
        if self._output_min <= self._output_max:
            return True

        message = (
            f"output_min ({self._output_min}) is greater than output_max "
            f"({self._output_max}); resetting both to 0. To avoid this, set "
            "output_max first when the upper bound is above zero and "
            "output_min first when the lower bound is below zero, or use "
            "set_output_limits()."
        )
        report = ConfigurationReport(self._output_min, self._output_max, message)
        self._output_min = 0.0
        self._output_max = 0.0
        self.last_config_error = report

        logger.error("%s", message)
        if self.on_config_error is not None:
            self.on_config_error(report)
        return False

    # ------------------------------
    # Runtime state (read-only)
    # ------------------------------
    @property
    def error(self):
        return self._error

    @property
    def error_sum(self):
        return self._error_sum

    @property
    def previous_measurement(self):
        return self._previous_measurement

    @property
    def is_first_sample(self):
        return self._first_sample

    def state(self) -> ControllerState:
        with self._lock:
            return ControllerState(
                kp=self._kp,
                ki=self._ki,
                kd=self._kd,
                setpoint=self._setpoint,
                output_min=self._output_min,
                output_max=self._output_max,
                error=self._error,
                error_sum=self._error_sum,
                previous_measurement=self._previous_measurement,
                is_first_sample=self._first_sample,
            )

    # ------------------------------
    # Control loop
    # ------------------------------
    def compute(self, measured_value) -> float:
        """Return the controller output for one measurement of the process."""
        with self._lock:
            error = self._setpoint - measured_value
            self._error = error

            # no derivative kick on the first sample
            if self._first_sample:
                self._previous_measurement = measured_value
                self._first_sample = False

            p_term = self._kp * error
            i_term = self._ki * self._error_sum  # accumulator before this sample
            d_term = -self._kd * (measured_value - self._previous_measurement)
            output = p_term + i_term + d_term

            constrained = self.is_output_constrained()
            if constrained:
                output = min(max(output, self._output_min), self._output_max)

            # anti-windup: saturated output keeps only the current error
            if constrained and (output >= self._output_max or output <= self._output_min):
                self._error_sum = error
            else:
                self._error_sum += error

            self._previous_measurement = measured_value
            self.last_p = p_term
            self.last_i = i_term
            self.last_d = d_term
            return output

    def reset(self):
        """Clear error history. Gains, setpoint and bounds are kept."""
        with self._lock:
            self._error = 0.0
            self._error_sum = 0.0
            self._first_sample = True
            self.last_p = 0.0
            self.last_i = 0.0
            self.last_d = 0.0
