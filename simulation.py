# simulation.py

from dataclasses import dataclass

import numpy as np


class FirstOrderPlant:
    """First-order lag, integrated with explicit Euler: tau*x' = gain*u - x."""

    def __init__(self, tau=1.0, gain=1.0, state=0.0):
        if tau <= 0:
            raise ValueError(f"tau must be positive, got {tau}")
        self.tau = tau
        self.gain = gain
        self.state = state

    def step(self, u, dt):
        self.state += (self.gain * u - self.state) * dt / self.tau
        return self.state


@dataclass
class SimulationResult:
    time: np.ndarray
    output: np.ndarray
    control: np.ndarray
    error: np.ndarray
    p: np.ndarray
    i: np.ndarray
    d: np.ndarray


def simulate(controller, plant, steps, dt=0.01):
    """Run the closed loop for ``steps`` samples spaced ``dt`` apart.

    The controller sees one measurement per step; ``dt`` only drives the
    plant and the time axis.
    """
    if steps <= 0:
        raise ValueError(f"steps must be positive, got {steps}")
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")

    time = np.arange(steps) * dt
    output = np.zeros(steps)
    control = np.zeros(steps)
    error = np.zeros(steps)
    p = np.zeros(steps)
    i = np.zeros(steps)
    d = np.zeros(steps)

    for k in range(steps):
        measured = plant.state
        u = controller.compute(measured)

        error[k] = controller.error
        control[k] = u
        p[k] = controller.last_p
        i[k] = controller.last_i
        d[k] = controller.last_d

        output[k] = plant.step(u, dt)

    return SimulationResult(time, output, control, error, p, i, d)
