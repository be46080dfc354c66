import numpy as np

from .composite import VariableSet, make_bounds
from .exceptions import ConfigurationError
from .variable_names import ee_schedule


def check_phase_durations(timings, t_total: float, ee: int, rtol: float = 1e-9):
    timings = np.asarray(timings, dtype=float)
    if timings.ndim != 1 or timings.size == 0:
        raise ConfigurationError(f"Leg {ee} needs at least one phase duration")
    if np.any(timings <= 0.0):
        raise ConfigurationError(f"Leg {ee} has non-positive phase durations {timings.tolist()}")
    if not np.isclose(timings.sum(), t_total, rtol=rtol, atol=1e-9):
        raise ConfigurationError(
            f"Phase durations of leg {ee} sum to {timings.sum():.6f}s, expected {t_total:.6f}s")


class PhaseDurations(VariableSet):
    """
    Alternating contact/swing phases of one leg.

    Only registered with the problem when the timings are optimized; the
    splines read the current durations on every query either way.
    """

    def __init__(self, ee: int, timings, is_first_phase_in_contact: bool,
                 min_phase_duration: float, max_phase_duration: float, t_total: float = None):
        timings = np.asarray(timings, dtype=float)
        t_total = float(timings.sum()) if t_total is None else float(t_total)
        check_phase_durations(timings, t_total, ee)
        super().__init__(timings.size, ee_schedule(ee))
        self._ee = ee
        self._durations = timings.copy()
        self._t_total = t_total
        self._initial_contact_state = bool(is_first_phase_in_contact)
        self._bounds = make_bounds(timings.size, (min_phase_duration, max_phase_duration))

    def get_values(self) -> np.ndarray:
        return self._durations.copy()

    def set_variables(self, x: np.ndarray):
        self._durations = np.asarray(x, dtype=float).copy()

    def get_bounds(self) -> np.ndarray:
        return self._bounds.copy()

    def get_durations(self) -> np.ndarray:
        return self._durations

    def get_total_time(self) -> float:
        return self._t_total

    def get_phase_count(self) -> int:
        return self._durations.size

    def get_ee(self) -> int:
        return self._ee

    def is_contact(self, phase: int) -> bool:
        return (phase % 2 == 0) == self._initial_contact_state

    def get_contact_flags(self) -> list:
        return [self.is_contact(p) for p in range(self.get_phase_count())]

    def get_phase_id(self, t: float, eps: float = 1e-10) -> int:
        ends = np.cumsum(self._durations)
        phase = int(np.searchsorted(ends, t - eps, side="left"))
        return min(phase, self._durations.size - 1)

    def is_contact_phase(self, t: float) -> bool:
        return self.is_contact(self.get_phase_id(t))
