import logging

import numpy as np

from .composite import VariableSet, make_bounds
from .variable_names import EE_LOAD

logger = logging.getLogger(__name__)


class EndeffectorLoad(VariableSet):
    """
    Normalized contact load of every leg at a set of sampled times.

    Value (k, ee) is stored at row k*n_ee + ee. A leg not in contact at a
    sample (by the schedule at build time) carries no load, bounds [0, 0];
    contact legs are bounded to [0, 1]. Times where no leg is in contact
    cannot share any load and are left out.
    """

    def __init__(self, n_ee: int, sample_times, phase_durations: list):
        contact = np.array([[d.is_contact_phase(t) for d in phase_durations]
                            for t in sample_times], dtype=bool).reshape(-1, n_ee)
        supported = contact.any(axis=1)
        if not supported.all():
            logger.debug("Load not sampled at %d flight instants", int((~supported).sum()))
        self._sample_times = np.asarray(sample_times, dtype=float)[supported]
        self._contact = contact[supported]
        self._n_ee = n_ee
        super().__init__(self._contact.size, EE_LOAD)

        n_contacts = self._contact.sum(axis=1, keepdims=True)
        self._load = np.where(self._contact, 1.0 / np.maximum(n_contacts, 1), 0.0).reshape(-1)
        self._bounds = make_bounds(self.get_rows(), (0.0, 1.0))
        self._bounds[~self._contact.reshape(-1)] = (0.0, 0.0)

    def get_values(self) -> np.ndarray:
        return self._load.copy()

    def set_variables(self, x: np.ndarray):
        self._load = np.asarray(x, dtype=float).copy()

    def get_bounds(self) -> np.ndarray:
        return self._bounds.copy()

    def get_sample_times(self) -> np.ndarray:
        return self._sample_times

    def get_ee_count(self) -> int:
        return self._n_ee

    def get_index(self, k: int, ee: int) -> int:
        return k * self._n_ee + ee

    def get_load(self, k: int, ee: int) -> float:
        return float(self._load[self.get_index(k, ee)])

    def get_load_at_time(self, t: float) -> np.ndarray:
        """Load of every leg at the sample closest to t."""
        k = int(np.argmin(np.abs(self._sample_times - t)))
        return self._load[k * self._n_ee:(k + 1) * self._n_ee].copy()
