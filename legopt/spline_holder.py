import copy

from .spline import NodeSpline, PhaseSpline


class SplineHolder:
    """
    Fully constructed splines linked to the optimization variables.

    Independent from whether the underlying nodes and durations are added to
    the problem as variable sets. Constraints and costs keep a reference to
    this object and query its splines; the values change only when the
    problem distributes a new variable vector.
    """

    def __init__(self, base_lin, base_ang, base_poly_durations,
                 ee_motion: list, ee_force: list, phase_durations: list,
                 durations_change: bool, ee_load=None):
        """
        Args:
            base_lin: nodes of the base linear motion
            base_ang: nodes of the base angular motion (Euler angles)
            base_poly_durations: duration of each base polynomial
            ee_motion: phase-based motion nodes per leg
            ee_force: phase-based force nodes per leg
            phase_durations: PhaseDurations per leg
            durations_change: True if the phase durations are optimized over
            ee_load: optional EndeffectorLoad shared by all legs
        """
        self.base_linear = NodeSpline(base_lin, base_poly_durations)
        self.base_angular = NodeSpline(base_ang, base_poly_durations)
        self.ee_motion = [PhaseSpline(n, d) for n, d in zip(ee_motion, phase_durations)]
        self.ee_force = [PhaseSpline(n, d) for n, d in zip(ee_force, phase_durations)]
        self.phase_durations = list(phase_durations)
        self.durations_change = durations_change
        self.ee_load = ee_load

    def get_ee_count(self) -> int:
        return len(self.ee_motion)

    def get_total_time(self) -> float:
        return self.base_linear.get_total_time()

    def snapshot(self) -> "SplineHolder":
        """Independent copy of all splines and their current values."""
        return copy.deepcopy(self)
