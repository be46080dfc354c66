import logging

import numpy as np

from legopt import (BaseState, MotionOptimizer, Parameters, State, CostName,
                    make_robot_model, make_terrain, trajectory_to_arrays)
from legopt.solver import IpoptSolver

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

model = make_robot_model("monoped")
terrain = make_terrain("flat")

# Monoped: four stance phases with three flight phases in between, 2 seconds
params = Parameters(
    total_duration=2.0,
    ee_phase_durations=[[0.4, 0.2, 0.4, 0.2, 0.4, 0.2, 0.2]],
    ee_in_contact_at_start=[True],
    costs={CostName.BASE_LIN_ACC: 1e-3},
)
# params.optimize_phase_durations()

initial_base = BaseState(lin=State(p=np.array([0.0, 0.0, 0.5])))
final_base = BaseState(lin=State(p=np.array([1.0, 0.0, 0.5])))
foot_W = np.array([0.0, 0.0, terrain.get_height(0.0, 0.0)])

optimizer = MotionOptimizer(model, terrain, params)
optimizer.set_initial_state(initial_base, [foot_W])
optimizer.set_final_state(final_base)

problem = optimizer.build_nlp()
info = optimizer.solve_nlp(IpoptSolver({"max_cpu_time": 20.0}))
problem.print_current()

trajectory = optimizer.get_trajectory(dt=0.1)
times, base_positions, base_rotations, feet_positions, forces, contacts = trajectory_to_arrays(trajectory)

print(f"{optimizer.get_iteration_count()} iterations, IPOPT status {info['status']}")
for t, p_b, p_f, f, c in zip(times, base_positions, feet_positions[:, 0], forces[:, 0], contacts[:, 0]):
    print(f"t={t:4.2f}  base={np.round(p_b, 3)}  foot={np.round(p_f, 3)}  "
          f"f_z={f[2]:8.2f}  {'contact' if c else 'swing'}")
