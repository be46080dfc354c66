BASE_LIN_NODES = "base_lin"
BASE_ANG_NODES = "base_ang"
EE_LOAD = "ee_load"


def ee_motion_nodes(ee: int) -> str:
    return f"ee_motion_{ee}"


def ee_force_nodes(ee: int) -> str:
    return f"ee_force_{ee}"


def ee_schedule(ee: int) -> str:
    return f"ee_schedule_{ee}"
