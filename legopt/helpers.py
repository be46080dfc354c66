import math

import numpy as np
import jax
import jax.numpy as jnp
from jax import jacfwd, jit
from scipy.spatial.transform import Rotation

# Derivative blocks are compared against float64 node values
jax.config.update("jax_enable_x64", True)


def euler_zyx_to_matrix(phi):
    """
    Convert Euler angles to the base-to-world rotation matrix.

    Args:
        phi: (roll, pitch, yaw), applied in Z-Y'-X'' order: R = Rz(yaw) Ry(pitch) Rx(roll)

    Returns:
        3x3 rotation matrix
    """
    roll, pitch, yaw = phi[0], phi[1], phi[2]

    cx, cy, cz = jnp.cos(roll), jnp.cos(pitch), jnp.cos(yaw)
    sx, sy, sz = jnp.sin(roll), jnp.sin(pitch), jnp.sin(yaw)

    R = jnp.array([
        [cz*cy, cz*sy*sx - sz*cx, cz*sy*cx + sz*sx],
        [sz*cy, sz*sy*sx + cz*cx, sz*sy*cx - cz*sx],
        [-sy,   cy*sx,            cy*cx]
    ])
    return R


def euler_rates_to_world_matrix(phi):
    """
    Matrix mapping Euler rates (roll, pitch, yaw) to the angular velocity in world frame.
    """
    pitch, yaw = phi[1], phi[2]
    cy, cz = jnp.cos(pitch), jnp.cos(yaw)
    sy, sz = jnp.sin(pitch), jnp.sin(yaw)
    return jnp.array([
        [cz*cy, -sz, 0.0],
        [sz*cy,  cz, 0.0],
        [-sy,   0.0, 1.0],
    ])


def rotate_into_base(phi, v):
    """Express world vector v in the base frame given by Euler angles phi."""
    return euler_zyx_to_matrix(phi).T @ v


# d(R(phi)^T v)/d(phi), shape (3, 3)
rotate_into_base_jacobian = jit(jacfwd(rotate_into_base, argnums=0))
_euler_rates_to_world_matrix_derivative = jit(jacfwd(euler_rates_to_world_matrix))


def angular_velocity_in_world(phi, phi_dot):
    E = np.asarray(euler_rates_to_world_matrix(jnp.asarray(phi)))
    return E @ np.asarray(phi_dot)


def angular_acceleration_in_world(phi, phi_dot, phi_ddot):
    """
    w_dot = E(phi) * phi_ddot + E_dot(phi, phi_dot) * phi_dot
    """
    E = np.asarray(euler_rates_to_world_matrix(jnp.asarray(phi)))
    dE = np.asarray(_euler_rates_to_world_matrix_derivative(jnp.asarray(phi)))  # (3,3,3)
    E_dot = dE @ np.asarray(phi_dot)
    return E @ np.asarray(phi_ddot) + E_dot @ np.asarray(phi_dot)


def euler_to_quaternion(phi) -> np.ndarray:
    """Quaternion (x, y, z, w) of the base-to-world rotation."""
    roll, pitch, yaw = phi
    return Rotation.from_euler("ZYX", [yaw, pitch, roll]).as_quat()


def quaternion_to_euler(q) -> np.ndarray:
    """Inverse of euler_to_quaternion, returns (roll, pitch, yaw)."""
    yaw, pitch, roll = Rotation.from_quat(q).as_euler("ZYX")
    return np.array([roll, pitch, yaw])


def wrap_to_pi(angle: float) -> float:
    """Wrap an angle into [-pi, pi)."""
    if -math.pi <= angle < math.pi:
        return angle
    wrapped = (angle + math.pi) % (2.0 * math.pi) - math.pi
    # rounding maps angles just below -pi onto +pi
    if wrapped >= math.pi:
        wrapped -= 2.0 * math.pi
    return wrapped


def get_unique_euler_zyx(zyx, tol: float = 1e-3) -> np.ndarray:
    """
    Map a Z-Y-X Euler triple onto its canonical representative.

    The result has the middle angle in [-pi/2, pi/2] and the outer angles in
    [-pi, pi). Inside the band |y -+ pi/2| <= tol only the combination of
    first and third angle is observable, so the third is folded into the first
    and set to zero.

    Args:
        zyx: (z, y, x) angles, i.e. (yaw, pitch, roll)
        tol: half-width of the gimbal-lock band around +-pi/2

    Returns:
        canonical (z, y, x) triple
    """
    z, y, x = (wrap_to_pi(float(a)) for a in zyx)

    if y > math.pi / 2 or y < -math.pi / 2:
        z = wrap_to_pi(z + math.pi)
        y = math.pi - y if y > 0 else -math.pi - y
        x = wrap_to_pi(x + math.pi)

    if y >= math.pi / 2 - tol:
        z = wrap_to_pi(z - x)
        x = 0.0
    elif y <= -math.pi / 2 + tol:
        z = wrap_to_pi(z + x)
        x = 0.0

    return np.array([z, y, x])


def bilinear_interp(heightmap, p, cell_length):
    """
    Bilinear interpolation for heightmaps. The center of the heightmap is at (0,0).
    Args:
        heightmap: 2D array representing the heightmap
        p: position vector, only x and y are used
        cell_length: length of one grid cell (float)

    Returns:
        Interpolated value at position p
    """
    h, w = heightmap.shape
    # Shift (0,0) to the center of the heightmap, scale by cell_length
    x = p[0] / cell_length + w / 2
    y = p[1] / cell_length + h / 2

    x0 = jnp.floor(x).astype(int)
    x1 = x0 + 1
    y0 = jnp.floor(y).astype(int)
    y1 = y0 + 1

    wx = x - x0
    wy = y - y0

    x0 = jnp.clip(x0, 0, w - 1)
    x1 = jnp.clip(x1, 0, w - 1)
    y0 = jnp.clip(y0, 0, h - 1)
    y1 = jnp.clip(y1, 0, h - 1)

    Q11 = heightmap[y0, x0]
    Q12 = heightmap[y1, x0]
    Q21 = heightmap[y0, x1]
    Q22 = heightmap[y1, x1]

    return (1 - wx) * (1 - wy) * Q11 + \
           (1 - wx) * wy * Q12 + \
           wx * (1 - wy) * Q21 + \
           wx * wy * Q22
