from abc import ABC, abstractmethod

import numpy as np
import jax.numpy as jnp
from jax import jacfwd, jit
from scipy import ndimage

from .exceptions import ConfigurationError
from .helpers import bilinear_interp


def get_flat_heightmap(a=200, b=200, height=0.0):
    """
    Generate a flat heightmap with a constant height.
    a: number of rows
    b: number of columns
    height: constant height value
    """
    return np.full((a, b), height, dtype=float)


def get_stairs_heightmap(a=200, b=200, step_height=0.1, step_depth=15, start_col=110):
    """
    Generate a heightmap representing stairs rising in the x direction (columns).
    a: number of rows
    b: number of columns
    step_height: height increment for each step
    step_depth: depth (number of columns) per step
    start_col: the column index where the first step starts
    """
    heightmap = np.zeros((a, b))
    num_steps = (b - start_col) // step_depth
    for step in range(num_steps):
        col_start = start_col + step * step_depth
        col_end = min(start_col + (step + 1) * step_depth, b)
        heightmap[:, col_start:col_end] = step_height * (step + 1)
    return heightmap


def get_heightmap_ramp(a=200, b=200, ramp_height=0.3, ramp_depth=50, start_col=110):
    """
    Generate a heightmap representing a linear ramp rising in the x direction (columns),
    holding its final height after the ramp.
    """
    heightmap = np.zeros((a, b), dtype=float)
    col_start = max(0, int(start_col))
    col_end = min(int(start_col + ramp_depth), b)
    if col_start >= col_end:
        return heightmap
    heightmap[:, col_start:col_end] = np.linspace(0.0, float(ramp_height), col_end - col_start)
    heightmap[:, col_end:] = ramp_height
    return heightmap


def compute_heightmap_gradients(height_map, grid_cell_length):
    """
    Compute gradients using 1D 5-point central finite difference kernel
    Returns:
        gradient_x: Gradient in x direction
        gradient_y: Gradient in y direction
    """
    # convolve1d flips the kernel, so this is the (f[-2] - 8f[-1] + 8f[1] - f[2]) / 12h stencil
    kernel = np.array([-1, 8, 0, -8, 1]) / (12 * grid_cell_length)
    gradient_x = ndimage.convolve1d(height_map, kernel, axis=1, mode="nearest")
    gradient_y = ndimage.convolve1d(height_map, kernel, axis=0, mode="nearest")
    return gradient_x, gradient_y


def get_smoothed_heightmap(h_raw, sigma=1.0):
    """Gaussian filtered heightmap."""
    return ndimage.gaussian_filter(h_raw, sigma, mode="nearest")


class HeightMap(ABC):
    """
    Read-only terrain model: height, surface basis and friction over the
    horizontal plane.
    """

    def __init__(self, friction_coeff: float = 0.5):
        self.friction_coeff = friction_coeff

    @abstractmethod
    def get_height(self, x: float, y: float) -> float:
        ...

    @abstractmethod
    def get_height_derivatives(self, x: float, y: float) -> np.ndarray:
        """(dh/dx, dh/dy)"""
        ...

    @abstractmethod
    def get_basis(self, x: float, y: float) -> np.ndarray:
        """Rows: surface normal, tangent in x, tangent in y (all unit length)."""
        ...

    @abstractmethod
    def get_basis_derivatives(self, x: float, y: float) -> np.ndarray:
        """d(basis)/d(x, y), shape (3, 3, 2)."""
        ...

    def get_normal(self, x: float, y: float) -> np.ndarray:
        return self.get_basis(x, y)[0]

    def get_friction_coeff(self) -> float:
        return self.friction_coeff


class GridHeightMap(HeightMap):
    """
    Height map sampled on a regular grid centered at the world origin.

    Heights are bilinearly interpolated; the surface basis uses finite
    difference gradients of the smoothed map so normals vary continuously.
    Derivatives come from jax.
    """

    def __init__(self, heightmap, grid_cell_length: float, friction_coeff: float = 0.5,
                 smoothing_sigma: float = 1.0):
        super().__init__(friction_coeff)
        h = np.asarray(heightmap, dtype=float)
        if h.ndim != 2:
            raise ConfigurationError(f"Heightmap must be 2D, got shape {h.shape}")
        self.grid_cell_length = float(grid_cell_length)
        gx, gy = compute_heightmap_gradients(get_smoothed_heightmap(h, smoothing_sigma),
                                             self.grid_cell_length)
        self._h = jnp.asarray(h)
        self._gx = jnp.asarray(gx)
        self._gy = jnp.asarray(gy)

        self._height = jit(self._height_fn)
        self._height_grad = jit(jacfwd(self._height_fn))
        self._basis = jit(self._basis_fn)
        self._basis_jac = jit(jacfwd(self._basis_fn))

    def _height_fn(self, xy):
        return bilinear_interp(self._h, xy, self.grid_cell_length)

    def _basis_fn(self, xy):
        hx = bilinear_interp(self._gx, xy, self.grid_cell_length)
        hy = bilinear_interp(self._gy, xy, self.grid_cell_length)
        n = jnp.array([-hx, -hy, 1.0])
        t1 = jnp.array([1.0, 0.0, hx])
        t2 = jnp.array([0.0, 1.0, hy])
        return jnp.stack([n / jnp.linalg.norm(n),
                          t1 / jnp.linalg.norm(t1),
                          t2 / jnp.linalg.norm(t2)])

    def get_height(self, x, y):
        return float(self._height(jnp.array([x, y], dtype=float)))

    def get_height_derivatives(self, x, y):
        return np.asarray(self._height_grad(jnp.array([x, y], dtype=float)))

    def get_basis(self, x, y):
        return np.asarray(self._basis(jnp.array([x, y], dtype=float)))

    def get_basis_derivatives(self, x, y):
        return np.asarray(self._basis_jac(jnp.array([x, y], dtype=float)))


_TERRAINS = {
    "flat": lambda: get_flat_heightmap(),
    "stairs": lambda: get_stairs_heightmap(),
    "ramp": lambda: get_heightmap_ramp(),
}


def make_terrain(name: str = "flat", grid_cell_length: float = 0.02,
                 friction_coeff: float = 0.5) -> GridHeightMap:
    if name not in _TERRAINS:
        raise ConfigurationError(f"Unknown terrain '{name}'", context=f"valid: {sorted(_TERRAINS)}")
    return GridHeightMap(_TERRAINS[name](), grid_cell_length, friction_coeff)
