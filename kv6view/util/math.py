from __future__ import annotations
import numpy as np

def normalize(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    if n == 0:
        return v
    return v / n

def basis_view(right: np.ndarray, up: np.ndarray, forward: np.ndarray, eye: np.ndarray) -> np.ndarray:
    """Return a column-major view matrix suitable for OpenGL.

    Rows of the rotation are right, up and -forward; the eye is moved to the origin.
    """
    m = np.eye(4, dtype=np.float32)
    m[0, 0] = right[0]; m[1, 0] = right[1]; m[2, 0] = right[2]
    m[0, 1] = up[0]; m[1, 1] = up[1]; m[2, 1] = up[2]
    m[0, 2] = -forward[0]; m[1, 2] = -forward[1]; m[2, 2] = -forward[2]
    m[3, 0] = -np.dot(right, eye)
    m[3, 1] = -np.dot(up, eye)
    m[3, 2] = np.dot(forward, eye)
    return m

def perspective(fov_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Return a column-major projection matrix suitable for OpenGL."""
    f = 1.0 / np.tan(np.deg2rad(fov_deg) / 2.0)
    m = np.zeros((4, 4), dtype=np.float32)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = -1.0
    m[3, 2] = (2.0 * far * near) / (near - far)
    return m

def translation(offset: np.ndarray) -> np.ndarray:
    """Return a column-major translation matrix."""
    m = np.eye(4, dtype=np.float32)
    m[3, 0:3] = np.asarray(offset, dtype=np.float32)
    return m
