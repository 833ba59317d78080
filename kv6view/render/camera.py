from __future__ import annotations

import numpy as np

from kv6view.config import (
    BOOST_FACTOR,
    FAR,
    FOV_DEG,
    MOUSE_SENSITIVITY,
    MOVEMENT_SPEED,
    NEAR,
    ROLL_CORRECTION,
    TICK_STEP,
    WORLD_UP,
)
from kv6view.render.controls import Action, KeyBindings, Movement
from kv6view.util.math import basis_view, normalize, perspective


def orthorotate(roll: float, yaw: float, pitch: float) -> np.ndarray:
    """Incremental rotation in the camera's (up, right, forward) frame.

    Row i holds the weights of the old (up, right, forward) vectors in new
    basis vector i.
    """
    cx, cy, cz = np.cos(roll), np.cos(yaw), np.cos(pitch)
    sx, sy, sz = np.sin(roll), np.sin(yaw), np.sin(pitch)
    return np.array([
        [sx * sz * sy + cx * cz, -cx * sz * sy + sx * cz, sz * cy],
        [-sx * cy, cx * cy, sy],
        [sx * cz * sy - cx * sz, -cx * cz * sy - sx * sz, cz * cy],
    ], dtype=np.float64)


class FreeCamera:
    """Free-flying camera with inertia.

    Simulation runs at a fixed step via ``tick``. Orientation is kept as three
    basis vectors that are rotated a little every tick; they are never
    re-orthonormalized. A small roll toward level is derived from how far
    ``right`` tilts out of the horizontal plane.

    Coordinate conventions:
    - +Z is world up.
    - View space looks down -Z with ``right`` as +X and ``up`` as +Y.
    """

    def __init__(
        self,
        position,
        forward,
        *,
        sensitivity: float = MOUSE_SENSITIVITY,
        speed: float = MOVEMENT_SPEED,
        dt: float = TICK_STEP,
    ) -> None:
        self.sensitivity = float(sensitivity)
        self.speed = float(speed)
        self.dt = float(dt)

        self.position = np.array(position, dtype=np.float64)
        self.velocity = np.zeros(3, dtype=np.float64)

        f = normalize(np.array(forward, dtype=np.float64))
        self.forward = f
        self.right = normalize(np.cross(f, np.array(WORLD_UP, dtype=np.float64)))
        self.up = np.cross(self.right, f)

        self.movement = Movement.NONE
        self._mx_delta = 0.0
        self._my_delta = 0.0

    # --- Input ---
    def handle_mouse(self, dx: float, dy: float) -> None:
        self._mx_delta += float(dx)
        self._my_delta += float(dy)

    def handle_key(self, key: int, pressed: bool, bindings: KeyBindings) -> Action | None:
        action = bindings.action_for(key)
        if action is not None and action.movement:
            self.set_movement(action.movement, pressed)
        return action

    def set_movement(self, flags: Movement, active: bool) -> None:
        if active:
            self.movement |= flags
        else:
            self.movement &= ~flags

    # --- Simulation ---
    def acceleration(self) -> np.ndarray:
        dt = self.dt
        m = self.movement
        acc = np.zeros(3, dtype=np.float64)
        if m & Movement.FORWARD:
            acc += self.forward * dt
        if m & Movement.BACK:
            acc -= self.forward * dt
        if m & Movement.LEFT:
            acc -= self.right * dt
        if m & Movement.RIGHT:
            acc += self.right * dt
        if m & Movement.UP:
            acc += self.up * dt
        if m & Movement.DOWN:
            acc -= self.up * dt

        n = float(np.linalg.norm(acc))
        if n > 0.0:
            unit = acc / n
            if np.all(np.isfinite(unit)):
                acc = unit

        if m & Movement.BOOST:
            acc *= BOOST_FACTOR
        return acc

    def tick(self) -> None:
        dt = self.dt

        self.velocity += self.acceleration()
        self.velocity /= 1.0 + dt
        self.position += self.velocity * (dt * dt * self.speed)

        k = np.pi / 180.0 * self.sensitivity / 100.0
        rot = orthorotate(
            float(self.right[2]) * ROLL_CORRECTION,
            -self._mx_delta * k,
            self._my_delta * k,
        )
        up, right, forward = self.up, self.right, self.forward
        self.up = up * rot[0, 0] + right * rot[0, 1] + forward * rot[0, 2]
        self.right = up * rot[1, 0] + right * rot[1, 1] + forward * rot[1, 2]
        self.forward = up * rot[2, 0] + right * rot[2, 1] + forward * rot[2, 2]

        self._mx_delta = 0.0
        self._my_delta = 0.0

    # --- Rendering ---
    def _extrapolate(self, alpha: float) -> np.ndarray:
        return self.position + self.velocity * (self.dt * self.dt * self.speed * float(alpha))

    def eye(self, alpha: float = 0.0) -> np.ndarray:
        """Position extrapolated ``alpha`` ticks past the last committed one."""
        return self._extrapolate(alpha).astype(np.float32)

    def view_matrix(self, alpha: float = 0.0) -> np.ndarray:
        return basis_view(self.right, self.up, self.forward, self._extrapolate(alpha))

    @staticmethod
    def projection_matrix(aspect: float) -> np.ndarray:
        return perspective(FOV_DEG, float(aspect), NEAR, FAR)
