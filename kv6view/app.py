from __future__ import annotations

import time
import numpy as np
import pygame
import moderngl

from kv6view.config import (
    APP_NAME, FPS_CAP, TICK_STEP, MAX_LAG,
    DEFAULT_CAMERA_POS, DEFAULT_CAMERA_FORWARD,
    LIGHT_DIR, LIGHT_DISTANCE, LIGHT_MARKER_RADIUS, LIGHT_MARKER_COLOR,
)
from kv6view.model import kv6
from kv6view.model.mesh_builder import bounds, synthesize
from kv6view.model.voxelize import light_marker
from kv6view.render.camera import FreeCamera
from kv6view.render.controls import Action, KeyBindings
from kv6view.render.renderer import Renderer
from kv6view.util.math import normalize, translation
from kv6view.util.timing import FixedStep

def _init_pygame_gl() -> None:
    pygame.init()
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MAJOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_MINOR_VERSION, 3)
    pygame.display.gl_set_attribute(pygame.GL_CONTEXT_PROFILE_MASK, pygame.GL_CONTEXT_PROFILE_CORE)
    pygame.display.gl_set_attribute(pygame.GL_DEPTH_SIZE, 24)
    pygame.display.gl_set_attribute(pygame.GL_DOUBLEBUFFER, 1)

def _set_capture(capture: bool) -> None:
    pygame.event.set_grab(capture)
    pygame.mouse.set_visible(not capture)

def load_meshes(model_path: str, light_model_path: str | None, *, strict: bool, debug: bool) -> tuple[np.ndarray, np.ndarray]:
    """Decode and mesh the user model and the light marker. Raises OSError / KV6Error."""
    data = kv6.load(model_path, strict=strict)
    if debug:
        for issue in data.problems():
            print(f"[{APP_NAME}] warning: {model_path}: {issue}")
    vertices = synthesize(data)

    if light_model_path:
        light_data = kv6.load(light_model_path, strict=strict)
    else:
        light_data = light_marker(LIGHT_MARKER_RADIUS, LIGHT_MARKER_COLOR)
    light_vertices = synthesize(light_data)

    if debug:
        lo, hi = bounds(vertices)
        print(
            f"[{APP_NAME}] {model_path}: size={data.size} pivot={data.pivot} voxels={data.voxel_count} "
            f"vertices={vertices.size} bounds={lo.tolist()}..{hi.tolist()}"
        )
    return vertices, light_vertices

def run_app(
    *,
    model_path: str,
    width: int,
    height: int,
    team_color: tuple[int, int, int],
    light_model_path: str | None,
    sensitivity: float,
    bindings: KeyBindings,
    strict: bool,
    debug: bool,
) -> None:
    # Load before opening a window so a bad file fails fast.
    vertices, light_vertices = load_meshes(model_path, light_model_path, strict=strict, debug=debug)

    _init_pygame_gl()

    flags = pygame.OPENGL | pygame.DOUBLEBUF | pygame.RESIZABLE
    pygame.display.set_mode((width, height), flags)
    pygame.display.set_caption(f"KV6View - {model_path}")

    try:
        ctx = moderngl.create_context()
    except Exception as e:
        pygame.quit()
        raise RuntimeError("Failed to create ModernGL context (need OpenGL 3.2+)") from e

    if debug:
        print(f"[{APP_NAME}] moderngl ctx version_code={ctx.version_code} vendor={ctx.info.get('GL_VENDOR')} renderer={ctx.info.get('GL_RENDERER')}")

    renderer = Renderer(ctx, width, height)
    model = renderer.upload(vertices)
    light_model = renderer.upload(light_vertices)

    cam = FreeCamera(DEFAULT_CAMERA_POS, DEFAULT_CAMERA_FORWARD, sensitivity=sensitivity)
    clock_step = FixedStep(TICK_STEP, MAX_LAG)
    team = tuple(float(c) / 255.0 for c in team_color)

    light_dir = normalize(np.array(LIGHT_DIR, dtype=np.float64))
    show_light = True
    focused = True
    _set_capture(True)

    clock = pygame.time.Clock()
    running = True
    last_t = time.perf_counter()
    last_log = last_t
    frames = 0

    try:
        while running:
            now = time.perf_counter()
            elapsed = now - last_t
            last_t = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.WINDOWFOCUSGAINED:
                    focused = True
                    _set_capture(True)
                elif event.type == pygame.WINDOWFOCUSLOST:
                    focused = False
                    _set_capture(False)
                elif event.type == pygame.VIDEORESIZE:
                    w, h = max(64, event.w), max(64, event.h)
                    pygame.display.set_mode((w, h), flags)
                    renderer.resize(w, h)
                elif event.type in (pygame.KEYDOWN, pygame.KEYUP) and focused:
                    pressed = event.type == pygame.KEYDOWN
                    action = cam.handle_key(event.key, pressed, bindings)
                    if not pressed:
                        continue
                    if action is Action.EXIT:
                        running = False
                    elif action is Action.MOVE_LIGHT:
                        light_dir = -cam.forward.copy()
                    elif action is Action.TOGGLE_LIGHT:
                        show_light = not show_light
                elif event.type == pygame.MOUSEMOTION and focused:
                    dx, dy = event.rel
                    cam.handle_mouse(dx, dy)

            for _ in range(clock_step.advance(elapsed)):
                cam.tick()

            # Render
            renderer.begin_frame()
            renderer.set_common_uniforms(
                view=cam.view_matrix(clock_step.alpha),
                proj=cam.projection_matrix(renderer.aspect),
                team_color=team,
            )
            renderer.draw_model(model, light_dir=light_dir)
            if show_light:
                # Lit from the far side so the marker's face toward the model is bright.
                renderer.draw_model(
                    light_model,
                    light_dir=-light_dir,
                    model_matrix=translation(-light_dir * LIGHT_DISTANCE),
                )

            pygame.display.flip()
            frames += 1

            if debug and now - last_log >= 1.0:
                print(f"[{APP_NAME}] fps~{frames / (now - last_log):.0f} ticks={clock_step.ticks} pos={cam.eye().round(2).tolist()}")
                last_log = now
                frames = 0

            if FPS_CAP and FPS_CAP > 0:
                clock.tick(FPS_CAP)
            else:
                clock.tick()
    finally:
        model.release()
        light_model.release()
        renderer.release()
        pygame.quit()
