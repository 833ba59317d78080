from __future__ import annotations

from dataclasses import dataclass

import moderngl
import numpy as np

from kv6view.config import CLEAR_COLOR
from kv6view.model.mesh_builder import VERTEX_ATTRIBUTES, VERTEX_FORMAT
from kv6view.render.shaders import shader_sources

_IDENTITY = np.eye(4, dtype=np.float32)


@dataclass
class ModelGPU:
    vao: moderngl.VertexArray | None
    vbo: moderngl.Buffer | None
    vertex_count: int

    def release(self) -> None:
        for obj in (self.vao, self.vbo):
            try:
                if obj is not None:
                    obj.release()
            except Exception:
                pass


class Renderer:
    def __init__(self, ctx: moderngl.Context, width: int, height: int) -> None:
        self.ctx = ctx
        self.width = width
        self.height = height

        vert, frag = shader_sources(ctx.version_code)
        self.prog = self.ctx.program(vertex_shader=vert, fragment_shader=frag)
        self.prog["u_model"].write(_IDENTITY.tobytes())

        self.ctx.enable(moderngl.DEPTH_TEST | moderngl.CULL_FACE)
        self.ctx.front_face = "ccw"
        self.ctx.viewport = (0, 0, width, height)

    @property
    def aspect(self) -> float:
        return self.width / max(1, self.height)

    def release(self) -> None:
        try:
            self.prog.release()
        except Exception:
            pass

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ctx.viewport = (0, 0, width, height)

    def upload(self, vertices: np.ndarray) -> ModelGPU:
        """Copy a synthesized mesh to the GPU. The buffer is never rewritten."""
        if vertices.size == 0:
            return ModelGPU(vao=None, vbo=None, vertex_count=0)
        vbo = self.ctx.buffer(vertices.tobytes())
        vao = self.ctx.vertex_array(self.prog, [(vbo, VERTEX_FORMAT, *VERTEX_ATTRIBUTES)])
        return ModelGPU(vao=vao, vbo=vbo, vertex_count=int(vertices.size))

    def begin_frame(self) -> None:
        r, g, b = CLEAR_COLOR
        self.ctx.clear(r, g, b, 1.0, depth=1.0)

    def set_common_uniforms(
        self,
        *,
        view: np.ndarray,
        proj: np.ndarray,
        team_color: tuple[float, float, float],
    ) -> None:
        self.prog["u_view"].write(view.astype(np.float32).tobytes())
        self.prog["u_proj"].write(proj.astype(np.float32).tobytes())
        self.prog["u_team_color"].value = (float(team_color[0]), float(team_color[1]), float(team_color[2]))

    def draw_model(self, model: ModelGPU, *, light_dir: np.ndarray, model_matrix: np.ndarray | None = None) -> None:
        if model.vao is None:
            return
        m = _IDENTITY if model_matrix is None else model_matrix
        self.prog["u_model"].write(m.astype(np.float32).tobytes())
        self.prog["u_light_dir"].value = (float(light_dir[0]), float(light_dir[1]), float(light_dir[2]))
        model.vao.render(mode=moderngl.TRIANGLES)
