from __future__ import annotations

def _pick_glsl_version(ctx_version_code: int) -> int:
    """Pick a GLSL version compatible with the active OpenGL context.

    - For OpenGL >= 3.3: use GLSL 330
    - For OpenGL >= 3.2: use GLSL 150
    """
    if ctx_version_code >= 330:
        return 330
    if ctx_version_code >= 320:
        return 150
    # As a last resort, try 150; but the project targets modern contexts.
    return 150

_VERT_BODY = """
in vec3 in_pos;
in vec3 in_norm;
in vec3 in_face;
in vec3 in_color;

uniform mat4 u_proj;
uniform mat4 u_view;
uniform mat4 u_model;

out vec3 v_norm;
out vec3 v_face;
out vec3 v_color;

void main() {
    vec4 world = u_model * vec4(in_pos, 1.0);
    v_norm = in_norm;
    v_face = in_face;
    v_color = in_color;
    gl_Position = u_proj * u_view * world;
}
"""

_FRAG_BODY = """in vec3 v_norm;
in vec3 v_face;
in vec3 v_color;

uniform vec3 u_light_dir;
uniform vec3 u_team_color;

out vec4 f_color;

void main() {
    // Pure black voxels take the team color.
    vec3 base = v_color;
    if (base == vec3(0.0)) {
        base = u_team_color;
    }

    vec3 l = normalize(u_light_dir);
    float ambient = 0.1;

    // Smooth per-voxel normal does most of the work; the flat face normal adds edge definition.
    // Normal 255 is the zero vector; normalize() would give NaN there.
    float voxel_diff = 0.5;
    if (dot(v_norm, v_norm) > 0.0) {
        voxel_diff = max(dot(normalize(v_norm), l) * 0.5 + 0.5, 0.0);
    }
    float face_diff = max(dot(v_face, l) * 0.6 + 0.45, 0.0);
    float diffuse = voxel_diff * 0.75 + face_diff * 0.15;

    f_color = vec4((ambient + diffuse) * base, 1.0);
}"""

def shader_sources(ctx_version_code: int) -> tuple[str, str]:
    ver = _pick_glsl_version(ctx_version_code)
    prefix = f"#version {ver}\n"
    return prefix + _VERT_BODY, prefix + _FRAG_BODY
