from __future__ import annotations

# Window
WINDOW_WIDTH = 640
WINDOW_HEIGHT = 480
FPS_CAP = 0  # 0 = uncapped

# App
APP_NAME = "kv6view"
APP_VERSION = "1.0.0"

# Simulation
TICK_RATE = 60
TICK_STEP = 1.0 / TICK_RATE
MAX_LAG = 0.25  # seconds of backlog before ticks are dropped

# Camera
MOVEMENT_SPEED = 32.0
MOUSE_SENSITIVITY = 5.0
ROLL_CORRECTION = 0.1
BOOST_FACTOR = 2.0
DEFAULT_CAMERA_POS = (0.0, 32.0, 0.0)
DEFAULT_CAMERA_FORWARD = (0.0, -1.0, 0.0)
WORLD_UP = (0.0, 0.0, 1.0)

# Rendering
FOV_DEG = 90.0
NEAR = 0.1
FAR = 1024.0
CLEAR_COLOR = (0.05, 0.05, 0.05)

# Light
LIGHT_DIR = (128.0, 128.0, -64.0)  # normalized at startup
LIGHT_DISTANCE = 128.0
LIGHT_MARKER_RADIUS = 3
LIGHT_MARKER_COLOR = (255, 255, 200)

# Team color substituted for pure-black voxels
DEFAULT_TEAM_COLOR = (0, 0, 0)

# Controls: action name -> pygame key constant name (K_<name>)
DEFAULT_KEYS = {
    "forward": "w",
    "back": "s",
    "left": "a",
    "right": "d",
    "up": "space",
    "down": "lctrl",
    "boost": "lshift",
    "move_light": "l",
    "toggle_light": "k",
    "exit": "escape",
}
