from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Mapping

import pygame

from kv6view.config import DEFAULT_KEYS


class Movement(IntFlag):
    NONE = 0
    FORWARD = 1
    BACK = 2
    LEFT = 4
    RIGHT = 8
    UP = 16
    DOWN = 32
    BOOST = 64


class Action(Enum):
    FORWARD = "forward"
    BACK = "back"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    BOOST = "boost"
    MOVE_LIGHT = "move_light"
    TOGGLE_LIGHT = "toggle_light"
    EXIT = "exit"

    @property
    def movement(self) -> Movement:
        """Movement intent driven by this action (NONE for non-movement actions)."""
        return Movement.__members__.get(self.name, Movement.NONE)


def key_from_name(name: str) -> int:
    """Resolve a pygame key constant name ("w", "space", "lshift") to its code."""
    n = str(name).strip()
    for attr in (f"K_{n}", f"K_{n.lower()}", f"K_{n.upper()}"):
        code = getattr(pygame, attr, None)
        if isinstance(code, int):
            return code
    raise ValueError(f"unknown key name: {name!r}")


def _parse_keys(names: Mapping[str, str]) -> dict[int, Action]:
    keys: dict[int, Action] = {}
    for action_name, key_name in names.items():
        try:
            action = Action(action_name)
        except ValueError:
            raise ValueError(f"unknown action: {action_name!r}") from None
        keys[key_from_name(key_name)] = action
    return keys


@dataclass
class KeyBindings:
    """Key code -> action table handed to the input step."""

    keys: dict[int, Action] = field(default_factory=lambda: _parse_keys(DEFAULT_KEYS))

    def action_for(self, key: int) -> Action | None:
        return self.keys.get(key)

    def with_overrides(self, names: Mapping[str, str]) -> "KeyBindings":
        """Copy with the given actions rebound; an action keeps only its new key."""
        override = _parse_keys(names)
        rebound = set(override.values())
        keys = {k: a for k, a in self.keys.items() if a not in rebound}
        keys.update(override)
        return KeyBindings(keys=keys)
