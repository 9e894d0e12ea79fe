"""JSON persistence for user settings and per-difficulty statistics."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from fourinrow.engine import Difficulty, Player

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".fourinrow"
SETTINGS_FILENAME = "settings.json"


@dataclass
class GameStats:
    """Results from the human's point of view, keyed by difficulty value."""

    wins: Dict[str, int] = field(default_factory=dict)
    losses: Dict[str, int] = field(default_factory=dict)
    draws: Dict[str, int] = field(default_factory=dict)

    def wins_for(self, difficulty: Difficulty) -> int:
        return self.wins.get(difficulty.value, 0)

    def losses_for(self, difficulty: Difficulty) -> int:
        return self.losses.get(difficulty.value, 0)

    def draws_for(self, difficulty: Difficulty) -> int:
        return self.draws.get(difficulty.value, 0)

    def record_win(self, difficulty: Difficulty) -> None:
        self.wins[difficulty.value] = self.wins_for(difficulty) + 1

    def record_loss(self, difficulty: Difficulty) -> None:
        self.losses[difficulty.value] = self.losses_for(difficulty) + 1

    def record_draw(self, difficulty: Difficulty) -> None:
        self.draws[difficulty.value] = self.draws_for(difficulty) + 1

    def reset(self) -> None:
        self.wins = {}
        self.losses = {}
        self.draws = {}

    def to_dict(self) -> Dict[str, Any]:
        return {"wins": dict(self.wins), "losses": dict(self.losses), "draws": dict(self.draws)}

    @classmethod
    def from_dict(cls, raw: Any) -> "GameStats":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            wins=_counts(raw.get("wins")),
            losses=_counts(raw.get("losses")),
            draws=_counts(raw.get("draws")),
        )


def _counts(raw: Any) -> Dict[str, int]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): int(v) for k, v in raw.items() if isinstance(v, int) and not isinstance(v, bool)}


@dataclass
class Settings:
    difficulty: Difficulty = Difficulty.NORMAL
    first_player: Player = Player.HUMAN
    sound_enabled: bool = True
    stats: GameStats = field(default_factory=GameStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "difficulty": self.difficulty.value,
            "first_player": int(self.first_player),
            "sound_enabled": self.sound_enabled,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Settings":
        """Unknown or missing values fall back to their defaults one by one."""
        settings = cls()
        try:
            settings.difficulty = Difficulty(raw.get("difficulty"))
        except ValueError:
            pass
        try:
            settings.first_player = Player(raw.get("first_player"))
        except ValueError:
            pass
        sound = raw.get("sound_enabled")
        if isinstance(sound, bool):
            settings.sound_enabled = sound
        settings.stats = GameStats.from_dict(raw.get("stats"))
        return settings


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def in_dir(cls, data_dir: Path) -> "SettingsStore":
        return cls(data_dir / SETTINGS_FILENAME)

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("could not read %s (%s); using defaults", self.path, e)
            return Settings()
        if not isinstance(raw, dict):
            logger.warning("%s does not hold a settings object; using defaults", self.path)
            return Settings()
        return Settings.from_dict(raw)

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(settings.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
