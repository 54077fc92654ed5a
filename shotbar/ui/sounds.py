"""Audible cues for countdown ticks and run completion.

SoundNotifier implements the engine's notification port. The engine
emits from its worker thread; playback is marshalled to the GUI thread
through a queued signal.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QUrl, Signal, Slot
from PySide6.QtMultimedia import QSoundEffect
from PySide6.QtWidgets import QApplication

from shotbar.core.constants import (
    COMPLETION_SOUND_DEFAULT,
    COUNTDOWN_SOUND_DEFAULT,
    SOUND_BEEP,
    SOUND_NONE,
)
from shotbar.core.model import NotificationEvent

SOUND_CHOICES: list[str] = [SOUND_NONE, SOUND_BEEP]
"""Built-in choices; any other value is treated as a .wav path"""


class SoundNotifier(QObject):
    """Maps notification events to sounds."""

    _play_requested = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._sounds: dict[NotificationEvent, str] = {
            NotificationEvent.COUNTDOWN_TICK: COUNTDOWN_SOUND_DEFAULT,
            NotificationEvent.COMPLETED: COMPLETION_SOUND_DEFAULT,
        }
        # Effects must outlive playback
        self._effects: dict[str, QSoundEffect] = {}
        self._play_requested.connect(self._on_play)

    def configure(self, countdown_sound: str, completion_sound: str) -> None:
        """Set the sounds for the next run."""
        self._sounds[NotificationEvent.COUNTDOWN_TICK] = countdown_sound
        self._sounds[NotificationEvent.COMPLETED] = completion_sound

    def sound_for(self, event: NotificationEvent) -> str:
        return self._sounds.get(event, SOUND_NONE)

    def emit(self, event: NotificationEvent) -> None:
        """Play the cue for ``event`` (safe from any thread)."""
        sound = self.sound_for(event)
        if sound and sound != SOUND_NONE:
            self._play_requested.emit(sound)

    @Slot(str)
    def _on_play(self, sound: str) -> None:
        if sound == SOUND_BEEP:
            QApplication.beep()
            return

        path = Path(sound).expanduser()
        if not path.is_file():
            # Unknown name: fall back to the system beep
            QApplication.beep()
            return

        effect = self._effects.get(sound)
        if effect is None:
            effect = QSoundEffect(self)
            effect.setSource(QUrl.fromLocalFile(str(path)))
            self._effects[sound] = effect
        effect.play()
