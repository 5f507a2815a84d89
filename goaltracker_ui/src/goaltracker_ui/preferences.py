# src/goaltracker_ui/preferences.py

from .storage import KeyValueStorage

THEME_KEY = "theme"
REDUCED_MOTION_KEY = "reduced_motion"
ACCEPTED_TERMS_KEY = "accepted_terms"
ACCEPTED_PRIVACY_KEY = "accepted_privacy"

THEMES = ("light", "dark")


class Preferences:
    """Local UI flags. Unknown or corrupt stored values read as the defaults."""

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    @property
    def theme(self) -> str:
        value = self._storage.get(THEME_KEY)
        return value if value in THEMES else "light"

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            raise ValueError(f"Unknown theme {value!r}; expected one of {THEMES}")
        self._storage.set(THEME_KEY, value)

    def toggle_theme(self) -> str:
        self.theme = "dark" if self.theme == "light" else "light"
        return self.theme

    @property
    def reduced_motion(self) -> bool:
        return self._storage.get(REDUCED_MOTION_KEY) is True

    @reduced_motion.setter
    def reduced_motion(self, value: bool) -> None:
        self._storage.set(REDUCED_MOTION_KEY, bool(value))

    @property
    def accepted_terms(self) -> bool:
        return self._storage.get(ACCEPTED_TERMS_KEY) is True

    @property
    def accepted_privacy(self) -> bool:
        return self._storage.get(ACCEPTED_PRIVACY_KEY) is True

    def accept_terms(self) -> None:
        self._storage.set(ACCEPTED_TERMS_KEY, True)

    def accept_privacy(self) -> None:
        self._storage.set(ACCEPTED_PRIVACY_KEY, True)
