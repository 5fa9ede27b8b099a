"""
PlatformId enum for the three distribution platforms an installation can live on.

Each installation of the game is associated with exactly one platform:
1. Steam - Valve's launcher, installs under steamapps/common
2. Rockstar - Rockstar Games Launcher
3. Epic - Epic Games Launcher
"""

from enum import Enum


class PlatformId(Enum):
    """Identifies the distribution platform that owns an installation."""
    STEAM = "steam"          # Valve Steam
    ROCKSTAR = "rockstar"    # Rockstar Games Launcher
    EPIC = "epic"            # Epic Games Launcher

    @property
    def display_name(self) -> str:
        """Human-readable platform name."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "PlatformId":
        """Parse a platform identifier case-insensitively.

        Raises:
            ValueError: If the value does not name a known platform.
        """
        normalized = value.strip().lower()
        for platform in cls:
            if platform.value == normalized:
                return platform
        valid = ", ".join(p.value for p in cls)
        raise ValueError(f"Unknown platform '{value}' (expected one of: {valid})")


_DISPLAY_NAMES = {
    PlatformId.STEAM: "Steam",
    PlatformId.ROCKSTAR: "Rockstar Games",
    PlatformId.EPIC: "Epic Games",
}
