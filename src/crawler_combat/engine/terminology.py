"""Display vocabulary for combat messages.

Purely cosmetic - nothing in the engine branches on these strings.
"""

TERMINOLOGY: dict[str, dict[str, str]] = {
    "classic": {
        "party": "Party",
        "character": "Character",
        "town": "Town",
        "combat_fight": "Fight",
        "combat_defend": "Defend",
        "combat_spell": "Cast Spell",
        "combat_item": "Use Item",
        "combat_disconnect": "Run",
        "character_status_ok": "OK",
        "character_status_confused": "Confused",
        "character_status_unconscious": "Unconscious",
        "character_status_dead": "Dead",
        "character_status_lost": "Lost",
    },
    "cyber": {
        "party": "Strike Team",
        "character": "Agent",
        "town": "Terminal Hub",
        "combat_fight": "Execute",
        "combat_defend": "Firewall",
        "combat_spell": "Run Program",
        "combat_item": "Use Data",
        "combat_disconnect": "Disconnect",
        "character_status_ok": "Online",
        "character_status_confused": "Scrambled",
        "character_status_unconscious": "Offline",
        "character_status_dead": "Terminated",
        "character_status_lost": "Lost",
    },
}


class Terminology:
    """TerminologyProvider over the built-in vocabularies."""

    def __init__(self, mode: str = "classic") -> None:
        self.mode = mode if mode in TERMINOLOGY else "classic"

    def get_text(self, key: str, default: str | None = None) -> str:
        text = TERMINOLOGY[self.mode].get(key)
        if text is not None:
            return text
        return default if default is not None else key
