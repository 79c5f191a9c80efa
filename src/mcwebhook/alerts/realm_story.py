"""Realms Story wording and in-game broadcast commands."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass

REALM_STORY_PREFIX = "§b[Realm Story] "
REALM_STORY_COLOUR = "§a"
SOUND_COMMAND = "playsound random.orb @a"

_METATEXT_RE = re.compile(r'"metatext":"(?P<text>[^"]+)"')

# Story event -> what the player did, appended after their name.
STORY_PHRASES: dict[str, str] = {
    "FirstEnderDragonDefeated": "defeated the Ender Dragon!",
    "FirstWitherDefeated": "defeated the Wither!",
    "DefeatEnderdragon": "defeated the Ender Dragon!... again",
    "DefeatWither": "defeated the Wither!... again",
    "DiamondEverything": "has a full diamond tool and armor set!",
    "FirstAbandonedMineshaftFound": "discovered an Abandoned Mineshaft!",
    "FirstAncientCityFound": "discovered an Ancient City!",
    "FirstBadlandsFound": "discovered a Badlands biome!",
    "FirstConduit": "now commands the sea",
    "FirstCraftedNetherite": "upgraded to Netherite!",
    "FirstDiamondFound": "found a diamond",
    "FirstEnchantment": "discovered enchanting!",
    "FirstEndPortal": "traveled to The End?",
    "FirstMushroomFieldFound": "discovered a Mushroom Field!",
    "FirstNetherFortressFound": "discovered a Nether Fortress!",
    "FirstNetherPortalLit": "created a portal to the Nether!",
    "FirstPeakMountainFound": "scaled a Mountain Peak!",
    "FirstPillagerOutpostFound": "discovered a Pillager Outpost!",
    "FirstPoweredBeacon": "powered a Beacon!",
    "FirstWoodlandMansionFound": "discovered a Woodland Mansion!",
    "PillagerCaptainDefeated": "defeated a Pillager Captain!",
}

NAMED_MOB = "NamedMob"


@dataclass(frozen=True)
class StoryUnit:
    """One player's share of a Realms Story line."""

    webhook_text: str
    game_text: str

    @property
    def commands(self) -> list[str]:
        return [tellraw_command(self.game_text), SOUND_COMMAND]


def tellraw_command(text: str) -> str:
    """Build a ``tellraw @a`` broadcast with the Realm Story prefix."""
    payload = {"rawtext": [{"text": REALM_STORY_PREFIX}, {"text": REALM_STORY_COLOUR + text}]}
    return "tellraw @a " + json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def describe(story_event: str, player_name: str, raw_line: str) -> StoryUnit:
    """Word a story event for one player.

    Unrecognized events still produce a unit: the webhook text carries the
    raw event name and log line so new kinds can be added to STORY_PHRASES.
    """
    phrase = STORY_PHRASES.get(story_event)
    if phrase is not None:
        text = f"{player_name} {phrase}"
        return StoryUnit(webhook_text=text, game_text=text)

    if story_event == NAMED_MOB:
        m = _METATEXT_RE.search(raw_line)
        if m is not None:
            text = f"{player_name} has made a new friend, {m.group('text')}"
        else:
            text = f"{player_name} has made a new friend"
        return StoryUnit(webhook_text=text, game_text=text)

    return StoryUnit(
        webhook_text=f"New Realm Event Discovered: {story_event}\nLog: {raw_line}",
        game_text=f"New Realm Event Discovered: {story_event}",
    )
