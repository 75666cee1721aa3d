"""
Group Classifier - which folder a script is exported to.

Two modes, picked once per export:

- Marker mode: the container holds category titles (names starting with
  ``"@ "``). Each title opens a group that lasts until the next one;
  scripts above the first title go to ``-UNSORTED``.
- Fallback mode: no titles at all. Default editor scripts are sorted into
  fixed folders and everything else lands in ``Materials``.

Fallback folder names are reserved. Nothing checks a category title against
them, so a title reusing one of these names merges into the same folder.
"""

from __future__ import annotations

from typing import Iterable


CATEGORY_PREFIX = "@ "

GAME_OBJECTS_GROUP = "Base Game Objects"
SPRITES_GROUP = "Base Sprites"
WINDOWS_GROUP = "Base Windows"
SCENES_GROUP = "Base Scenes"
MAIN_GROUP = "Main Process"
MATERIALS_GROUP = "Materials"

MAIN_SCRIPT = "Main"

GAME_OBJECTS = frozenset({
    "Game_Temp", "Game_System", "Game_Switches", "Game_Variables", "Game_SelfSwitches",
    "Game_Screen", "Game_Picture",
    "Game_Battler 1", "Game_Battler 2", "Game_Battler 3", "Game_BattleAction",
    "Game_Actor", "Game_Enemy", "Game_Actors", "Game_Party", "Game_Troop",
    "Game_Map", "Game_CommonEvent", "Game_Character 1", "Game_Character 2", "Game_Character 3",
    "Game_Event", "Game_Player",
    "Interpreter 1", "Interpreter 2", "Interpreter 3", "Interpreter 4",
    "Interpreter 5", "Interpreter 6", "Interpreter 7",
})

SPRITES = frozenset({
    "Sprite_Character", "Sprite_Battler", "Sprite_Picture", "Sprite_Timer",
    "Spriteset_Map", "Spriteset_Battle",
    "Arrow_Base", "Arrow_Enemy", "Arrow_Actor",
})

WINDOWS = frozenset({
    "Window_Base", "Window_Selectable", "Window_Command", "Window_Help",
    "Window_Gold", "Window_PlayTime", "Window_Steps", "Window_MenuStatus",
    "Window_Item", "Window_Skill", "Window_SkillStatus", "Window_Target",
    "Window_EquipLeft", "Window_EquipRight", "Window_EquipItem", "Window_Status",
    "Window_SaveFile", "Window_ShopCommand", "Window_ShopBuy", "Window_ShopSell",
    "Window_ShopNumber", "Window_ShopStatus",
    "Window_NameEdit", "Window_NameInput", "Window_InputNumber", "Window_Message",
    "Window_PartyCommand", "Window_BattleStatus", "Window_BattleResult",
    "Window_DebugLeft", "Window_DebugRight",
})

SCENES = frozenset({
    "Scene_Title", "Scene_Map", "Scene_Menu",
    "Scene_Item", "Scene_Skill", "Scene_Equip", "Scene_Status",
    "Scene_File", "Scene_Save", "Scene_Load", "Scene_End",
    "Scene_Battle 1", "Scene_Battle 2", "Scene_Battle 3", "Scene_Battle 4",
    "Scene_Shop", "Scene_Name", "Scene_Gameover", "Scene_Debug",
})

FALLBACK_TABLES: tuple[tuple[str, frozenset[str]], ...] = (
    (GAME_OBJECTS_GROUP, GAME_OBJECTS),
    (SPRITES_GROUP, SPRITES),
    (WINDOWS_GROUP, WINDOWS),
    (SCENES_GROUP, SCENES),
)

RESERVED_GROUPS = frozenset({
    GAME_OBJECTS_GROUP, SPRITES_GROUP, WINDOWS_GROUP, SCENES_GROUP,
    MAIN_GROUP, MATERIALS_GROUP,
})


def is_category_title(name: str) -> bool:
    """True for names like ``"@ Battle System"``."""
    return name.startswith(CATEGORY_PREFIX) and len(name) > len(CATEGORY_PREFIX)


def category_title(group: str) -> str:
    """Display name of the category record opening a group."""
    return f"{CATEGORY_PREFIX}{group}"


def fallback_group(name: str) -> str:
    """Folder of a script in a container without category titles."""
    for group, names in FALLBACK_TABLES:
        if name in names:
            return group
    if name == MAIN_SCRIPT:
        return MAIN_GROUP
    return MATERIALS_GROUP


class GroupClassifier:
    """
    Track the current group while walking the container in order.

    ``observe`` must see every record, including empty ones, since category
    titles are empty records. ``group_for`` is asked only for exported ones.

    Example:
        classifier = GroupClassifier(r.name for r in records)
        for record in records:
            classifier.observe(record.name)
            if record.content:
                folder = classifier.group_for(record.name)
    """

    def __init__(self, names: Iterable[str], unsorted_group: str = "-UNSORTED") -> None:
        self.marker_mode = any(is_category_title(name) for name in names)
        self.unsorted_group = unsorted_group
        self._current: str | None = None

    @property
    def mode(self) -> str:
        return "marker" if self.marker_mode else "fallback"

    def observe(self, name: str) -> None:
        """Open a new group when name is a category title."""
        if self.marker_mode and is_category_title(name):
            self._current = name[len(CATEGORY_PREFIX):]

    def group_for(self, name: str) -> str:
        """Folder for a script, given the titles observed so far."""
        if self.marker_mode:
            return self._current if self._current is not None else self.unsorted_group
        return fallback_group(name)
