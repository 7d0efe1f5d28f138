"""Effect changes: the (key, mode, value) triples carried by conditions and items.

Host documents address stats with dotted paths such as
``system.combat.meleeDefense`` and encode the merge behaviour as integers. Both
are converted here, once, into a typed :class:`ModifierTarget` and a
:class:`ChangeMode` so the rules never parse strings.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class ChangeMode(StrEnum):
    """How a change merges into the modifier bundle."""

    ADD = "add"
    OVERRIDE = "override"
    CONDITIONAL_OVERRIDE = "conditional_override"


# Host integer codes; multiply (1), upgrade (3), downgrade (4) and custom (0) are unsupported
HOST_MODE_CODES: dict[int, ChangeMode] = {
    2: ChangeMode.ADD,
    5: ChangeMode.OVERRIDE,
    6: ChangeMode.CONDITIONAL_OVERRIDE,
}


class TargetCategory(StrEnum):
    """Stat category a change is routed to."""

    ABILITIES = "abilities"
    SAVES = "saves"
    COMBAT = "combat"
    RESISTANCES = "resistances"
    OTHER = "other"
    DAMAGE = "damage"


# Second path segment -> category. Magic keys share the "other" bucket.
KEY_PREFIXES: dict[str, TargetCategory] = {
    "abilities": TargetCategory.ABILITIES,
    "saves": TargetCategory.SAVES,
    "combat": TargetCategory.COMBAT,
    "resistances": TargetCategory.RESISTANCES,
    "magic": TargetCategory.OTHER,
    "other": TargetCategory.OTHER,
    "damage": TargetCategory.DAMAGE,
}

KEY_ROOT = "system"


@dataclass(frozen=True)
class ModifierTarget:
    """A validated stat address.

    Attributes:
        category: Bucket the change lands in
        key: Stat key inside the bucket (e.g. "meleeDefense", "dyn", "base")
        field: Remaining path below the key, if any (e.g. "value", "modifier")
    """

    category: TargetCategory
    key: str
    field: str | None = None

    @property
    def is_weapon_specific(self) -> bool:
        """True for attack and damage changes that only belong to the wielded weapon."""
        if self.category == TargetCategory.DAMAGE:
            return True
        if self.category != TargetCategory.COMBAT:
            return False
        path = f"{self.key}.{self.field}" if self.field else self.key
        return "attack" in path.lower()


def parse_target(raw_key: str) -> ModifierTarget | None:
    """Route a host key to a modifier target.

    Args:
        raw_key: Dotted host path such as "system.saves.ant.modifier"

    Returns:
        The target, or None when the prefix is not recognised

    Examples:
        >>> parse_target("system.combat.meleeDefense")
        ModifierTarget(category=<TargetCategory.COMBAT: 'combat'>, key='meleeDefense', field=None)
        >>> parse_target("system.details.race") is None
        True
    """
    parts = raw_key.strip().split(".")
    if len(parts) < 3 or parts[0] != KEY_ROOT:
        return None

    category = KEY_PREFIXES.get(parts[1])
    if category is None or not parts[2]:
        return None

    field = ".".join(parts[3:]) or None
    return ModifierTarget(category=category, key=parts[2], field=field)


def parse_mode(raw: Any) -> ChangeMode | None:
    """Convert a host mode (integer code or name) to a ChangeMode, or None if unsupported."""
    if isinstance(raw, ChangeMode):
        return raw
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return HOST_MODE_CODES.get(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text.isdigit():
            return HOST_MODE_CODES.get(int(text))
        try:
            return ChangeMode(text)
        except ValueError:
            return None
    return None


def parse_value(raw: Any) -> bool | float | None:
    """Convert a host change value to a bool or a number.

    Strings "true"/"false" become booleans; anything that is not a number
    becomes None so callers can drop it.
    """
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int | float):
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text.lower() == "true":
            return True
        if text.lower() == "false":
            return False
        try:
            return float(text)
        except ValueError:
            return None
    return None


class EffectChange(BaseModel):
    """
    A single stat change.

    Attributes:
        key: Host key the change addresses
        mode: Merge mode, None when the host mode is unsupported
        value: Parsed value, None when it could not be parsed
    """

    model_config = ConfigDict(extra="ignore")

    key: str = Field(default="", description="Dotted host key")
    mode: ChangeMode | None = Field(default=None, description="Merge mode")
    value: bool | float | None = Field(default=None, description="Boolean or numeric value")

    _target: ModifierTarget | None = PrivateAttr(default=None)

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> ChangeMode | None:
        return parse_mode(value)

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> bool | float | None:
        return parse_value(value)

    def model_post_init(self, __context: Any) -> None:
        self._target = parse_target(self.key)

    @property
    def target(self) -> ModifierTarget | None:
        """Routed target, or None for keys the rules do not know."""
        return self._target

    @property
    def is_applicable(self) -> bool:
        """Whether the change has a target, a supported mode and a usable value."""
        return self._target is not None and self.mode is not None and self.value is not None
