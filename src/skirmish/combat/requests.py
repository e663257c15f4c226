from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import ActionType, CombatAction


class ActionRequest(BaseModel):
    """A client's action payload, before it is bound to the acting combatant."""

    type: ActionType = Field(..., description="Action to perform")
    target_id: Optional[str] = Field(default=None, description="Target combatant id")
    skill_id: Optional[str] = Field(default=None, description="Skill id for SKILL actions")
    item_id: Optional[str] = Field(default=None, description="Item id for ITEM actions")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        # Clients send "attack" as often as "ATTACK"
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("target_id", "skill_id", "item_id")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_required_fields(self) -> "ActionRequest":
        if self.type == ActionType.ATTACK and not self.target_id:
            raise ValueError("ATTACK requires target_id")
        if self.type == ActionType.SKILL and not self.skill_id:
            raise ValueError("SKILL requires skill_id")
        if self.type == ActionType.ITEM and not self.item_id:
            raise ValueError("ITEM requires item_id")
        return self

    def to_action(self, actor_id: str) -> CombatAction:
        return CombatAction(
            type=self.type,
            actor_id=actor_id,
            target_id=self.target_id,
            skill_id=self.skill_id,
            item_id=self.item_id,
        )
