"""Pydantic models for the item catalog."""

from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemCategory(IntEnum):
    """Item category enumeration shared with the game client."""

    INVALID = 0
    CURRENCY = 1
    ITEM = 2  # bag items
    RECIPE = 3
    BLUEPRINT = 4
    FEATURE_OPEN = 5
    PROPERTY = 6
    THEME = 7
    EXP_TYPE = 8
    THEME_EXP = 10
    HOBBY_ABILITY_EXP = 11
    BUFF = 12
    BLIND_BOX = 15
    TOOL_SKIN = 16
    EXPRESSION_ACTION = 17
    POST_CARD = 18
    TOOL = 19
    CHAT_DIALOGUE_SKIN = 20
    AVATAR = 21
    BUILD_ITEM = 22
    PAY_POINT = 23
    DATE_ANCHOR = 24
    RESET_STORE_SLOT = 25
    BUILD_ITEM_MODULE = 26
    HOBBY_EXAMINE_TICKET = 27
    PLAYER_TITLE = 28
    GAME_EVENT_TIMER = 29
    PAY_PRODUCT = 30
    SENIOR_HOBBY_EXAMINE_TICKET = 31
    GIFT = 32
    STICKER = 33
    GM_PICTORIAL_POINT_TYPE_VALUE = 34  # GM compensation only
    ACTIVITY_EXCLUSIVE_ITEMS = 35


def _validate_category(value: Any) -> int:
    try:
        category = ItemCategory(int(value))
    except (TypeError, ValueError):
        raise ValueError(f"Unknown item category: {value}")
    if category == ItemCategory.INVALID:
        raise ValueError("Item category 0 (INVALID) cannot be stored")
    return int(category)


class ItemCreate(BaseModel):
    """Validated input for creating an item."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(..., alias="itemId", description="Game item identifier")
    name: str = Field(..., min_length=1, description="Item name")
    category: int = Field(..., description="Item category")
    description: Optional[str] = Field(None, description="Item description")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be blank")
        return v

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: int) -> int:
        return _validate_category(v)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ItemUpdate(BaseModel):
    """Partial update of an item."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: Optional[int] = Field(None, alias="itemId")
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[int] = None
    description: Optional[str] = None

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else _validate_category(v)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class Item(BaseModel):
    """An item as stored in the catalog."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id", description="Store identifier")
    item_id: int = Field(..., alias="itemId")
    name: str
    category: int
    description: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator('id', mode='before')
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Item":
        return cls.model_validate(document)

    @property
    def category_name(self) -> str:
        try:
            return ItemCategory(self.category).name
        except ValueError:
            return "UNKNOWN"


class ImportResult(BaseModel):
    """Outcome of a bag item import."""

    imported_items: List[Item] = Field(default_factory=list)
    failed_item_ids: List[Any] = Field(default_factory=list, description="Ids of elements without a name")
    deleted_count: int = Field(0, description="Items of category ITEM removed before the import")
