"""UI element and accessibility data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Point(BaseModel):
    x: float
    y: float


class Frame(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def center(self) -> Point:
        return Point(x=round(self.x + self.width / 2), y=round(self.y + self.height / 2))


class AccessibilityElement(BaseModel):
    label: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None
    role: Optional[str] = None
    role_description: Optional[str] = None
    identifier: Optional[str] = None
    frame: Frame
    enabled: bool = True
    traits: list[str] = Field(default_factory=list)


class UITree(BaseModel):
    elements: list[AccessibilityElement] = Field(default_factory=list)
    timestamp: str = ""


class ElementPredicate(BaseModel):
    """Criteria an element must satisfy; unset fields are ignored."""
    label: Optional[str] = None
    label_contains: Optional[str] = None
    type: Optional[str] = None
    role: Optional[str] = None
    enabled: Optional[bool] = None

    def describe(self) -> str:
        return self.label or self.label_contains or self.type or self.role or "<any>"
