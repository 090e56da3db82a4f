"""
Cosense Data Models

Pydantic models for the JSON shapes returned by the Cosense API. The remote
service owns these shapes, so every model accepts unknown fields and most
fields are optional; values pass through unchanged when dumped back to JSON.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class CosenseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    _key_order: List[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def _remember_key_order(cls, data: Any, handler: Any) -> Any:
        model = handler(data)
        if isinstance(data, dict):
            model._key_order = list(data)
        return model

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump the fields that were received, in the order they arrived."""
        dumped = self.model_dump(mode="json", exclude_unset=True)
        for key in dumped:
            value = getattr(self, key, None)
            if isinstance(value, CosenseModel):
                dumped[key] = value.to_json_dict()
            elif isinstance(value, list) and any(isinstance(v, CosenseModel) for v in value):
                dumped[key] = [
                    v.to_json_dict() if isinstance(v, CosenseModel) else d
                    for v, d in zip(value, dumped[key])
                ]

        position = {key: i for i, key in enumerate(self._key_order)}
        return dict(
            sorted(dumped.items(), key=lambda item: position.get(item[0], len(position)))
        )


# ---------------------------------------------------------------------
# Projects and users
# ---------------------------------------------------------------------

class Project(CosenseModel):
    id: str
    name: str
    displayName: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    isPrivate: Optional[bool] = None
    publicVisible: Optional[bool] = None
    loginStrategies: List[str] = Field(default_factory=list)
    plan: Optional[str] = None
    additionalPlans: Dict[str, Any] = Field(default_factory=dict)
    theme: Optional[str] = None
    gyazoTeamsName: Optional[str] = None
    translation: Optional[bool] = None
    infobox: Optional[bool] = None
    created: Optional[int] = None
    updated: Optional[int] = None
    isMember: Optional[bool] = None
    trialing: Optional[bool] = None


class User(CosenseModel):
    id: str
    name: Optional[str] = None
    displayName: Optional[str] = None
    photo: Optional[str] = None


# ---------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------

class Line(CosenseModel):
    id: str
    text: str
    userId: Optional[str] = None
    created: Optional[int] = None
    updated: Optional[int] = None


class RelatedPage(CosenseModel):
    id: str
    title: str
    titleLc: Optional[str] = None
    image: Optional[str] = None
    descriptions: List[str] = Field(default_factory=list)
    linksLc: List[str] = Field(default_factory=list)
    linked: Optional[int] = None
    pageRank: Optional[Union[int, float]] = None
    created: Optional[int] = None
    updated: Optional[int] = None
    accessed: Optional[int] = None
    lastAccessed: Optional[int] = None


class RelatedPages(CosenseModel):
    links1hop: List[RelatedPage] = Field(default_factory=list)
    links2hop: List[RelatedPage] = Field(default_factory=list)
    fatHeadwordsLc: List[str] = Field(default_factory=list)
    hiddenHeadwordsLc: List[str] = Field(default_factory=list)
    projectLinks1hop: List[Any] = Field(default_factory=list)
    hasBackLinksOrIcons: Optional[bool] = None
    search: Optional[str] = None
    charsCount: Dict[str, int] = Field(default_factory=dict)
    searchBackend: Optional[str] = None


class Page(CosenseModel):
    id: str
    title: str
    image: Optional[str] = None
    descriptions: List[str] = Field(default_factory=list)
    user: Optional[User] = None
    lastUpdateUser: Optional[User] = None
    pin: Optional[int] = None
    views: Optional[int] = None
    linked: Optional[int] = None
    commitId: Optional[str] = None
    created: Optional[int] = None
    updated: Optional[int] = None
    accessed: Optional[int] = None
    snapshotCreated: Optional[int] = None
    pageRank: Optional[Union[int, float]] = None
    lastAccessed: Optional[int] = None
    linesCount: Optional[int] = None
    charsCount: Optional[int] = None
    persistent: Optional[bool] = None
    lines: List[Line] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    relatedPages: Optional[RelatedPages] = None
    collaborators: List[User] = Field(default_factory=list)


class PageList(CosenseModel):
    projectName: str
    skip: int = 0
    limit: int = 0
    count: int = 0
    pages: List[Page] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Action results
# ---------------------------------------------------------------------

class ActionResult(BaseModel):
    """Outcome of an interactive login or an in-page line edit."""

    success: bool
    message: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
