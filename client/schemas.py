from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileType(str, Enum):
    SCRIPT = "script"
    AUDIO = "audio"
    CLIPS_ZIP = "clips_zip"
    FINAL_VIDEO = "final_video"
    PROFILE_PICTURE = "profile_picture"


class AssignmentRole(str, Enum):
    CLIPPER = "clipper"
    EDITOR = "editor"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class User(_WireModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    discord_username: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    role: Optional[str] = None
    profile_picture: Optional[str] = None

    def has_role(self, role: str) -> bool:
        return role in self.roles or self.role == role

    @property
    def is_admin(self) -> bool:
        return self.has_role("admin")

    @property
    def display_name(self) -> str:
        return self.discord_username or self.name or f"user-{self.id}"


class Assignment(_WireModel):
    id: int
    short_id: int
    user_id: int
    role: str
    user: Optional[User] = None
    rate: Optional[float] = None
    rate_description: Optional[str] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ShortFile(_WireModel):
    id: int
    short_id: Optional[int] = None
    file_type: str
    file_name: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    download_url: Optional[str] = None
    storage_path: Optional[str] = None


class Short(_WireModel):
    id: int
    title: str
    description: Optional[str] = None
    idea: Optional[str] = None
    status: str = "idea"
    script_writer: Optional[User] = None
    assignments: list[Assignment] = Field(default_factory=list)
    files: list[ShortFile] = Field(default_factory=list)
    clips_completed_at: Optional[datetime] = None
    editing_completed_at: Optional[datetime] = None
    entered_clip_changes_at: Optional[datetime] = None
    entered_editing_changes_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def file_of_type(self, file_type: str) -> ShortFile | None:
        for item in self.files:
            if item.file_type == file_type:
                return item
        return None

    def has_file(self, file_type: str) -> bool:
        return self.file_of_type(file_type) is not None


class UploadTarget(_WireModel):
    upload_url: str
    storage_path: str
    headers: dict[str, str] = Field(default_factory=dict)
