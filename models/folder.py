from datetime import datetime
from typing import List

from pydantic import BaseModel

from database.documents.folder import Folder
from models.wishlist import WishlistItemResponse


class FolderResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    item_order: List[str]
    created_at: datetime
    updated_at: datetime


class FolderListResponse(BaseModel):
    folders: List[FolderResponse]


class FolderDetailResponse(BaseModel):
    folder: FolderResponse
    items: List[WishlistItemResponse]


class FolderCreate(BaseModel):
    name: str


class FolderRename(BaseModel):
    name: str


class FolderReorderRequest(BaseModel):
    item_ids: List[str]


def folder_response(folder: Folder) -> FolderResponse:
    return FolderResponse(
        id=folder.id,
        owner_id=folder.owner_id,
        name=folder.name,
        item_order=folder.item_order,
        created_at=folder.created_at,
        updated_at=folder.updated_at,
    )
