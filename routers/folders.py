import logging

from fastapi import APIRouter, Depends, status

from business import folders as folder_service
from business import purchases as purchase_service
from business import wishlist as wishlist_service
from business.session import Session
from models.folder import (
    FolderCreate,
    FolderDetailResponse,
    FolderListResponse,
    FolderRename,
    FolderReorderRequest,
    FolderResponse,
    folder_response,
)
from models.wishlist import item_response
from utils.middlewares.auth_user import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/folders", tags=["Folders"])


@router.get("/user/{owner_id}", response_model=FolderListResponse)
async def list_folders(
    owner_id: str,
    session: Session = Depends(get_session),
) -> FolderListResponse:
    folders = folder_service.list_folders(session.store, owner_id)
    return FolderListResponse(folders=[folder_response(folder) for folder in folders])


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    payload: FolderCreate,
    session: Session = Depends(get_session),
) -> FolderResponse:
    return folder_response(folder_service.create_folder(session, payload.name))


@router.get("/{folder_id}", response_model=FolderDetailResponse)
async def get_folder(
    folder_id: str,
    session: Session = Depends(get_session),
) -> FolderDetailResponse:
    folder = folder_service.get_folder(session.store, folder_id)
    items = folder_service.list_folder_items(session.store, folder)
    purchases = purchase_service.list_purchases(session, folder.owner_id)
    return FolderDetailResponse(
        folder=folder_response(folder),
        items=[item_response(item, purchase_service.item_purchase_view(session, item, purchases)) for item in items],
    )


@router.patch("/{folder_id}", response_model=FolderResponse)
async def rename_folder(
    folder_id: str,
    payload: FolderRename,
    session: Session = Depends(get_session),
) -> FolderResponse:
    return folder_response(folder_service.rename_folder(session, folder_id, payload.name))


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: str,
    session: Session = Depends(get_session),
) -> None:
    folder_service.delete_folder(session, folder_id)


@router.put("/{folder_id}/order", response_model=FolderResponse)
async def reorder_folder_items(
    folder_id: str,
    payload: FolderReorderRequest,
    session: Session = Depends(get_session),
) -> FolderResponse:
    return folder_response(folder_service.reorder_folder_items(session, folder_id, payload.item_ids))


@router.post("/{folder_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_item(
    folder_id: str,
    item_id: str,
    session: Session = Depends(get_session),
) -> None:
    wishlist_service.add_item_to_folder(session, item_id, folder_id)


@router.delete("/{folder_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item(
    folder_id: str,
    item_id: str,
    session: Session = Depends(get_session),
) -> None:
    wishlist_service.remove_item_from_folder(session, item_id, folder_id)
