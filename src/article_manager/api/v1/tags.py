"""Tag endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from article_manager.dependencies import SettingsDep, get_tag_service
from article_manager.schemas.common import ErrorResponse
from article_manager.schemas.tag import TagRequest, TagResponse
from article_manager.services.tag import TagService

router = APIRouter()

TagServiceDep = Annotated[TagService, Depends(get_tag_service)]


@router.get("", response_model=list[TagResponse], summary="List tags")
async def list_tags(service: TagServiceDep, settings: SettingsDep) -> list[TagResponse]:
    tags = await service.get_all()
    return [TagResponse.from_entity(t, settings.display_timezone) for t in tags]


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a tag",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid name"},
        409: {"model": ErrorResponse, "description": "Name already taken"},
    },
)
async def create_tag(
    request: TagRequest, service: TagServiceDep, settings: SettingsDep
) -> TagResponse:
    tag = await service.create(request.name)
    return TagResponse.from_entity(tag, settings.display_timezone)


@router.get(
    "/{tag_id}",
    response_model=TagResponse,
    summary="Get a tag",
    responses={404: {"model": ErrorResponse, "description": "Tag not found"}},
)
async def get_tag(tag_id: int, service: TagServiceDep, settings: SettingsDep) -> TagResponse:
    tag = await service.get_by_id(tag_id)
    return TagResponse.from_entity(tag, settings.display_timezone)


@router.put(
    "/{tag_id}",
    response_model=TagResponse,
    summary="Rename a tag",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid name"},
        404: {"model": ErrorResponse, "description": "Tag not found"},
        409: {"model": ErrorResponse, "description": "Name already taken"},
    },
)
async def update_tag(
    tag_id: int, request: TagRequest, service: TagServiceDep, settings: SettingsDep
) -> TagResponse:
    tag = await service.update(tag_id, request.name)
    return TagResponse.from_entity(tag, settings.display_timezone)


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a tag",
    responses={404: {"model": ErrorResponse, "description": "Tag not found"}},
)
async def delete_tag(tag_id: int, service: TagServiceDep) -> Response:
    await service.delete(tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
