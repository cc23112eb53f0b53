from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from src.platform.logging.loguru_io import Logger
from src.service.expo.app.command.create_expo_use_case import CreateExpoUseCase
from src.service.expo.app.command.update_expo_status_use_case import UpdateExpoStatusUseCase
from src.service.expo.app.query.get_expo_use_case import GetExpoUseCase
from src.service.expo.app.query.get_resource_use_case import GetResourceUseCase
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.expo.driving_adapter.http_controller.auth.role_auth import require_organizer
from src.service.expo.driving_adapter.http_controller.schema.expo_schema import (
    ExpoCreateRequest,
    ExpoMessageResponse,
    ExpoResponse,
    ExpoStatusUpdateRequest,
)
from src.service.shared_kernel.domain.enum import ResourceKind


router = APIRouter()


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_expo(
    request: ExpoCreateRequest,
    current_user: UserEntity = Depends(require_organizer),
    use_case: CreateExpoUseCase = Depends(CreateExpoUseCase.depends),
) -> ExpoMessageResponse:
    expo = await use_case.create_expo(
        organizer_id=current_user.id,
        title=request.title,
        description=request.description,
        allow_booth_sharing=request.allow_booth_sharing,
        max_booths_per_exhibitor=request.max_booths_per_exhibitor,
    )
    return ExpoMessageResponse(
        message='Expo created successfully', expo=ExpoResponse.from_entity(expo)
    )


@router.get('/{expo_id}')
@Logger.io
async def get_expo(
    expo_id: str,
    use_case: GetExpoUseCase = Depends(GetExpoUseCase.depends),
) -> ExpoResponse:
    return ExpoResponse.from_entity(await use_case.get_expo(expo_id=expo_id))


@router.patch('/{expo_id}/status')
@Logger.io
async def update_expo_status(
    expo_id: str,
    request: ExpoStatusUpdateRequest,
    current_user: UserEntity = Depends(require_organizer),
    use_case: UpdateExpoStatusUseCase = Depends(UpdateExpoStatusUseCase.depends),
) -> ExpoMessageResponse:
    expo = await use_case.update_status(
        expo_id=expo_id, new_status=request.status, requester=current_user
    )
    return ExpoMessageResponse(
        message='Expo updated successfully', expo=ExpoResponse.from_entity(expo)
    )


@router.get('/{expo_id}/booths')
@Logger.io
async def list_expo_booths(
    expo_id: str,
    use_case: GetResourceUseCase = Depends(GetResourceUseCase.depends),
) -> List[Dict[str, Any]]:
    booths = await use_case.list_by_expo(expo_id=expo_id, kind=ResourceKind.BOOTH)
    return [booth.to_snapshot_dict() for booth in booths]


@router.get('/{expo_id}/sessions')
@Logger.io
async def list_expo_sessions(
    expo_id: str,
    use_case: GetResourceUseCase = Depends(GetResourceUseCase.depends),
) -> List[Dict[str, Any]]:
    sessions = await use_case.list_by_expo(expo_id=expo_id, kind=ResourceKind.SESSION)
    return [session.to_snapshot_dict() for session in sessions]
