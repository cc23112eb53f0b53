from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.expo.app.command.booking_coordinator import BookingCoordinator
from src.service.expo.app.command.define_resource_use_case import DefineResourceUseCase
from src.service.expo.app.command.manage_resource_use_case import ManageResourceUseCase
from src.service.expo.app.query.get_resource_use_case import GetResourceUseCase
from src.service.expo.domain.entity.user_entity import UserEntity
from src.service.expo.driving_adapter.http_controller.auth.role_auth import (
    get_current_user,
    require_exhibitor,
    require_organizer,
)
from src.service.expo.driving_adapter.http_controller.booking_response import unwrap
from src.service.expo.driving_adapter.http_controller.schema.resource_schema import (
    BoothCreateRequest,
    BoothMessageResponse,
    MessageResponse,
)
from src.service.shared_kernel.domain.enum import ResourceKind


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_booth(
    request: BoothCreateRequest,
    current_user: UserEntity = Depends(require_organizer),
    use_case: DefineResourceUseCase = Depends(DefineResourceUseCase.depends),
) -> BoothMessageResponse:
    booth = await use_case.define_booth(
        expo_id=request.expo_id,
        booth_number=request.booth_number,
        requester=current_user,
        capacity=request.capacity,
        allow_sharing=request.allow_sharing,
        allow_waitlist=request.allow_waitlist,
        title=request.title,
    )
    return BoothMessageResponse(message='Booth created successfully', booth=booth.to_snapshot_dict())


@router.get('/{booth_id}')
@Logger.io
async def get_booth(
    booth_id: str,
    use_case: GetResourceUseCase = Depends(GetResourceUseCase.depends),
) -> Dict[str, Any]:
    booth = await use_case.get_resource(resource_id=booth_id, kind=ResourceKind.BOOTH)
    return booth.to_snapshot_dict()


@router.post('/{booth_id}/book', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
async def book_booth(
    booth_id: str,
    current_user: UserEntity = Depends(require_exhibitor),
    coordinator: BookingCoordinator = Depends(BookingCoordinator.depends),
) -> BoothMessageResponse:
    with tracer.start_as_current_span('controller.book_booth') as span:
        span.set_attribute('booth_id', booth_id)
        span.set_attribute('exhibitor_id', current_user.id)

        result = unwrap(
            await coordinator.book(
                resource_id=booth_id, holder_id=current_user.id, kind=ResourceKind.BOOTH
            )
        )
        return BoothMessageResponse(message=result.message, booth=result.resource.to_snapshot_dict())


@router.post('/{booth_id}/cancel-booking')
@Logger.io
async def cancel_booth_booking(
    booth_id: str,
    current_user: UserEntity = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(BookingCoordinator.depends),
) -> BoothMessageResponse:
    with tracer.start_as_current_span('controller.cancel_booth_booking') as span:
        span.set_attribute('booth_id', booth_id)
        span.set_attribute('exhibitor_id', current_user.id)

        result = unwrap(
            await coordinator.cancel(
                resource_id=booth_id, holder_id=current_user.id, kind=ResourceKind.BOOTH
            )
        )
        return BoothMessageResponse(message=result.message, booth=result.resource.to_snapshot_dict())


@router.post('/{booth_id}/close')
@Logger.io
async def close_booth(
    booth_id: str,
    current_user: UserEntity = Depends(require_organizer),
    use_case: ManageResourceUseCase = Depends(ManageResourceUseCase.depends),
) -> BoothMessageResponse:
    booth = await use_case.close_resource(
        resource_id=booth_id, kind=ResourceKind.BOOTH, requester=current_user
    )
    return BoothMessageResponse(message='Booth closed successfully', booth=booth.to_snapshot_dict())


@router.delete('/{booth_id}')
@Logger.io
async def delete_booth(
    booth_id: str,
    current_user: UserEntity = Depends(require_organizer),
    use_case: ManageResourceUseCase = Depends(ManageResourceUseCase.depends),
) -> MessageResponse:
    await use_case.delete_resource(
        resource_id=booth_id, kind=ResourceKind.BOOTH, requester=current_user
    )
    return MessageResponse(message='Booth deleted successfully')
