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
    require_organizer,
)
from src.service.expo.driving_adapter.http_controller.booking_response import unwrap
from src.service.expo.driving_adapter.http_controller.schema.resource_schema import (
    MessageResponse,
    SessionCreateRequest,
    SessionMessageResponse,
)
from src.service.shared_kernel.domain.enum import ResourceKind


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def create_session(
    request: SessionCreateRequest,
    current_user: UserEntity = Depends(require_organizer),
    use_case: DefineResourceUseCase = Depends(DefineResourceUseCase.depends),
) -> SessionMessageResponse:
    session = await use_case.define_session(
        expo_id=request.expo_id,
        title=request.title,
        requester=current_user,
        max_attendees=request.max_attendees,
        allow_waitlist=request.allow_waitlist,
        session_number=request.session_number,
    )
    return SessionMessageResponse(
        message='Session created successfully', session=session.to_snapshot_dict()
    )


@router.get('/{session_id}')
@Logger.io
async def get_session(
    session_id: str,
    use_case: GetResourceUseCase = Depends(GetResourceUseCase.depends),
) -> Dict[str, Any]:
    session = await use_case.get_resource(resource_id=session_id, kind=ResourceKind.SESSION)
    return session.to_snapshot_dict()


@router.post('/{session_id}/register', status_code=status.HTTP_202_ACCEPTED)
@Logger.io
async def register_for_session(
    session_id: str,
    current_user: UserEntity = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(BookingCoordinator.depends),
) -> SessionMessageResponse:
    with tracer.start_as_current_span('controller.register_for_session') as span:
        span.set_attribute('session_id', session_id)
        span.set_attribute('attendee_id', current_user.id)

        result = unwrap(
            await coordinator.book(
                resource_id=session_id, holder_id=current_user.id, kind=ResourceKind.SESSION
            )
        )
        return SessionMessageResponse(
            message=result.message, session=result.resource.to_snapshot_dict()
        )


@router.post('/{session_id}/cancel-registration')
@Logger.io
async def cancel_session_registration(
    session_id: str,
    current_user: UserEntity = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(BookingCoordinator.depends),
) -> SessionMessageResponse:
    with tracer.start_as_current_span('controller.cancel_session_registration') as span:
        span.set_attribute('session_id', session_id)
        span.set_attribute('attendee_id', current_user.id)

        result = unwrap(
            await coordinator.cancel(
                resource_id=session_id, holder_id=current_user.id, kind=ResourceKind.SESSION
            )
        )
        return SessionMessageResponse(
            message=result.message, session=result.resource.to_snapshot_dict()
        )


@router.post('/{session_id}/close')
@Logger.io
async def close_session(
    session_id: str,
    current_user: UserEntity = Depends(require_organizer),
    use_case: ManageResourceUseCase = Depends(ManageResourceUseCase.depends),
) -> SessionMessageResponse:
    session = await use_case.close_resource(
        resource_id=session_id, kind=ResourceKind.SESSION, requester=current_user
    )
    return SessionMessageResponse(
        message='Session closed successfully', session=session.to_snapshot_dict()
    )


@router.delete('/{session_id}')
@Logger.io
async def delete_session(
    session_id: str,
    current_user: UserEntity = Depends(require_organizer),
    use_case: ManageResourceUseCase = Depends(ManageResourceUseCase.depends),
) -> MessageResponse:
    await use_case.delete_resource(
        resource_id=session_id, kind=ResourceKind.SESSION, requester=current_user
    )
    return MessageResponse(message='Session deleted successfully')
