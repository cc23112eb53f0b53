import time
from contextlib import AsyncExitStack
from typing import Awaitable, Callable, Optional, Self, TypeVar

import anyio
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.channel.channel_config import ChannelConfig
from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import ResourceBusyError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import BookingMetrics
from src.service.expo.app.dto.booking_result import BookingError, BookingErrorCode, BookingResult
from src.service.expo.app.interface.i_bookable_resource_repo import IBookableResourceRepo
from src.service.expo.app.interface.i_event_dispatcher import IEventDispatcher
from src.service.expo.app.interface.i_expo_repo import IExpoRepo
from src.service.expo.app.interface.i_notification_repo import INotificationRepo
from src.service.expo.app.interface.i_resource_lock import IResourceLock, resource_lock_key
from src.service.expo.domain.capacity_ledger import (
    Acquired,
    CapacityLedger,
    NoOp,
    PromotedHolder,
    Rejected,
    RejectReason,
    Released,
    Waitlisted,
)
from src.service.expo.domain.domain_event.booking_event import BookingEvent
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.expo.domain.entity.expo_entity import Expo
from src.service.expo.domain.entity.notification_entity import Notification
from src.service.expo.domain.enum import NotificationType
from src.service.shared_kernel.domain.enum import BookingEventKind, ResourceKind


_T = TypeVar('_T')

_MESSAGES = {
    ResourceKind.BOOTH: {
        'not_found': 'Booth not found',
        'not_bookable': 'Expo is not open for booth booking',
        'booked': 'Booth booked successfully',
        'waitlisted': 'Added to waitlist',
        'cancelled': 'Booth booking cancelled successfully',
        'not_holding': 'You do not hold this booth',
        RejectReason.ALREADY_HOLDING: 'You have already booked this booth',
        RejectReason.ALREADY_WAITLISTED: 'Already on waitlist',
        RejectReason.AT_CAPACITY: 'Booth is not available for booking',
        RejectReason.SHARING_NOT_ALLOWED: 'Booth is not available for booking',
        RejectReason.CLOSED: 'Booth is closed',
    },
    ResourceKind.SESSION: {
        'not_found': 'Session not found',
        'not_bookable': 'Expo is not open for registration',
        'booked': 'Successfully registered for session',
        'waitlisted': 'Added to waitlist',
        'cancelled': 'Registration cancelled successfully',
        'not_holding': 'You are not registered for this session',
        RejectReason.ALREADY_HOLDING: 'Already registered for this session',
        RejectReason.ALREADY_WAITLISTED: 'Already on waitlist',
        RejectReason.AT_CAPACITY: 'Session is at full capacity',
        RejectReason.SHARING_NOT_ALLOWED: 'Session is not open to additional attendees',
        RejectReason.CLOSED: 'Registration is not allowed for this session',
    },
}

_STATISTIC_FIELDS = {
    ResourceKind.BOOTH: 'registered_exhibitors',
    ResourceKind.SESSION: 'registered_attendees',
}

_NOTIFICATION_TYPES = {
    ResourceKind.BOOTH: NotificationType.BOOTH_BOOKING,
    ResourceKind.SESSION: NotificationType.SESSION_REGISTRATION,
}


def _not_found(kind: Optional[ResourceKind]) -> BookingError:
    message = _MESSAGES[kind]['not_found'] if kind else 'Resource not found'
    return BookingError(BookingErrorCode.NOT_FOUND, message)


def _exhibitor_lock_key(expo_id: str, holder_id: str) -> str:
    return f'expo:{expo_id}:exhibitor:{holder_id}'


class BookingCoordinator:
    """
    Booking Coordinator - applies book/cancel requests to the capacity ledger

    Flow (book):
    1. Load resource and expo, reject unknown or non-bookable (draft, completed...) expos
    2. Booths: enforce the expo's per-exhibitor rules under an exhibitor-scoped lock
    3. Inside the resource critical section: reload, ledger.try_acquire, persist
    4. Emit exactly one BookingEvent per committed transition and publish it
       while still holding the section, so per-resource event order matches commit order

    Flow (cancel):
    - ledger.release; a promotion emits ``released`` then ``promoted`` and leaves a
      persisted notification for the promoted holder (push alone is best-effort)
    - Only a bookable expo promotes. Waiting exhibitors who would break the expo's
      booth rules by moving in are dropped from the queue (``cancelled``, not_eligible)
      and the next one in line is promoted instead

    A section that cannot be entered in time is retried with doubling delays,
    then reported as ``BookingError(BUSY)``.
    """

    def __init__(
        self,
        *,
        resource_repo: IBookableResourceRepo,
        expo_repo: IExpoRepo,
        notification_repo: INotificationRepo,
        event_dispatcher: IEventDispatcher,
        resource_lock: IResourceLock,
        metrics: BookingMetrics,
        busy_retry_attempts: int = 3,
        busy_retry_base_delay: float = 0.05,
    ) -> None:
        self.resource_repo = resource_repo
        self.expo_repo = expo_repo
        self.notification_repo = notification_repo
        self.event_dispatcher = event_dispatcher
        self.resource_lock = resource_lock
        self.metrics = metrics
        self.busy_retry_attempts = max(busy_retry_attempts, 1)
        self.busy_retry_base_delay = busy_retry_base_delay
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        resource_repo: IBookableResourceRepo = Depends(Provide[Container.bookable_resource_repo]),
        expo_repo: IExpoRepo = Depends(Provide[Container.expo_repo]),
        notification_repo: INotificationRepo = Depends(Provide[Container.notification_repo]),
        event_dispatcher: IEventDispatcher = Depends(Provide[Container.event_dispatcher]),
        resource_lock: IResourceLock = Depends(Provide[Container.resource_lock]),
        metrics: BookingMetrics = Depends(Provide[Container.metrics]),
    ) -> Self:
        return cls(
            resource_repo=resource_repo,
            expo_repo=expo_repo,
            notification_repo=notification_repo,
            event_dispatcher=event_dispatcher,
            resource_lock=resource_lock,
            metrics=metrics,
            busy_retry_attempts=settings.LEDGER_BUSY_RETRY_ATTEMPTS,
            busy_retry_base_delay=settings.LEDGER_BUSY_RETRY_BASE_DELAY_SECONDS,
        )

    # ========== book ==========

    @Logger.io
    async def book(
        self, *, resource_id: str, holder_id: str, kind: Optional[ResourceKind] = None
    ) -> BookingResult | BookingError:
        started = time.perf_counter()
        with self.tracer.start_as_current_span(
            'coordinator.book', attributes={'resource.id': resource_id, 'holder.id': holder_id}
        ):
            resource = await self.resource_repo.get_by_id(resource_id=resource_id)
            if resource is None or (kind is not None and resource.kind != kind):
                return _not_found(kind)
            result = await self._book(resource=resource, holder_id=holder_id)

        self._record('book', resource.kind, result, started)
        return result

    async def _book(
        self, *, resource: BookableResource, holder_id: str
    ) -> BookingResult | BookingError:
        messages = _MESSAGES[resource.kind]
        expo = await self.expo_repo.get_by_id(expo_id=resource.parent_event_id)
        if expo is None:
            return BookingError(BookingErrorCode.NOT_FOUND, 'Expo not found')
        if not expo.is_bookable:
            return BookingError(BookingErrorCode.NOT_BOOKABLE, messages['not_bookable'])

        lock_keys = [resource_lock_key(resource.id)]
        if resource.kind == ResourceKind.BOOTH:
            # Exhibitor-scoped section first so the count check and the acquire stay together
            lock_keys.insert(0, _exhibitor_lock_key(expo.id, holder_id))

        async def acquire() -> BookingResult | BookingError:
            if resource.kind == ResourceKind.BOOTH:
                if error := await self._check_booth_eligibility(
                    expo=expo, resource=resource, holder_id=holder_id
                ):
                    return error
            return await self._acquire_locked(resource_id=resource.id, holder_id=holder_id)

        return await self._run_exclusive(lock_keys, resource.kind, acquire)

    async def _check_booth_eligibility(
        self, *, expo: Expo, resource: BookableResource, holder_id: str
    ) -> BookingError | None:
        held = [
            booth
            for booth in await self.resource_repo.list_held_by(
                parent_event_id=expo.id, kind=ResourceKind.BOOTH, holder_id=holder_id
            )
            if booth.id != resource.id
        ]
        if held and not expo.settings.allow_booth_sharing:
            return BookingError(
                BookingErrorCode.NOT_ELIGIBLE, 'You already have a booth in this expo'
            )
        if len(held) >= expo.settings.max_booths_per_exhibitor:
            return BookingError(
                BookingErrorCode.NOT_ELIGIBLE,
                'You have reached the maximum booth limit for this expo',
            )
        return None

    async def _acquire_locked(
        self, *, resource_id: str, holder_id: str
    ) -> BookingResult | BookingError:
        resource = await self.resource_repo.get_by_id(resource_id=resource_id)
        if resource is None:
            return BookingError(BookingErrorCode.NOT_FOUND, 'Resource not found')
        messages = _MESSAGES[resource.kind]

        ledger = CapacityLedger(resource)
        match ledger.try_acquire(holder_id):
            case Rejected(reason=reason):
                Logger.base.info(f'🚫 [COORDINATOR] {holder_id} rejected on {resource_id}: {reason}')
                return BookingError(BookingErrorCode(reason.value), messages[reason])
            case Acquired():
                kind, payload, message = BookingEventKind.BOOKED, {}, messages['booked']
            case Waitlisted(position=position):
                kind, payload = BookingEventKind.WAITLISTED, {'position': position}
                message = messages['waitlisted']

        saved = await self.resource_repo.save(resource=ledger.status())
        if kind == BookingEventKind.BOOKED:
            await self._adjust_statistics(saved, 1)

        event = BookingEvent.create(
            resource=saved, kind=kind, actor_id=holder_id, holder_id=holder_id, payload=payload
        )
        await self.event_dispatcher.publish(event)
        Logger.base.info(f'✅ [COORDINATOR] {holder_id} {kind} on {resource_id}')
        return BookingResult(message=message, resource=saved, events=(event,))

    # ========== cancel ==========

    @Logger.io
    async def cancel(
        self, *, resource_id: str, holder_id: str, kind: Optional[ResourceKind] = None
    ) -> BookingResult | BookingError:
        started = time.perf_counter()
        with self.tracer.start_as_current_span(
            'coordinator.cancel', attributes={'resource.id': resource_id, 'holder.id': holder_id}
        ):
            resource = await self.resource_repo.get_by_id(resource_id=resource_id)
            if resource is None or (kind is not None and resource.kind != kind):
                return _not_found(kind)

            lock_keys = [resource_lock_key(resource_id)]
            if resource.kind == ResourceKind.BOOTH:
                # Waiting exhibitors may be promoted; hold their sections (sorted, before the
                # resource, same order as book) so a parallel booking cannot race the check
                lock_keys[:0] = sorted(
                    _exhibitor_lock_key(resource.parent_event_id, waiting)
                    for waiting in resource.waitlist
                )

            async def release() -> BookingResult | BookingError:
                return await self._release_locked(resource_id=resource_id, holder_id=holder_id)

            result = await self._run_exclusive(lock_keys, resource.kind, release)

        self._record('cancel', resource.kind, result, started)
        return result

    async def _release_locked(
        self, *, resource_id: str, holder_id: str
    ) -> BookingResult | BookingError:
        resource = await self.resource_repo.get_by_id(resource_id=resource_id)
        if resource is None:
            return BookingError(BookingErrorCode.NOT_FOUND, 'Resource not found')
        messages = _MESSAGES[resource.kind]

        expo = await self.expo_repo.get_by_id(expo_id=resource.parent_event_id)
        # Nobody moves in once the expo is over (or was never opened)
        promote = expo is not None and expo.is_bookable
        ineligible: set[str] = set()
        if (
            promote
            and expo is not None
            and resource.kind == ResourceKind.BOOTH
            and holder_id in resource.holders
        ):
            ineligible = await self._ineligible_waitlist_head(expo=expo, resource=resource)

        ledger = CapacityLedger(resource)
        outcome = ledger.release(
            holder_id, promote=promote, is_eligible=lambda waiting: waiting not in ineligible
        )
        if isinstance(outcome, NoOp) and not outcome.removed_from_waitlist:
            return BookingError(BookingErrorCode.NOT_HOLDING, messages['not_holding'])

        saved = await self.resource_repo.save(resource=ledger.status())

        match outcome:
            case NoOp():
                events = [
                    BookingEvent.create(
                        resource=saved,
                        kind=BookingEventKind.CANCELLED,
                        actor_id=holder_id,
                        holder_id=holder_id,
                    )
                ]
            case Released():
                await self._adjust_statistics(saved, -1)
                events = [
                    BookingEvent.create(
                        resource=saved,
                        kind=BookingEventKind.RELEASED,
                        actor_id=holder_id,
                        holder_id=holder_id,
                    )
                ]
            case PromotedHolder(released_holder_id=released_id, next_holder_id=next_id):
                # The released event carries the vacated snapshot so readers see the gap first
                vacated = saved.with_changes(
                    holders=tuple(h for h in saved.holders if h != next_id),
                    waitlist=(next_id, *saved.waitlist),
                )
                events = [
                    BookingEvent.create(
                        resource=vacated,
                        kind=BookingEventKind.RELEASED,
                        actor_id=holder_id,
                        holder_id=released_id,
                        payload={'promotedHolderId': next_id},
                    ),
                    BookingEvent.create(
                        resource=saved,
                        kind=BookingEventKind.PROMOTED,
                        actor_id=holder_id,
                        holder_id=next_id,
                        payload={'releasedHolderId': released_id},
                    ),
                ]

        skipped = () if isinstance(outcome, NoOp) else outcome.skipped_holder_ids
        events.extend(
            BookingEvent.create(
                resource=saved,
                kind=BookingEventKind.CANCELLED,
                actor_id=holder_id,
                holder_id=dropped,
                payload={'reason': BookingErrorCode.NOT_ELIGIBLE.value},
            )
            for dropped in skipped
        )

        for event in events:
            await self.event_dispatcher.publish(event)
        if isinstance(outcome, PromotedHolder):
            await self._notify_promoted(resource=saved, holder_id=outcome.next_holder_id)
        for dropped in skipped:
            await self._notify_dropped(resource=saved, holder_id=dropped)

        Logger.base.info(
            f'✅ [COORDINATOR] {holder_id} cancelled on {resource_id}: '
            f'{[str(event.kind) for event in events]}'
        )
        return BookingResult(message=messages['cancelled'], resource=saved, events=events)

    async def _ineligible_waitlist_head(
        self, *, expo: Expo, resource: BookableResource
    ) -> set[str]:
        """Waiting exhibitors, in queue order, who could not take the booth right now."""
        ineligible: set[str] = set()
        for waiting in resource.waitlist:
            if await self._check_booth_eligibility(
                expo=expo, resource=resource, holder_id=waiting
            ) is None:
                break
            ineligible.add(waiting)
        return ineligible

    # ========== helpers ==========

    async def _run_exclusive(
        self,
        keys: list[str],
        resource_kind: ResourceKind,
        operation: Callable[[], Awaitable[_T]],
    ) -> _T | BookingError:
        for attempt in range(1, self.busy_retry_attempts + 1):
            try:
                async with AsyncExitStack() as stack:
                    for key in keys:
                        await stack.enter_async_context(self.resource_lock.hold(key=key))
                    return await operation()
            except ResourceBusyError as e:
                self.metrics.record_lock_busy(resource_kind=resource_kind.value)
                if attempt == self.busy_retry_attempts:
                    Logger.base.warning(f'⏳ [COORDINATOR] Giving up on {e.key} after {attempt} tries')
                    break
                await anyio.sleep(self.busy_retry_base_delay * 2 ** (attempt - 1))

        return BookingError(
            BookingErrorCode.BUSY, 'The resource is busy, please retry in a moment'
        )

    async def _adjust_statistics(self, resource: BookableResource, amount: int) -> None:
        await self.expo_repo.increment_statistic(
            expo_id=resource.parent_event_id,
            field=_STATISTIC_FIELDS[resource.kind],
            amount=amount,
        )

    async def _notify_promoted(self, *, resource: BookableResource, holder_id: str) -> None:
        label = resource.title or resource.resource_number
        if resource.kind == ResourceKind.BOOTH:
            title, message = 'Booth booking confirmed', f'A spot opened up: booth {label} is now yours'
        else:
            title = 'Session registration confirmed'
            message = f'A spot opened up: you are now registered for {label}'
        await self._notify(resource=resource, holder_id=holder_id, title=title, message=message)

    async def _notify_dropped(self, *, resource: BookableResource, holder_id: str) -> None:
        label = resource.title or resource.resource_number
        await self._notify(
            resource=resource,
            holder_id=holder_id,
            title='Removed from waitlist',
            message=f'Booth {label} opened up, but you already hold the booths this expo allows',
        )

    async def _notify(
        self, *, resource: BookableResource, holder_id: str, title: str, message: str
    ) -> None:
        """Persist the notice first; the push on the personal topic is best-effort."""
        notification = await self.notification_repo.create(
            notification=Notification.create(
                recipient_id=holder_id,
                type=_NOTIFICATION_TYPES[resource.kind],
                title=title,
                message=message,
                expo_id=resource.parent_event_id,
                related_resource_id=resource.id,
            )
        )
        await self.event_dispatcher.publish_to_user(
            user_id=holder_id,
            message_type=ChannelConfig.MessageType.NOTIFICATION,
            payload=notification.to_payload(),
        )

    def _record(
        self,
        operation: str,
        resource_kind: ResourceKind,
        result: BookingResult | BookingError,
        started: float,
    ) -> None:
        if isinstance(result, BookingError):
            outcome = result.code.value
        else:
            outcome = result.event.kind.value if result.event else 'none'
        self.metrics.record_booking(
            resource_kind=resource_kind.value,
            operation=operation,
            outcome=outcome,
            duration=time.perf_counter() - started,
        )
