"""Booking flow controller.

Drives one WhatsApp user through
department -> date -> slot -> patient details -> confirmation.

Double booking is defended twice:
1. an in-memory reservation stops a second user picking a slot the first
   user is still filling details for
2. the appointments table's unique constraint rejects whichever insert
   loses a race the reservation table could not see (e.g. another worker)

Every user-facing problem is answered with a message here; nothing raised
by validation, the store or the transport escapes handle_message().
"""
import asyncio
import time
from datetime import date, datetime
from typing import Callable, Optional

from clinic_booking import config, messages
from clinic_booking.appointment_store import (
    AppointmentCreate,
    AppointmentStore,
    AppointmentStoreError,
    SlotAlreadyBookedError,
)
from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.intent import Command, IntentDetector
from clinic_booking.logging_config import get_logger
from clinic_booking.reservations import ReservationTable, SlotKey
from clinic_booking.session_store import ConversationStateStore
from clinic_booking.state import (
    BookingSession,
    BookingStep,
    InvalidTransitionError,
    validate_transition,
)
from clinic_booking.time_utils import parse_flexible_time_input
from clinic_booking.transport import TextContent, WhatsAppTransport
from clinic_booking.validation import (
    PatientDetailsError,
    parse_patient_details,
    parse_user_date,
)

logger = get_logger(__name__)


class BookingFlowController:
    """State machine over ConversationStateStore sessions."""

    def __init__(
        self,
        sessions: ConversationStateStore,
        reservations: ReservationTable,
        availability: AvailabilityCalculator,
        store: AppointmentStore,
        transport: WhatsAppTransport,
        intents: Optional[IntentDetector] = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.now,
        clock: Callable[[], float] = time.time
    ):
        self.sessions = sessions
        self.reservations = reservations
        self.availability = availability
        self.store = store
        self.transport = transport
        self.intents = intents or IntentDetector()
        self.today = today
        self.now = now
        self.clock = clock

        self._handlers = {
            BookingStep.IDLE: self._handle_idle,
            BookingStep.AWAITING_CONFIRMATION: self._handle_confirmation,
            BookingStep.AWAITING_DEPARTMENT: self._handle_department,
            BookingStep.AWAITING_DATE: self._handle_date,
            BookingStep.AWAITING_SLOT: self._handle_slot,
            BookingStep.AWAITING_DETAILS: self._handle_details,
        }

    async def handle_message(self, user_id: str, text: str) -> None:
        """
        Process one inbound text message from user_id.

        Args:
            user_id: WhatsApp sender id
            text: Message body, original case
        """
        session = self.sessions.get(user_id)
        self.sessions.apply_patch(user_id)
        log = logger.bind(user=user_id, step=session.step.value)
        log.info("message_received")

        try:
            if self.intents.is_cancel(text):
                await self._cancel(user_id, session)
                return

            handler = self._handlers.get(session.step)
            if handler is None:
                log.warning("unknown_step_reset")
                self.sessions.set(user_id, BookingSession())
                await self._reply(user_id, messages.welcome())
                return

            await handler(user_id, text.strip(), session)
        except Exception:
            log.exception("booking_flow_failed")
            await self._abort(user_id, session)

    async def _reply(self, user_id: str, body: str) -> None:
        delivered = await self.transport.send(user_id, TextContent(body))
        if not delivered:
            logger.warning("reply_not_delivered", user=user_id)

    def _advance(self, user_id: str, session: BookingSession, step: BookingStep, **fields) -> None:
        if not validate_transition(session.step, step):
            raise InvalidTransitionError(f"{session.step.value} -> {step.value}")
        self.sessions.apply_patch(user_id, step=step, **fields)
        logger.info("step_changed", user=user_id, step=step.value)

    def _release_hold(self, user_id: str, session: BookingSession) -> None:
        """Release the session's reservation if this user still owns it."""
        key = session.reservation_key()
        if key is None:
            return
        current = self.reservations.get(key)
        if current is not None and current.holder == user_id:
            self.reservations.release(key)
            logger.info("reservation_released", user=user_id, key=key)

    def _end_session(self, user_id: str, session: BookingSession) -> None:
        # Release before delete so no hold outlives its session.
        self._release_hold(user_id, session)
        self.sessions.delete(user_id)

    async def _cancel(self, user_id: str, session: BookingSession) -> None:
        self._end_session(user_id, session)
        logger.info("booking_cancelled", user=user_id)
        await self._reply(user_id, messages.booking_cancelled())

    async def _abort(self, user_id: str, session: BookingSession) -> None:
        self._end_session(user_id, session)
        await self._reply(user_id, messages.generic_error())

    async def _handle_idle(self, user_id: str, text: str, session: BookingSession) -> None:
        command = self.intents.detect_command(text)

        if command == Command.BOOK:
            self._advance(user_id, session, BookingStep.AWAITING_CONFIRMATION)
            await self._reply(user_id, messages.booking_rules())
        elif command == Command.MY_APPOINTMENTS:
            await self._send_user_appointments(user_id)
        elif command == Command.HELP:
            await self._reply(user_id, messages.help_text())
        elif command == Command.WEEKLY:
            overview = await self.availability.weekly_overview()
            await self._reply(user_id, messages.weekly_overview(overview))
        else:
            await self._reply(user_id, messages.welcome())

    async def _send_user_appointments(self, user_id: str) -> None:
        try:
            appointments = await asyncio.to_thread(
                self.store.find_by_phone, user_id, upcoming=True, now=self.now()
            )
        except AppointmentStoreError as e:
            logger.error("appointments_lookup_failed", user=user_id, error=str(e))
            await self._reply(user_id, messages.generic_error())
            return

        if not appointments:
            await self._reply(user_id, messages.no_appointments())
        else:
            await self._reply(user_id, messages.user_appointments(appointments))

    async def _handle_confirmation(self, user_id: str, text: str, session: BookingSession) -> None:
        if not self.intents.is_confirmation(text):
            await self._reply(user_id, messages.confirmation_reprompt())
            return

        self._advance(user_id, session, BookingStep.AWAITING_DEPARTMENT)
        await self._reply(user_id, messages.ask_department())

    async def _handle_department(self, user_id: str, text: str, session: BookingSession) -> None:
        department = self.intents.parse_department(text)
        if department is None:
            await self._reply(user_id, messages.invalid_department())
            return

        self._advance(user_id, session, BookingStep.AWAITING_DATE, department=department)
        await self._reply(user_id, messages.ask_date(department, self.today()))

    async def _handle_date(self, user_id: str, text: str, session: BookingSession) -> None:
        requested = parse_user_date(text)
        if requested is None:
            await self._reply(user_id, messages.date_error(
                "Invalid date format. Please use dd/mm/yyyy format (e.g., 25/12/2024)."
            ))
            return

        result = await self.availability.available_slots(requested, session.department)
        if result.store_failed:
            await self._reply(user_id, messages.generic_error())
            return
        if not result.ok:
            await self._reply(user_id, messages.date_error(result.error))
            return

        day = requested.isoformat()
        if not result.available:
            await self._reply(user_id, messages.fully_booked(day, session.department))
            return

        self._advance(user_id, session, BookingStep.AWAITING_SLOT, date=day)
        await self._reply(user_id, messages.available_slots(day, result.available, session.department))

    async def _handle_slot(self, user_id: str, text: str, session: BookingSession) -> None:
        result = await self.availability.available_slots(session.date, session.department)
        if result.store_failed:
            await self._reply(user_id, messages.generic_error())
            return
        if not result.ok:
            self._advance(user_id, session, BookingStep.AWAITING_DATE, date=None)
            await self._reply(user_id, messages.date_error(result.error))
            return

        slot = parse_flexible_time_input(text)
        if slot is None:
            await self._reply(user_id, messages.invalid_time_format(text, result.available))
            return
        if slot not in config.TIME_SLOTS:
            await self._reply(user_id, messages.slot_not_offered(text, slot, result.available))
            return
        if slot in result.booked:
            await self._reply(user_id, messages.slot_unavailable(slot, result.available))
            return

        key = SlotKey(session.date, session.department.value, slot)
        if not self.reservations.try_reserve(key, user_id):
            await self._reply(user_id, messages.slot_reserved_by_other(slot, result.available))
            return

        self._advance(
            user_id, session, BookingStep.AWAITING_DETAILS,
            slot=slot, reserved_at=self.clock()
        )
        logger.info("slot_reserved", user=user_id, key=key)
        await self._reply(user_id, messages.ask_patient_details(session.date, slot, session.department))

    async def _handle_details(self, user_id: str, text: str, session: BookingSession) -> None:
        try:
            details = parse_patient_details(text)
        except PatientDetailsError as e:
            await self._reply(user_id, messages.details_format_help(str(e)))
            return

        self.sessions.apply_patch(user_id, patient_name=details.name, patient_phone=details.phone)
        await self._commit(user_id, session)

    async def _commit(self, user_id: str, session: BookingSession) -> None:
        key = session.reservation_key()
        if key is None or not session.patient_name or not session.patient_phone:
            logger.error("commit_missing_fields", user=user_id, session=repr(session))
            await self._abort(user_id, session)
            return

        if not self.reservations.try_reserve(key, user_id):
            # Hold expired and another user picked the slot up.
            self.sessions.delete(user_id)
            await self._reply(user_id, messages.slot_just_taken())
            return

        try:
            request = AppointmentCreate(
                date=session.date,
                time_slot=session.slot,
                patient_name=session.patient_name,
                department=session.department,
                patient_phone=session.patient_phone,
            )
            appointment = await asyncio.to_thread(self.store.create, request)
        except SlotAlreadyBookedError as e:
            logger.warning("slot_taken_at_commit", user=user_id, key=key, error=str(e))
            self._end_session(user_id, session)
            await self._reply(user_id, messages.slot_just_taken())
            return
        except AppointmentStoreError as e:
            logger.error("appointment_create_failed", user=user_id, key=key, error=str(e))
            self._end_session(user_id, session)
            await self._reply(user_id, messages.booking_failed())
            return

        self._end_session(user_id, session)
        logger.info("booking_completed", user=user_id, appointment_id=appointment.id)
        await self._reply(user_id, messages.booking_confirmed(appointment))
