"""Outbound message texts.

Pure formatting: no I/O, no state. Slots are shown in 12h form and dates as
dd/mm/yyyy.
"""
from datetime import date
from typing import List

from clinic_booking import config
from clinic_booking.availability import DayAvailability
from clinic_booking.appointment_store import AppointmentRecord
from clinic_booking.state import Department
from clinic_booking.time_utils import format_slots_12h, format_time_12h, normalize_time_value
from clinic_booking.validation import calculate_max_advance_date, format_user_date

TIME_FORMAT_HELP = (
    "• 10:30 (assumes AM)\n"
    "• 1:30 (assumes PM)\n"
    "• 10:30 AM or 1:30 PM\n"
    "• 13:30 (24-hour format)"
)

DETAILS_FORMAT_HELP = (
    "📝 Line by line:\n"
    "Patient Name: John Doe\n"
    "Phone: 1234567890\n\n"
    "OR\n\n"
    "📝 Comma separated:\n"
    "John Doe, 1234567890"
)


def display_department(department: Department) -> str:
    return config.DEPARTMENTS[Department(department).value]


def welcome() -> str:
    return (
        f"Welcome to {config.CLINIC['name']}! 🏥\n\n"
        "We're here to help you with your healthcare needs.\n\n"
        "📅 Appointments are available on weekdays (Monday to Friday) only.\n\n"
        "Please reply with:\n\n"
        "📅 \"book\" - to start booking (Department → Date → Time → Details)\n"
        "📋 \"my appointments\" - to check your existing appointments\n"
        "📊 \"weekly\" - to see this week's availability for both departments\n"
        "❓ \"help\" - for assistance"
    )


def help_text() -> str:
    return (
        "❓ How can we help?\n\n"
        "Available commands:\n\n"
        "📅 \"book\" - Start booking (Department → Date → Time → Details)\n"
        "📋 \"my appointments\" - View your appointments\n"
        "📊 \"weekly\" - Weekly availability for both departments\n"
        "❌ \"cancel\" - Stop a booking in progress\n"
        "❓ \"help\" - Show this help message\n\n"
        "📝 Appointments are only available on weekdays (Monday to Friday) during clinic hours.\n\n"
        f"For urgent matters, please call us at {config.CLINIC['phone']}."
    )


def booking_rules() -> str:
    weekdays = config.BOOKING_RULES["max_advance_weekdays"]
    return (
        "📋 *Booking Information & Rules*\n\n"
        "Before we proceed with your appointment booking, please note the following:\n\n"
        f"💰 *Slot Booking Fee:* {config.SLOT_BOOKING_FEE} for every appointment "
        "(new or review), paid at the clinic\n\n"
        f"📅 *Advance Bookings:* Weekdays only, up to {weekdays} weekdays ahead\n\n"
        "Do you want to continue with the booking process?\n\n"
        "Reply with:\n"
        "• \"yes\" or \"continue\" - to proceed\n"
        "• \"cancel\" - to stop the booking process"
    )


def confirmation_reprompt() -> str:
    return '❓ Please reply with "yes" to continue or "cancel" to stop the booking process.'


def ask_department() -> str:
    return (
        "🏥 Please select your department:\n\n"
        "1️⃣ Orthopedics\n"
        "2️⃣ ENT\n\n"
        "Type \"1\" for Orthopedics or \"2\" for ENT.\n"
        "Type \"cancel\" to stop the booking process."
    )


def invalid_department() -> str:
    return '❌ Invalid department selection. Please type "1" for Orthopedics or "2" for ENT.'


def ask_date(department: Department, today: date) -> str:
    weekdays = config.BOOKING_RULES["max_advance_weekdays"]
    latest = format_user_date(calculate_max_advance_date(today, weekdays))
    return (
        f"📅 Let's book your appointment for {display_department(department)}!\n\n"
        "Please provide the date you'd like to book in dd/mm/yyyy format (e.g., 25/12/2024).\n\n"
        "📋 *Booking Rules:*\n"
        "• Weekdays only (Monday to Friday)\n"
        f"• Maximum {weekdays} weekdays in advance\n"
        f"• Latest available date: {latest}\n\n"
        "Type \"cancel\" to stop the booking process."
    )


def date_error(reason: str) -> str:
    return f"❌ {reason}\n\nPlease try a different date."


def fully_booked(day: str, department: Department) -> str:
    return (
        f"📅 {format_user_date(day)} ({display_department(department)})\n\n"
        "❌ No available slots for this date and department.\n\n"
        "All time slots are booked. Please choose a different date or type \"cancel\" to stop."
    )


def available_slots(day: str, slots: List[str], department: Department) -> str:
    return (
        f"📅 Available slots for {format_user_date(day)} ({display_department(department)}):\n\n"
        f"⏰ {', '.join(format_slots_12h(slots))}\n\n"
        "Please type your preferred time slot in any format:\n"
        f"{TIME_FORMAT_HELP}\n\n"
        "⚠️ Note: Slots are checked for availability when you select them."
    )


def invalid_time_format(slot_input: str, slots: List[str]) -> str:
    return (
        f"❌ Invalid time format: \"{slot_input}\".\n\n"
        "Please type a time in any of these formats:\n"
        f"{TIME_FORMAT_HELP}\n\n"
        f"Available slots: {', '.join(format_slots_12h(slots))}"
    )


def slot_not_offered(slot_input: str, slot: str, slots: List[str]) -> str:
    return (
        f"❌ Time \"{slot_input}\" ({format_time_12h(slot)}) is not one of our slots.\n\n"
        f"Please choose from these available slots: {', '.join(format_slots_12h(slots))}"
    )


def slot_unavailable(slot: str, slots: List[str]) -> str:
    return (
        f"❌ Sorry, the slot {format_time_12h(slot)} is no longer available. "
        "It may have been booked by another user.\n\n"
        f"Please choose from these available slots: {', '.join(format_slots_12h(slots))}"
    )


def slot_reserved_by_other(slot: str, slots: List[str]) -> str:
    return (
        f"❌ Sorry, the slot {format_time_12h(slot)} was just reserved by another user.\n\n"
        f"Please choose from these available slots: {', '.join(format_slots_12h(slots))}"
    )


def ask_patient_details(day: str, slot: str, department: Department) -> str:
    return (
        f"📋 Great! You've selected {format_user_date(day)} at {format_time_12h(slot)} "
        f"for {display_department(department)}.\n\n"
        "Now please provide:\n\n"
        "1️⃣ Patient Name:\n"
        "2️⃣ Phone Number:\n\n"
        "You can reply in two formats:\n\n"
        f"{DETAILS_FORMAT_HELP}\n\n"
        "Type \"cancel\" to start over."
    )


def details_format_help(reason: str) -> str:
    return (
        f"❌ {reason}\n\n"
        "Please provide patient details in the correct format:\n\n"
        f"{DETAILS_FORMAT_HELP}"
    )


def booking_confirmed(appointment: AppointmentRecord) -> str:
    slot = normalize_time_value(appointment.time_slot)
    return (
        "✅ *Appointment Confirmed!*\n\n"
        f"📋 *Patient:* {appointment.patient_name}\n"
        f"🏥 *Department:* {display_department(appointment.department)}\n"
        f"📅 *Date:* {format_user_date(appointment.date)}\n"
        f"⏰ *Time:* {format_time_12h(slot)}\n"
        f"📱 *Phone:* {appointment.patient_phone}\n\n"
        f"💰 *Slot Booking Fee:* {config.SLOT_BOOKING_FEE} (to be paid at clinic)\n\n"
        f"📍 *Location:* {config.CLINIC['location']}\n\n"
        f"Thank you for choosing {config.CLINIC['name']}! 🏥"
    )


def slot_just_taken() -> str:
    return (
        "❌ Sorry, that slot was just booked by someone else before we could confirm it.\n\n"
        "Please type \"book\" to start again and pick another time."
    )


def booking_cancelled() -> str:
    return '❌ Booking cancelled. You can start over by typing "book" anytime.'


def generic_error() -> str:
    return (
        "❌ Sorry, something went wrong on our side. "
        f"Please try again or call us at {config.CLINIC['phone']} for assistance."
    )


def booking_failed() -> str:
    return (
        "❌ Sorry, there was an error creating your appointment. "
        f"Please call us at {config.CLINIC['phone']} for assistance, "
        "or type \"book\" to try again."
    )


def no_appointments() -> str:
    return '📋 You have no upcoming appointments.\n\nTo book an appointment, type "book".'


def user_appointments(appointments: List[AppointmentRecord]) -> str:
    lines = ["📋 *Your Upcoming Appointments:*", ""]
    for appointment in appointments:
        slot = format_time_12h(normalize_time_value(appointment.time_slot))
        lines.append(f"📅 *{format_user_date(appointment.date)}* at *{slot}*")
        lines.append(f"🏥 *Department:* {display_department(appointment.department)}")
        lines.append(f"👤 *Patient:* {appointment.patient_name}")
        lines.append("")
    lines.append('To book a new appointment, type "book".')
    return "\n".join(lines)


def weekly_overview(days: List[DayAvailability]) -> str:
    total = len(config.TIME_SLOTS)
    icons = {Department.ORTHO: "🦴", Department.ENT: "👂"}
    lines = ["📅 Weekly Availability Overview", ""]
    for day in days:
        lines.append(f"{day.date.strftime('%A, %d %b')}:")
        for department, result in day.departments.items():
            label = f"  {icons[department]} {display_department(department)}"
            if not result.ok:
                lines.append(f"{label}: ❌ {result.error}")
                continue
            text = f"{label}: ✅ {len(result.available)}/{total} slots available"
            if result.reserved:
                text += f" ({len(result.reserved)} temporarily reserved)"
            lines.append(text)
        lines.append("")
    lines.append('💡 Tip: Use "book" to start the booking process.')
    return "\n".join(lines)
