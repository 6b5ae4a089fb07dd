"""Prefilled wa.me share links for handing out portal access."""

import re
from urllib.parse import quote

WHATSAPP_BASE_URL = 'https://wa.me/?text='
# same reserved set as a browser's encodeURIComponent
URI_COMPONENT_SAFE = "!'()*"


def _wa_link(message):
    return f"{WHATSAPP_BASE_URL}{quote(message, safe=URI_COMPONENT_SAFE)}"


def generate_whatsapp_link(student_name, pin, base_url):
    portal_url = f"{base_url.rstrip('/')}/leerling"
    message = (
        f"Hoi {student_name}! 👋\n\n"
        "Dit is je toegang tot je bijlesnotities van Stephen's Privelessen:\n\n"
        f"🔑 PIN: {pin}\n"
        f"📒 Link: {portal_url}\n\n"
        "Bewaar deze code veilig. Tot in de les! 📚"
    )
    return _wa_link(message)


def generate_student_portal_link(student_name, base_url):
    portal_url = f"{base_url.rstrip('/')}/leerling"
    message = (
        f"Hoi {student_name}! 👋\n\n"
        "Hier is de link naar je bijlesnotities van Stephen's Privelessen:\n\n"
        f"📒 {portal_url}\n\n"
        "Je hebt je PIN nodig om in te loggen. 📚"
    )
    return _wa_link(message)


def generate_admin_portal_link(base_url, teacher_domain='stephensprivelessen.nl'):
    admin_url = f"{base_url.rstrip('/')}/admin"
    message = (
        "Toegang tot het docentenportaal van Stephen's Privelessen:\n\n"
        f"🔐 {admin_url}\n\n"
        f"Log in met je Google Workspace account (@{teacher_domain}) 👨‍🏫"
    )
    return _wa_link(message)


def format_pin_for_display(pin, show_full=False):
    pin = str(pin or '')
    if show_full:
        return pin
    if len(pin) >= 4:
        return f"{pin[:2]}**{pin[-2:]}"
    return '******'


def validate_whatsapp_number(phone_number):
    digits = re.sub(r'\D', '', str(phone_number or ''))
    return 7 <= len(digits) <= 15


def format_phone_for_whatsapp(phone_number):
    digits = re.sub(r'\D', '', str(phone_number or ''))
    if digits.startswith('0'):
        return f"31{digits[1:]}"
    if not digits.startswith('31'):
        return f"31{digits}"
    return digits
