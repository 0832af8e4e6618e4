"""Table reservations: form validation and the downloadable text receipt.

Reservations are not stored anywhere; the receipt is the only record the
customer gets.
"""
from datetime import date, datetime
import random
import re

MAX_PARTY = 10
MIN_PHONE_DIGITS = 10

_NAME_RE = re.compile(r"^[a-záéíóúñüA-ZÁÉÍÓÚÑÜ\s]+$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_PHONE_RE = re.compile(r"^[0-9]+$")

_WEEKDAYS = ['lunes', 'martes', 'miércoles', 'jueves', 'viernes', 'sábado', 'domingo']
_MONTHS = ['enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio', 'julio',
           'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre']

RESTAURANT = {
    'direccion': 'Barrio Centro',
    'ciudad': 'Villagarzón - Putumayo',
    'telefono': '312739897',
    'email': 'correo@gmail.com',
    'facebook': '/papas.locas.21481',
    'instagram': '@papas_locas_villagarzon',
}

POPULAR = ['Papas Locas Clásicas', 'Hamburguesas Premium', 'Picadas Tradicionales',
           'Sándwiches Especiales', 'Pizzas Artesanales']
COMBOS = [('Combo Personal', 60), ('Combo Familiar', 100), ('Combo Extra', 80)]

RULE = '━' * 57


class ReservationError(ValueError):
    pass


def validate_reservation(data, today: date | None = None) -> dict:
    """Return the cleaned reservation or raise ReservationError."""
    if not isinstance(data, dict):
        raise ReservationError('Por favor completa todos los campos')
    today = today or date.today()
    nombre = str(data.get('nombre') or '').strip()
    celular = str(data.get('celular') or '').strip()
    fecha = str(data.get('fecha') or '').strip()
    personas = data.get('personas')
    hora = str(data.get('hora') or '').strip()

    if not nombre or not celular or not fecha or personas in (None, '') or not hora:
        raise ReservationError('Por favor completa todos los campos')
    if not _NAME_RE.match(nombre):
        raise ReservationError('El nombre solo puede contener letras y espacios')
    if not _PHONE_RE.fullmatch(celular) or len(celular) < MIN_PHONE_DIGITS:
        raise ReservationError(f'Por favor ingresa un número de celular válido (mínimo {MIN_PHONE_DIGITS} dígitos)')
    try:
        personas = int(personas)
    except (TypeError, ValueError):
        raise ReservationError(f'El número de personas debe estar entre 1 y {MAX_PARTY}') from None
    if personas < 1 or personas > MAX_PARTY:
        raise ReservationError(f'El número de personas debe estar entre 1 y {MAX_PARTY}')
    try:
        dia = date.fromisoformat(fecha)
    except ValueError:
        raise ReservationError('La fecha debe tener el formato AAAA-MM-DD') from None
    if dia < today:
        raise ReservationError('La fecha debe ser igual o posterior a hoy')
    if not _TIME_RE.match(hora):
        raise ReservationError('La hora debe tener el formato HH:MM')

    return {'nombre': nombre, 'celular': celular, 'fecha': dia, 'personas': personas, 'hora': hora}


def generate_code(now: datetime | None = None, rng=random) -> str:
    now = now or datetime.now()
    return f"PL{now:%y%m%d}{rng.randrange(1000):03d}"


def format_date(day: date) -> str:
    return f"{_WEEKDAYS[day.weekday()]}, {day.day} de {_MONTHS[day.month - 1]} de {day.year}"


def format_time(hora: str) -> str:
    h, m = hora.split(':')
    h = int(h)
    periodo = 'PM' if h >= 12 else 'AM'
    h12 = h - 12 if h > 12 else (12 if h == 0 else h)
    return f"{h12}:{m} {periodo}"


def receipt_filename(reservation: dict, code: str) -> str:
    nombre = re.sub(r"\s+", "_", reservation['nombre'])
    return f"Reserva_PapasLocas_{nombre}_{reservation['fecha'].isoformat()}_{code}.txt"


def render_receipt(reservation: dict, code: str, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now()
    r = RESTAURANT
    lines = [
        '╔═══════════════════════════════════════════════════════════╗',
        '║           PAPAS LOCAS - RESERVA CONFIRMADA                ║',
        '╚═══════════════════════════════════════════════════════════╝',
        '',
        '¡FELICITACIONES! TU RESERVA HA SIDO CONFIRMADA',
        '',
        RULE,
        'INFORMACIÓN DE LA RESERVA',
        RULE,
        '',
        f"    Nombre Completo: {reservation['nombre']}",
        f"    Teléfono/WhatsApp: {reservation['celular']}",
        f"    Fecha de Reserva: {format_date(reservation['fecha'])}",
        f"    Número de Personas: {reservation['personas']}",
        f"    Hora: {format_time(reservation['hora'])}",
        f"    Código de Reserva: {code}",
        '',
        RULE,
        'UBICACIÓN DEL RESTAURANTE',
        RULE,
        f"    Dirección: {r['direccion']}",
        f"    Ciudad: {r['ciudad']}",
        '',
        RULE,
        'INFORMACIÓN DE CONTACTO',
        RULE,
        f"    Teléfono: {r['telefono']}",
        f"    Email: {r['email']}",
        f"    Facebook: {r['facebook']}",
        f"    Instagram: {r['instagram']}",
        '',
        RULE,
        'IMPORTANTE - POR FAVOR LEE CON ATENCIÓN',
        RULE,
        '    ✓ Llegar 10 minutos antes de la hora reservada',
        f"    ✓ Confirmar asistencia 24 horas antes al: {r['telefono']}",
        '    ✓ En caso de cancelación, avisar con anticipación',
        '    ✓ Guarda este archivo como comprobante de tu reserva',
        f"    ✓ Presenta el código de reserva al llegar: {code}",
        '',
        RULE,
        'NUESTROS PRODUCTOS MÁS POPULARES',
        RULE,
    ]
    lines += [f"    • {p}" for p in POPULAR]
    lines += ['', '    COMBOS ESPECIALES:']
    lines += [f"    • {name} - ${price}" for name, price in COMBOS]
    lines += [
        '',
        RULE,
        '¡GRACIAS POR ELEGIR PAPAS LOCAS!',
        '   "Crujientes, jugosas y llenas de actitud"',
        '',
        RULE,
        f"    Reserva generada: {format_date(generated_at.date())} {generated_at:%H:%M:%S}",
        f"    Código de reserva: {code}",
        '',
        '    Este documento es un comprobante de tu reserva.',
        '    Conserva este archivo para referencia futura.',
        '╚═══════════════════════════════════════════════════════════╝',
        '',
    ]
    return '\n'.join(lines)
