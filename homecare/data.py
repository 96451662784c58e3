# homecare/data.py

import json
import logging

from .config import DEFAULT_SCHEDULE

logger = logging.getLogger(__name__)

# Weekly hours used for a day that no availability rule covers.
# 0=Sunday (closed), 1..5 weekdays, 6=Saturday.
BUILTIN_DEFAULT_SCHEDULE = [
    {"day_of_week": day, "start_time": "08:00", "end_time": "18:00", "slot_duration": 60, "max_bookings": 1}
    for day in range(1, 6)
] + [
    {"day_of_week": 6, "start_time": "09:00", "end_time": "14:00", "slot_duration": 60, "max_bookings": 1},
]


def load_default_schedule(raw=DEFAULT_SCHEDULE) -> list[dict]:
    if not raw:
        return BUILTIN_DEFAULT_SCHEDULE
    try:
        schedule = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("DEFAULT_SCHEDULE is not valid JSON, using the built-in schedule")
        return BUILTIN_DEFAULT_SCHEDULE
    return [
        {
            "day_of_week": int(entry["day_of_week"]),
            "start_time": entry["start_time"],
            "end_time": entry["end_time"],
            "slot_duration": int(entry.get("slot_duration", 60)),
            "max_bookings": int(entry.get("max_bookings", 1)),
        }
        for entry in schedule
    ]


default_schedule = load_default_schedule()


SERVICES = [
    {
        "title": "Toma de Muestras a Domicilio",
        "slug": "toma-muestras-domicilio",
        "description": "Toma de muestras de sangre y otros exámenes en la comodidad de su hogar.",
        "price": 15000,
        "price_type": "fixed",
        "duration": 30,
        "resource_type": "nurse",
        "display_order": 1,
    },
    {
        "title": "Curaciones Avanzadas",
        "slug": "curaciones-avanzadas",
        "description": "Tratamiento especializado para heridas complejas, úlceras por presión y pie diabético.",
        "price": 25000,
        "price_type": "fixed",
        "duration": 45,
        "resource_type": "nurse",
        "display_order": 2,
    },
    {
        "title": "Retiro de Suturas",
        "slug": "retiro-suturas",
        "description": "Retiro seguro de puntos de sutura post-quirúrgicos y evaluación de la cicatrización.",
        "price": 12000,
        "price_type": "fixed",
        "duration": 20,
        "resource_type": "nurse",
        "display_order": 3,
    },
    {
        "title": "Administración de Tratamientos",
        "slug": "administracion-tratamientos",
        "description": "Aplicación de medicamentos inyectables según indicación médica.",
        "price": 10000,
        "price_type": "fixed",
        "duration": 25,
        "resource_type": "nurse",
        "display_order": 4,
    },
    {
        "title": "Procedimientos de Enfermería",
        "slug": "procedimientos-enfermeria",
        "description": "Control de signos vitales, sondajes, instalación de vías y otros cuidados.",
        "price": 20000,
        "price_type": "fixed",
        "duration": 40,
        "resource_type": "nurse",
        "display_order": 5,
    },
    {
        "title": "Traslado Simple de Pacientes",
        "slug": "traslado-pacientes",
        "description": "Acompañamiento y asistencia en el traslado de pacientes con movilidad reducida.",
        "price": 18000,
        "price_type": "hourly",
        "duration": 60,
        "resource_type": "driver",
        "display_order": 6,
    },
]

# nurses: weekday mornings and afternoons, Saturday morning
# drivers: weekdays 09:00-17:00
AVAILABILITY_RULES = (
    [
        {"day_of_week": day, "start_time": "08:00", "end_time": "13:00", "resource_type": "nurse"}
        for day in range(1, 6)
    ]
    + [
        {"day_of_week": day, "start_time": "14:00", "end_time": "18:00", "resource_type": "nurse"}
        for day in range(1, 6)
    ]
    + [{"day_of_week": 6, "start_time": "09:00", "end_time": "14:00", "resource_type": "nurse"}]
    + [
        {"day_of_week": day, "start_time": "09:00", "end_time": "17:00", "resource_type": "driver"}
        for day in range(1, 6)
    ]
)

SITE_CONTENT = [
    {
        "key": "hero",
        "section": "home",
        "title": "Hero Section",
        "content": {
            "title": "Procedimientos y atenciones de salud",
            "title_highlight": "a domicilio",
            "description": "Equipo de profesionales de enfermería certificados.",
            "primary_button": "Agendar Hora",
        },
        "display_order": 1,
    },
    {
        "key": "about",
        "section": "home",
        "title": "About Section",
        "content": {
            "subtitle": "¿Por qué elegirnos?",
            "features": [
                "Personal certificado y con experiencia comprobable",
                "Puntualidad y compromiso en cada atención",
                "Trato humano y personalizado",
            ],
        },
        "display_order": 2,
    },
    {
        "key": "contact",
        "section": "home",
        "title": "Contact Section",
        "content": {
            "title": "Estamos aquí para ayudarte",
            "hours": "Lun-Vie: 8:00-18:00 | Sáb: 9:00-14:00",
        },
        "display_order": 3,
    },
]

SETTINGS = [
    {
        "key": "contact_info",
        "value": {"email": "contacto@homecare.local", "phone": "+56 9 0000 0000"},
        "description": "Contact information",
    },
    {
        "key": "booking_settings",
        "value": {"min_hours_before_cancel": 2, "default_slot_duration": 60, "sunday_closed": True},
        "description": "Booking configuration shown to patients",
    },
]
