"""
Deterministic field normalizers shared by the entity parsers and validation.

All functions are pure. Lenient helpers (parse_int, parse_float, ...) return
None for values they cannot read. parse_currency is strict and raises
ParseError, so a garbled prize pool is never stored as a number.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from core.exceptions import ParseError

# Placeholders the site prints for "no value"
DASH_PLACEHOLDERS = {"-", "–", "—"}

REGION_ALIASES = {
    # Москва
    "МСК": "Москва",
    "Мск": "Москва",
    "г. Москва": "Москва",
    "г.Москва": "Москва",
    "Moscow": "Москва",
    "Moskva": "Москва",
    # Московская область
    "МО": "Московская область",
    "Московская обл.": "Московская область",
    "Подмосковье": "Московская область",
    # Санкт-Петербург
    "СПб": "Санкт-Петербург",
    "СПБ": "Санкт-Петербург",
    "Спб": "Санкт-Петербург",
    "Питер": "Санкт-Петербург",
    "Санкт Петербург": "Санкт-Петербург",
    "С.-Петербург": "Санкт-Петербург",
    "г. Санкт-Петербург": "Санкт-Петербург",
    "Saint Petersburg": "Санкт-Петербург",
    "St. Petersburg": "Санкт-Петербург",
    # Others
    "Екб": "Екатеринбург",
    "Ебург": "Екатеринбург",
    "г. Екатеринбург": "Екатеринбург",
    "Нск": "Новосибирск",
    "Новосиб": "Новосибирск",
    "г. Новосибирск": "Новосибирск",
    "НН": "Нижний Новгород",
    "Н. Новгород": "Нижний Новгород",
    "Нижний": "Нижний Новгород",
    "г. Казань": "Казань",
    "Kazan": "Казань",
    "Minsk": "Минск",
    "г. Минск": "Минск",
}

# Longest first so "руб." is removed before "руб"
_CURRENCY_MARKERS = ("рублей", "рубля", "рубль", "руб.", "руб", "р.", "₽", "RUB")
_SPACES = re.compile(r"[\s\u00a0\u202f\u2009]+")
_AMOUNT = re.compile(r"^-?\d+(?:[.,]\d+)?$")
_INTEGER = re.compile(r"-?\d+")
_FLOAT = re.compile(r"-?\d+(?:[.,]\d+)?")

RUSSIAN_MONTHS = {
    "января": 1, "февраля": 2, "марта": 3, "апреля": 4,
    "мая": 5, "июня": 6, "июля": 7, "августа": 8,
    "сентября": 9, "октября": 10, "ноября": 11, "декабря": 12,
}
_RUSSIAN_DATE = re.compile(r"(\d{1,2})\s+([а-яё]+)\s+(\d{4})", re.IGNORECASE)


def normalize_region(value: Optional[str]) -> Optional[str]:
    """
    Collapse written variants of a region to one canonical spelling.

    Lookup is exact and case-sensitive: "МОСКВА" is not an alias and comes
    back unchanged. Unknown regions are returned unchanged; blank input
    returns None.
    """
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        return None
    return REGION_ALIASES.get(stripped, value)


def parse_currency(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a rouble amount such as "60 000 ₽" or "1 500,50 ₽".

    Comma is the decimal separator. Dash placeholders return None.

    Raises:
        ParseError: if anything other than digits, separators and a
            recognized currency marker remains
    """
    if value is None:
        return None
    text = value.strip()
    if not text or text in DASH_PLACEHOLDERS:
        return None

    for marker in _CURRENCY_MARKERS:
        text = text.replace(marker, "")
    text = _SPACES.sub("", text)

    if not text or text in DASH_PLACEHOLDERS:
        return None

    if not _AMOUNT.match(text):
        raise ParseError(
            "Unrecognized currency amount",
            context={"parser": "parse_currency", "value": value[:64]}
        )

    try:
        return Decimal(text.replace(",", "."))
    except InvalidOperation as e:
        raise ParseError(
            "Unrecognized currency amount",
            context={"parser": "parse_currency", "value": value[:64]},
            original_exception=e
        )


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = _SPACES.sub(" ", str(value)).strip()
    if not text or text in DASH_PLACEHOLDERS:
        return None
    return text


def parse_int(value: Any) -> Optional[int]:
    """First integer in the text ("1 234 игры" -> 1234), or None"""
    text = _clean(value)
    if text is None:
        return None
    match = _INTEGER.search(text.replace(" ", ""))
    return int(match.group()) if match else None


def parse_float(value: Any) -> Optional[float]:
    """First decimal number in the text, comma or dot separated, or None"""
    text = _clean(value)
    if text is None:
        return None
    match = _FLOAT.search(text.replace(" ", ""))
    return float(match.group().replace(",", ".")) if match else None


def parse_russian_date(value: Any) -> Optional[datetime]:
    """
    Parse dates as printed on gomafia.pro.

    Supports "1 января 2016 г.", "12.03.2024" and ISO "2024-03-12".
    """
    text = _clean(value)
    if text is None:
        return None

    match = _RUSSIAN_DATE.search(text)
    if match:
        day, month_name, year = match.groups()
        month = RUSSIAN_MONTHS.get(month_name.lower())
        if month is None:
            return None
        try:
            return datetime(int(year), month, int(day))
        except ValueError:
            return None

    for fmt in ("%d.%m.%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text[:10], fmt)
        except ValueError:
            continue
    return None


def parse_bool_ru(value: Any) -> Optional[bool]:
    """Read a yes/no cell: "да" is True, "нет" is False, placeholders are None"""
    text = _clean(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered in ("да", "yes", "+", "✓"):
        return True
    if lowered in ("нет", "no"):
        return False
    return None
