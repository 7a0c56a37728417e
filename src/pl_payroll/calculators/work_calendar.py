"""Polish public holidays and monthly working-day norms."""

from __future__ import annotations

import calendar
from datetime import date, timedelta


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def public_holidays(year: int) -> dict[date, str]:
    """Statutory non-working days in Poland for a year."""
    easter = easter_sunday(year)
    holidays = {
        date(year, 1, 1): "Nowy Rok",
        date(year, 1, 6): "Święto Trzech Króli",
        easter: "Wielkanoc",
        easter + timedelta(days=1): "Poniedziałek Wielkanocny",
        date(year, 5, 1): "Święto Pracy",
        date(year, 5, 3): "Święto Konstytucji 3 Maja",
        easter + timedelta(days=49): "Zielone Świątki",
        easter + timedelta(days=60): "Boże Ciało",
        date(year, 8, 15): "Wniebowzięcie NMP",
        date(year, 11, 1): "Wszystkich Świętych",
        date(year, 11, 11): "Narodowe Święto Niepodległości",
        date(year, 12, 25): "Boże Narodzenie (pierwszy dzień)",
        date(year, 12, 26): "Boże Narodzenie (drugi dzień)",
    }
    if year >= 2025:
        holidays[date(year, 12, 24)] = "Wigilia Bożego Narodzenia"
    return holidays


def working_days_in_month(year: int, month: int) -> int:
    """Full-time working-day norm for a month.

    Weekdays minus holidays falling Monday to Saturday; a Saturday holiday
    lowers the norm by one day (Labour Code art. 130 par. 2).
    """
    holidays = public_holidays(year)
    days_in_month = calendar.monthrange(year, month)[1]
    weekdays = 0
    reductions = 0
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        weekday = day.weekday()
        if weekday < 5:
            weekdays += 1
        if day in holidays and weekday < 6:
            reductions += 1
    return weekdays - reductions
