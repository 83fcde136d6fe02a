"""
Phone number to timezone resolution.

Matches the international dialing prefix of a phone number against a table
of country codes, longest prefix first, so that ``+1809`` (Dominican
Republic) wins over ``+1`` (North American Numbering Plan).
"""

import re
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from call_retry.errors import ConfigurationError

_SEPARATORS = re.compile(r"[\s\-()]")
_PREFIX_FORMAT = re.compile(r"^\+\d+$")

# (prefix, zone) pairs. Kept as a sequence so duplicates are detectable.
DEFAULT_TIMEZONE_TABLE: tuple[tuple[str, str], ...] = (
    # Europe
    ("+44", "Europe/London"),
    ("+353", "Europe/Dublin"),
    ("+33", "Europe/Paris"),
    ("+49", "Europe/Berlin"),
    ("+34", "Europe/Madrid"),
    ("+39", "Europe/Rome"),
    ("+31", "Europe/Amsterdam"),
    ("+32", "Europe/Brussels"),
    ("+41", "Europe/Zurich"),
    ("+43", "Europe/Vienna"),
    ("+48", "Europe/Warsaw"),
    ("+46", "Europe/Stockholm"),
    ("+47", "Europe/Oslo"),
    ("+45", "Europe/Copenhagen"),
    ("+358", "Europe/Helsinki"),
    ("+30", "Europe/Athens"),
    ("+90", "Europe/Istanbul"),
    ("+355", "Europe/Tirane"),
    ("+381", "Europe/Belgrade"),
    ("+385", "Europe/Zagreb"),
    ("+380", "Europe/Kyiv"),
    ("+375", "Europe/Minsk"),
    ("+40", "Europe/Bucharest"),
    ("+359", "Europe/Sofia"),
    ("+36", "Europe/Budapest"),
    ("+420", "Europe/Prague"),
    ("+421", "Europe/Bratislava"),
    ("+386", "Europe/Ljubljana"),
    ("+382", "Europe/Podgorica"),
    ("+389", "Europe/Skopje"),
    ("+387", "Europe/Sarajevo"),
    ("+383", "Europe/Belgrade"),  # Kosovo
    ("+373", "Europe/Chisinau"),
    ("+370", "Europe/Vilnius"),
    ("+371", "Europe/Riga"),
    ("+372", "Europe/Tallinn"),
    # Middle East
    ("+93", "Asia/Kabul"),
    ("+963", "Asia/Damascus"),
    ("+964", "Asia/Baghdad"),
    ("+98", "Asia/Tehran"),
    ("+967", "Asia/Aden"),
    ("+970", "Asia/Gaza"),
    ("+962", "Asia/Amman"),
    ("+961", "Asia/Beirut"),
    ("+972", "Asia/Jerusalem"),
    ("+966", "Asia/Riyadh"),
    ("+971", "Asia/Dubai"),
    ("+974", "Asia/Qatar"),
    ("+973", "Asia/Bahrain"),
    ("+965", "Asia/Kuwait"),
    ("+968", "Asia/Muscat"),
    # South / Central Asia
    ("+92", "Asia/Karachi"),
    ("+91", "Asia/Kolkata"),
    ("+880", "Asia/Dhaka"),
    ("+94", "Asia/Colombo"),
    ("+95", "Asia/Yangon"),
    ("+977", "Asia/Kathmandu"),
    ("+975", "Asia/Thimphu"),
    ("+992", "Asia/Dushanbe"),
    ("+998", "Asia/Tashkent"),
    ("+996", "Asia/Bishkek"),
    ("+993", "Asia/Ashgabat"),
    ("+7", "Asia/Almaty"),  # Kazakhstan (shared with Russia)
    # East Asia
    ("+86", "Asia/Shanghai"),
    ("+852", "Asia/Hong_Kong"),
    ("+853", "Asia/Macau"),
    ("+84", "Asia/Ho_Chi_Minh"),
    ("+66", "Asia/Bangkok"),
    ("+855", "Asia/Phnom_Penh"),
    ("+856", "Asia/Vientiane"),
    ("+60", "Asia/Kuala_Lumpur"),
    ("+65", "Asia/Singapore"),
    ("+62", "Asia/Jakarta"),
    ("+63", "Asia/Manila"),
    ("+82", "Asia/Seoul"),
    ("+850", "Asia/Pyongyang"),
    ("+81", "Asia/Tokyo"),
    ("+886", "Asia/Taipei"),
    # Africa
    ("+249", "Africa/Khartoum"),
    ("+211", "Africa/Juba"),
    ("+252", "Africa/Mogadishu"),
    ("+291", "Africa/Asmara"),
    ("+251", "Africa/Addis_Ababa"),
    ("+234", "Africa/Lagos"),
    ("+233", "Africa/Accra"),
    ("+225", "Africa/Abidjan"),
    ("+221", "Africa/Dakar"),
    ("+220", "Africa/Banjul"),
    ("+224", "Africa/Conakry"),
    ("+232", "Africa/Freetown"),
    ("+231", "Africa/Monrovia"),
    ("+237", "Africa/Douala"),
    ("+243", "Africa/Kinshasa"),
    ("+242", "Africa/Brazzaville"),
    ("+256", "Africa/Kampala"),
    ("+250", "Africa/Kigali"),
    ("+257", "Africa/Bujumbura"),
    ("+254", "Africa/Nairobi"),
    ("+255", "Africa/Dar_es_Salaam"),
    ("+263", "Africa/Harare"),
    ("+27", "Africa/Johannesburg"),
    ("+20", "Africa/Cairo"),
    ("+218", "Africa/Tripoli"),
    ("+216", "Africa/Tunis"),
    ("+213", "Africa/Algiers"),
    ("+212", "Africa/Casablanca"),
    # Americas
    ("+1", "America/New_York"),  # NANP, Eastern by default
    ("+1809", "America/Santo_Domingo"),
    ("+52", "America/Mexico_City"),
    ("+55", "America/Sao_Paulo"),
    ("+54", "America/Argentina/Buenos_Aires"),
    ("+56", "America/Santiago"),
    ("+57", "America/Bogota"),
    ("+51", "America/Lima"),
    ("+58", "America/Caracas"),
    ("+593", "America/Guayaquil"),
    ("+591", "America/La_Paz"),
    ("+595", "America/Asuncion"),
    ("+598", "America/Montevideo"),
    ("+53", "America/Havana"),
    ("+509", "America/Port-au-Prince"),
    ("+502", "America/Guatemala"),
    ("+503", "America/El_Salvador"),
    ("+504", "America/Tegucigalpa"),
    ("+505", "America/Managua"),
    ("+507", "America/Panama"),
    ("+506", "America/Costa_Rica"),
    # Oceania
    ("+61", "Australia/Sydney"),
    ("+64", "Pacific/Auckland"),
    ("+679", "Pacific/Fiji"),
)


def clean_phone_number(phone_number: Optional[str]) -> str:
    """Strip whitespace, hyphens and parentheses."""
    return _SEPARATORS.sub("", phone_number or "")


def ensure_timezone(name: str) -> ZoneInfo:
    """Load a zone, raising ConfigurationError if the tz database lacks it."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name!r}") from e


class TimezoneResolver:
    """Longest-prefix lookup from dialing code to IANA timezone."""

    def __init__(
        self,
        table: Iterable[tuple[str, str]] = DEFAULT_TIMEZONE_TABLE,
        default_timezone: str = "Europe/London",
        home_country_code: str = "+44",
    ):
        mapping: dict[str, str] = {}
        for prefix, zone in table:
            if not _PREFIX_FORMAT.match(prefix):
                raise ConfigurationError(f"Dialing prefix must look like '+<digits>', got {prefix!r}")
            if prefix in mapping:
                raise ConfigurationError(
                    f"Duplicate dialing prefix {prefix!r} ({mapping[prefix]} and {zone})"
                )
            ensure_timezone(zone)
            mapping[prefix] = zone

        ensure_timezone(default_timezone)

        self._mapping = mapping
        self._prefixes = sorted(mapping, key=len, reverse=True)
        self.default_timezone = default_timezone
        self.home_country_code = home_country_code

    def country_code_of(self, phone_number: Optional[str]) -> Optional[str]:
        """Return the longest dialing prefix matching the number, or None."""
        cleaned = clean_phone_number(phone_number)
        if not cleaned:
            return None
        for prefix in self._prefixes:
            if cleaned.startswith(prefix):
                return prefix
        return None

    def resolve(self, phone_number: Optional[str]) -> str:
        """Return the IANA timezone for a phone number (default zone if unmatched)."""
        prefix = self.country_code_of(phone_number)
        if prefix is None:
            return self.default_timezone
        return self._mapping[prefix]

    def is_domestic(self, phone_number: Optional[str]) -> bool:
        return self.country_code_of(phone_number) == self.home_country_code

    def supported_country_codes(self) -> list[str]:
        return list(self._mapping)

    def with_mapping(self, prefix: str, timezone: str) -> "TimezoneResolver":
        """Return a copy of this resolver with one mapping added or replaced."""
        table = [(p, z) for p, z in self._mapping.items() if p != prefix]
        table.append((prefix, timezone))
        return TimezoneResolver(
            table,
            default_timezone=self.default_timezone,
            home_country_code=self.home_country_code,
        )
