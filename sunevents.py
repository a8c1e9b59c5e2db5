# The MIT License (MIT)
#
# Copyright (c) 2025 Samuel Bear Powell
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import re, enum, typing, warnings
import numpy as np
import datetime

# zenith angle of the sun's center at sunrise and sunset, in degrees:
# 90 + 0.833 for atmospheric refraction and the radius of the solar disk
SUNRISE_ZENITH = 90.833

# part of day windows
NOON_WINDOW = datetime.timedelta(minutes=10)
SUNRISE_WINDOW = datetime.timedelta(minutes=20)
SUNSET_WINDOW = datetime.timedelta(minutes=20)
MORNING_LENGTH = datetime.timedelta(minutes=60)
EVENING_LENGTH = datetime.timedelta(minutes=60)

JULIAN_EPOCH_1900 = 2415018.5 #Julian day of 1899-12-31T00:00Z
JULIAN_EPOCH_J2000 = 2451545.0 #Julian day of 2000-01-01T12:00Z
DAYS_PER_CENTURY = 36525.0

_EPOCH = datetime.datetime(1900, 1, 1, tzinfo=datetime.timezone.utc)

class DomainError(ValueError):
    '''The sun does not rise or set on the requested day (polar day or night)'''

class InvalidInput(ValueError):
    '''Latitude, longitude or date are not acceptable'''

class TimeShiftWarning(UserWarning):
    '''The UTC offset at the start of the day differs from the offset of the date itself'''

class PartOfDay(str, enum.Enum):
    NIGHT = 'night'
    SUNRISE = 'sunrise'
    MORNING = 'morning'
    DAY = 'day'
    NOON = 'noon'
    SUNSET = 'sunset'
    EVENING = 'evening'

class SolarContext(typing.NamedTuple):
    '''Intermediate values shared by the solar noon and hour angle formulas.

    Built fresh for every date by solar_context(), never cached.
    '''
    julian_day : float
    julian_century : float
    obliquity : float
    mean_anomaly : float
    mean_longitude : float

class SolarEvents(typing.NamedTuple):
    '''Result of calculate()'''
    date : datetime.datetime
    latitude : float
    longitude : float
    julian_day : float
    julian_century : float
    solar_noon : datetime.datetime
    hour_angle : datetime.timedelta
    sunrise : datetime.datetime
    sunset : datetime.datetime
    part_of_day : PartOfDay

    @property
    def day_length(self):
        '''time between sunrise and sunset'''
        return self.sunset - self.sunrise

## Dates and times
# Every formula depends on the UTC offset of the date, so we only accept
# dates which carry one: aware datetime.datetime or ISO8601 strings with an offset.

_iso8601_re = re.compile(r'(\d{4})-?([01]\d)-?([0-3]\d)[T ]([012]\d):?([0-5]\d)(?::?([0-6]\d)(?:\.(\d{1,6}))?)?(?:(Z)|([+-])(\d{2})(?::?(\d{2}))?)$')
def _string_to_datetime(s):
    '''parse an ISO8601 string with a mandatory timezone'''
    m = _iso8601_re.match(s.strip())
    if not m:
        raise InvalidInput(f'Could not parse timestamp string (must be ISO8601 with a UTC offset): {s!r}')
    year,month,day,hour,minute,second,frac,zulu,tz_sign,tz_hour,tz_minute = m.groups()
    if second is None: second = 0
    micro = int(frac.ljust(6,'0')) if frac else 0
    if zulu:
        tz = datetime.timezone.utc
    else:
        offset = datetime.timedelta(hours=int(tz_hour), minutes=int(tz_minute or 0))
        if tz_sign == '-':
            offset = -offset
        try:
            tz = datetime.timezone(offset)
        except ValueError as e:
            raise InvalidInput(f'Invalid timezone: {s!r}') from e
    try:
        return datetime.datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tz)
    except ValueError as e:
        raise InvalidInput(f'Invalid date or time: {s!r}') from e

def to_datetime(dt):
    """Normalize a date to a timezone-aware datetime.datetime

    Parameters
    ----------
    dt : datetime.datetime or str
        aware datetime, or ISO8601 string with a UTC offset ("Z", "+HH", "+HHMM" or "+HH:MM")

    Returns
    -------
    dt : datetime.datetime
        timezone-aware datetime

    Raises
    ------
    InvalidInput
        if dt has no UTC offset, can't be parsed, or is of an unsupported type
    """
    if isinstance(dt, str):
        return _string_to_datetime(dt)
    if not isinstance(dt, datetime.datetime):
        raise InvalidInput(f'Unsupported date type: {type(dt).__name__}')
    if dt.utcoffset() is None:
        raise InvalidInput('Date must carry a UTC offset (naive datetimes are not accepted)')
    return dt

def _utc_offset(date):
    return date.utcoffset().total_seconds()

def _julian_day(date):
    """Julian Day of an aware datetime"""
    days = (date - _EPOCH).total_seconds()/86400
    # utc offset is taken in whole hours, truncated toward zero
    tz_hours = int(_utc_offset(date)/3600)
    return days + 2 + JULIAN_EPOCH_1900 - tz_hours/24

def _julian_century(jd):
    """Julian Century since J2000.0 from a Julian Day"""
    return (jd - JULIAN_EPOCH_J2000) / DAYS_PER_CENTURY

_julian_day_vec = np.vectorize(lambda dt: _julian_day(to_datetime(dt)), otypes=[float])

def julian_day(dt):
    """Convert zone-aware dates to Julian days

    Parameters
    ----------
    dt : array_like of datetime.datetime or str
        aware datetimes or ISO8601 strings with a UTC offset

    Returns
    -------
    jd : float or ndarray
        dates converted to fractional Julian days
    """
    return _julian_day_vec(dt)[()] # use [()] to "unwrap" scalar values out of np.array

def julian_century(dt):
    """Convert zone-aware dates to Julian centuries since J2000.0

    Parameters
    ----------
    dt : array_like of datetime.datetime or str
        aware datetimes or ISO8601 strings with a UTC offset

    Returns
    -------
    jc : float or ndarray
    """
    return _julian_century(julian_day(dt))

## Solar geometry
# these depend only on the Julian century and work on scalars or arrays

def obliquity(jc):
    """Mean obliquity of the ecliptic, in degrees, with the nutation correction"""
    #arcseconds past 23 deg 26 min
    seconds = np.polyval([0.001813, -0.00059, -46.815, 21.448], jc)
    return 23 + (26 + seconds/60)/60 + 0.00256*np.cos(np.deg2rad(125.04 - 1934.136*jc))

def mean_anomaly(jc):
    """Geometric mean anomaly of the sun, in degrees"""
    return np.polyval([-0.0001537, 35999.05029, 357.52911], jc)

def mean_longitude(jc):
    """Geometric mean longitude of the sun, in degrees in [0, 360)"""
    return np.polyval([0.0003032, 36000.76983, 280.46646], jc) % 360

def solar_context(dt):
    """Compute the intermediate values used by solar_noon() and hour_angle()

    Parameters
    ----------
    dt : datetime.datetime or str
        aware datetime or ISO8601 string with a UTC offset

    Returns
    -------
    context : SolarContext
    """
    date = to_datetime(dt)
    jd = _julian_day(date)
    jc = _julian_century(jd)
    return SolarContext(jd, jc, obliquity(jc), mean_anomaly(jc), mean_longitude(jc))

def equation_of_time(context):
    """Equation of time, in minutes, from a SolarContext

    Positive when the apparent (sundial) sun is ahead of the mean sun.
    """
    jc = context.julian_century
    L = np.deg2rad(context.mean_longitude)
    M = np.deg2rad(context.mean_anomaly)
    eo = 0.016708634 - jc*(0.000042037 + 0.0000001267*jc) #eccentricity of earth's orbit
    y = np.tan(np.deg2rad(context.obliquity/2))**2
    eqt = (y*np.sin(2*L) - 2*eo*np.sin(M) + 4*eo*y*np.sin(M)*np.cos(2*L)
           - 0.5*y*y*np.sin(4*L) - 1.25*eo*eo*np.sin(2*M))
    return 4*np.rad2deg(eqt)

def declination(context):
    """Solar declination, in degrees, from a SolarContext"""
    jc = context.julian_century
    M = np.deg2rad(context.mean_anomaly)
    #equation of the center
    c = (np.sin(M)*(1.914602 - jc*(0.004817 + 0.000014*jc))
         + np.sin(2*M)*(0.019993 - 0.000101*jc) + np.sin(3*M)*0.000289)
    true_longitude = context.mean_longitude + c
    apparent_longitude = true_longitude - 0.00569 - 0.00478*np.sin(np.deg2rad(125.04 - 1934.136*jc))
    d = np.arcsin(np.sin(np.deg2rad(context.obliquity))*np.sin(np.deg2rad(apparent_longitude)))
    return np.rad2deg(d)

## Events

def _check_range(name, value, limit):
    try:
        ok = -limit <= value <= limit
    except TypeError as e:
        raise InvalidInput(f'{name} must be a number of degrees, got {value!r}') from e
    if not ok:
        raise InvalidInput(f'{name} must be within [-{limit}, {limit}] degrees, got {value}')
    return value

def _check_latitude(latitude):
    return _check_range('Latitude', latitude, 90)

def _check_longitude(longitude):
    return _check_range('Longitude', longitude, 180)

def _start_of_day(date, stacklevel):
    '''midnight of the date's calendar day, in the date's own timezone
    NB. if the UTC offset changes between midnight and date, anything anchored to
    this midnight will be off by the size of the shift. We warn about it but don't correct it.
    stacklevel counts from here to the caller of the public function.
    '''
    midnight = date.replace(hour=0, minute=0, second=0, microsecond=0)
    if midnight.utcoffset() != date.utcoffset():
        warnings.warn(f'UTC offset changes between {midnight.isoformat()} and {date.isoformat()}; '
                      'solar noon may be off by the difference', TimeShiftWarning, stacklevel=stacklevel)
    return midnight

def _shift(date, delta):
    '''add an absolute duration to an aware datetime, keeping its tzinfo'''
    try:
        utc = date.astimezone(datetime.timezone.utc) + delta
        return utc.astimezone(date.tzinfo)
    except OverflowError as e:
        raise InvalidInput(f'{date.isoformat()} is too close to the limits of the calendar') from e

def _solar_noon(longitude, date, context, stacklevel):
    tz_minutes = int(_utc_offset(date)/60)
    minutes = 720 - 4*longitude - equation_of_time(context) + tz_minutes
    return _shift(_start_of_day(date, stacklevel), datetime.timedelta(seconds=int(minutes*60)))

def solar_noon(longitude, dt, context=None):
    """Compute the instant of solar noon on the calendar day of dt

    The day starts at midnight with the tzinfo of dt. With pytz-localized dates
    (and fixed offsets) midnight keeps the offset of dt itself. With tzinfos that
    resolve the offset from the wall time, such as zoneinfo, a change of offset
    between midnight and dt is not corrected and a TimeShiftWarning is emitted.

    Parameters
    ----------
    longitude : float
        decimal degrees, positive east of Greenwich
    dt : datetime.datetime or str
        aware datetime or ISO8601 string with a UTC offset
    context : SolarContext, optional
        precomputed solar_context(dt). Computed if not provided.

    Returns
    -------
    noon : datetime.datetime
        in the timezone of dt, truncated to the second

    Raises
    ------
    InvalidInput
        if longitude is out of range, or dt has no UTC offset or is too close
        to the first or last representable datetime
    """
    longitude = _check_longitude(longitude)
    date = to_datetime(dt)
    if context is None:
        context = solar_context(date)
    return _solar_noon(longitude, date, context, stacklevel=4)

def hour_angle(latitude, dt, context=None):
    """Compute the hour angle of sunrise and sunset, as a duration

    Parameters
    ----------
    latitude : float
        decimal degrees, positive north of the equator
    dt : datetime.datetime or str
        aware datetime or ISO8601 string with a UTC offset
    context : SolarContext, optional
        precomputed solar_context(dt). Computed if not provided.

    Returns
    -------
    ha : datetime.timedelta
        time from sunrise to solar noon (and from solar noon to sunset), truncated to the minute

    Raises
    ------
    DomainError
        if the sun doesn't cross the horizon on that day (polar day or night)
    """
    latitude = _check_latitude(latitude)
    if context is None:
        context = solar_context(dt)
    phi = np.deg2rad(latitude)
    delta = np.deg2rad(declination(context))
    x = np.cos(np.deg2rad(SUNRISE_ZENITH))/(np.cos(phi)*np.cos(delta)) - np.tan(phi)*np.tan(delta)
    # NaN fails the comparison too
    if not -1 <= x <= 1:
        kind = 'polar night' if x > 1 else 'polar day'
        raise DomainError(f'No sunrise or sunset at latitude {latitude} ({kind})')
    ha = np.rad2deg(np.arccos(x))
    # earth turns 1 degree every 4 minutes
    return datetime.timedelta(minutes=int(ha*4))

def classify_part_of_day(dt, noon, rise, dusk):
    """Label a date relative to the solar noon, sunrise and sunset of its day

    The tests are evaluated in a fixed order and the first match wins. The noon
    test sits between the sunset and daytime tests, so where the windows overlap
    (very short days) the sunset labels take precedence over noon.

    Parameters
    ----------
    dt : datetime.datetime or str
        date to classify
    noon, rise, dusk : datetime.datetime
        solar noon, sunrise and sunset

    Returns
    -------
    part : PartOfDay
    """
    date = to_datetime(dt)
    #compare differences: shifting the events could leave the datetime range
    if date - dusk > EVENING_LENGTH:
        return PartOfDay.NIGHT
    if date > dusk:
        return PartOfDay.EVENING
    if dusk - date < SUNSET_WINDOW:
        return PartOfDay.SUNSET
    if abs(date - noon) < NOON_WINDOW:
        return PartOfDay.NOON
    if date - rise > MORNING_LENGTH:
        return PartOfDay.DAY
    if date > rise:
        return PartOfDay.MORNING
    if rise - date < SUNRISE_WINDOW:
        return PartOfDay.SUNRISE
    return PartOfDay.NIGHT

def _events(latitude, longitude, date):
    '''(context, noon, ha, rise, dusk) sharing one SolarContext'''
    latitude, longitude = _check_latitude(latitude), _check_longitude(longitude)
    context = solar_context(date)
    #stacklevel: _start_of_day, _solar_noon, _events, public function, caller
    noon = _solar_noon(longitude, date, context, stacklevel=5)
    ha = hour_angle(latitude, date, context)
    try:
        return context, noon, ha, noon - ha, noon + ha
    except OverflowError as e:
        raise InvalidInput(f'{date.isoformat()} is too close to the limits of the calendar') from e

def calculate(latitude, longitude, dt):
    """Compute solar noon, sunrise, sunset and the part of day for a date and location

    Parameters
    ----------
    latitude, longitude : float
        decimal degrees, positive for north of the equator and east of Greenwich
    dt : datetime.datetime or str
        aware datetime or ISO8601 string with a UTC offset. The events are
        computed for the calendar day of dt in its own timezone.

    Returns
    -------
    events : SolarEvents

    Raises
    ------
    InvalidInput
        if latitude or longitude are out of range, or dt has no UTC offset
    DomainError
        if there is no sunrise or sunset on that day
    """
    date = to_datetime(dt)
    context, noon, ha, rise, dusk = _events(latitude, longitude, date)
    part = classify_part_of_day(date, noon, rise, dusk)
    return SolarEvents(date, latitude, longitude, context.julian_day, context.julian_century,
                       noon, ha, rise, dusk, part)

def sunrise(latitude, longitude, dt):
    """Sunrise on the calendar day of dt, in the timezone of dt. See calculate()."""
    date = to_datetime(dt)
    return _events(latitude, longitude, date)[3]

def sunset(latitude, longitude, dt):
    """Sunset on the calendar day of dt, in the timezone of dt. See calculate()."""
    date = to_datetime(dt)
    return _events(latitude, longitude, date)[4]

def part_of_day(latitude, longitude, dt):
    """Part of day of dt at the given location. See calculate() and classify_part_of_day()."""
    date = to_datetime(dt)
    _, noon, _, rise, dusk = _events(latitude, longitude, date)
    return classify_part_of_day(date, noon, rise, dusk)
