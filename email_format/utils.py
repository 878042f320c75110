"""Miscellaneous utilities."""

__all__ = [
    'format_datetime',
    'make_msgid',
    ]

import os
import time
import random
import socket

_DAYNAMES = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
_MONTHNAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


def format_datetime(dt):
    """Turn a datetime into a date string as specified in RFC 5322.

    The zone is always numeric.  A naive datetime is rendered with the -0000
    zone, meaning the local offset is unknown.  Seconds are always written;
    microseconds are dropped.
    """
    if dt.tzinfo is None:
        zone = '-0000'
    else:
        minutes = int(dt.utcoffset().total_seconds()) // 60
        sign = '-' if minutes < 0 else '+'
        hours, minutes = divmod(abs(minutes), 60)
        zone = '{}{:02d}{:02d}'.format(sign, hours, minutes)
    return '{}, {:02d} {} {:04d} {:02d}:{:02d}:{:02d} {}'.format(
        _DAYNAMES[dt.weekday()], dt.day, _MONTHNAMES[dt.month - 1], dt.year,
        dt.hour, dt.minute, dt.second, zone)


def make_msgid(idstring=None, domain=None):
    """Returns a string suitable for RFC 5322 compliant Message-ID, e.g:

    <142480216486.20800.16526388040877946887@nightshade.la.mastaler.com>

    Optional idstring if given is a string used to strengthen the
    uniqueness of the message id.  Optional domain if given provides the
    portion of the message id after the '@'.  It defaults to the locally
    defined hostname.
    """
    timeval = int(time.time()*100)
    pid = os.getpid()
    randint = random.getrandbits(64)
    if idstring is None:
        idstring = ''
    else:
        idstring = '.' + idstring
    if domain is None:
        domain = socket.getfqdn()
    return '<%d.%d.%d%s@%s>' % (timeval, pid, randint, idstring, domain)
