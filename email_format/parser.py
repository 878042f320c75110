"""A parser of RFC 5322 messages."""

__all__ = ['Parser', 'BytesParser']

import re
import logging

from email_format import errors
from email_format import policy as _policy
from email_format.message import Email, check_body, MAXLINELEN_HARD
from email_format import _header_value_parser as parser

logger = logging.getLogger(__name__)

_non_ascii_finder = re.compile(rb'[^\x01-\x7f]').search
# field-value: everything up to a CRLF that is not followed by white space.
_field_value_matcher = re.compile(r'(?:[^\r\n]|\r\n(?=[ \t]))*').match
_line_finder = re.compile(r'[^\r\n]*').finditer


class BytesParser:

    def __init__(self, policy=_policy.default):
        """Parser of binary RFC 5322 messages.

        The message must be 7-bit ASCII with CRLF line endings.  Every header
        field is checked against the grammar of its field kind, and the
        message as a whole against the field multiplicity rules.  The first
        violation raises a GrammarError whose offset is the position of the
        problem in the input; nothing is repaired.

        The policy keyword specifies a policy object that controls how the
        headers are represented and later written back out.
        """
        self.policy = policy

    def parsebytes(self, data):
        """Create an Email from a bytes object containing a whole message."""
        m = _non_ascii_finder(data)
        if m:
            raise errors.GrammarError('CHAR', '', offset=m.start(),
                message="non-ASCII or NUL byte {!r}".format(m.group()))
        text = data.decode('ascii')
        msg = Email._empty(self.policy)
        pos = 0
        while pos < len(text) and not text.startswith('\r\n', pos):
            pos = self._parse_field(msg, text, pos)
        try:
            msg._check_complete()
        except errors.GrammarError as err:
            raise err.locate('', pos)
        body_start = pos + 2 if pos < len(text) else pos
        try:
            msg._body = check_body(data[body_start:])
        except errors.GrammarError as err:
            raise err.locate('', body_start)
        logger.debug("parsed message with %d header fields and a %d octet "
                     "body", len(msg.headers()), len(msg._body))
        return msg

    def _parse_field(self, msg, text, pos):
        # field = field-name ":" field-value CRLF
        rest = text[pos:]
        try:
            name, rest = parser.get_field_name(rest)
        except errors.GrammarError as err:
            raise err.within('field').locate(text[pos:], pos)
        name = name.value
        if not rest or rest[0] != ':':
            raise errors.GrammarError('field', rest,
                message="expected ':' after field-name").locate(text)
        value_start = len(text) - len(rest) + 1
        m = _field_value_matcher(text, value_start)
        value = m.group()
        if not text.startswith('\r\n', m.end()):
            raise errors.GrammarError('CRLF', text[m.end():],
                message="field {} is not terminated by CRLF".format(
                    name)).within('field').locate(text)
        for line in _line_finder(text, pos, m.end()):
            if len(line.group()) > MAXLINELEN_HARD:
                raise errors.GrammarError('line-length', '',
                    offset=line.start() + MAXLINELEN_HARD,
                    message="header line of {} characters".format(
                        len(line.group())))
        try:
            header = self.policy.make_header(name, value, source=value)
            msg._append(header)
        except errors.GrammarError as err:
            raise err.within('field').locate(value, value_start)
        return m.end() + 2


class Parser:

    def __init__(self, policy=_policy.default):
        """Parser of RFC 5322 messages held in str objects.

        The text must only hold ASCII characters; it is otherwise treated
        exactly as BytesParser treats bytes.
        """
        self.policy = policy

    def parsestr(self, text):
        """Create an Email from a string containing a whole message."""
        try:
            data = text.encode('ascii')
        except UnicodeEncodeError as exc:
            raise errors.GrammarError('CHAR', text[exc.start:],
                offset=exc.start,
                message="non-ASCII character {!r}".format(text[exc.start]))
        return BytesParser(policy=self.policy).parsebytes(data)
