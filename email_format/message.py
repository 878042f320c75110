"""The Email document class."""

__all__ = ['Email']

import io
import re
import logging

from email_format import errors
from email_format.header import check_field_name
from email_format import policy as _policy

logger = logging.getLogger(__name__)

# RFC 5322 3.5: the body is lines of US-ASCII text, CRLF separated, each at
# most 998 characters.
MAXLINELEN_HARD = 998
_body_char_finder = re.compile(rb'[^\x01-\x7f]').search
_bare_eol_finder = re.compile(rb'\r(?!\n)|(?<!\r)\n').search
_line_finder = re.compile(rb'[^\r\n]*(?:\r\n)?').finditer


def check_body(body):
    """Return body as bytes if it is valid RFC 5322 body text.

    body may be bytes or str.  A GrammarError with an offset relative to the
    start of the body is raised otherwise.
    """
    if isinstance(body, str):
        try:
            body = body.encode('ascii')
        except UnicodeEncodeError as exc:
            raise errors.GrammarError('CHAR', body[exc.start:],
                offset=exc.start,
                message="non-ASCII character {!r}".format(
                    body[exc.start]))
    elif not isinstance(body, bytes):
        raise TypeError("body must be bytes or str, not {}".format(
            type(body).__name__))
    m = _body_char_finder(body)
    if m:
        raise errors.GrammarError('CHAR', '', offset=m.start(),
            message="non-ASCII or NUL byte {!r}".format(m.group()))
    m = _bare_eol_finder(body)
    if m:
        raise errors.GrammarError('CRLF', '', offset=m.start(),
            message="CR and LF may only appear together as CRLF")
    for m in _line_finder(body):
        line = m.group().rstrip(b'\r\n')
        if len(line) > MAXLINELEN_HARD:
            raise errors.GrammarError('line-length', '',
                offset=m.start() + MAXLINELEN_HARD,
                message="body line of {} characters".format(len(line)))
    return body


class Email:

    """An RFC 5322 message.

    A message is an ordered list of header fields followed by a body.  It
    always holds exactly one Date and one From field; the constructor
    requires both and neither can be cleared.  Every other field is added,
    replaced or removed through the set_, add_ and clear_ methods, each of
    which checks the new value against the field's grammar before changing
    anything.  If the check fails a GrammarError is raised and the message is
    left exactly as it was.

    The get_ methods return the header objects themselves.  These are str
    subclasses holding the canonical form of the value, with additional
    attributes that depend on the kind of field (see the header module).

    """

    def __init__(self, from_, date, *, sender=None, policy=_policy.default):
        self.policy = policy
        self._body = b''
        headers = [self._make('Date', date), self._make('From', from_)]
        if sender is not None:
            headers.append(self._make('Sender', sender))
        self._check_sender(headers)
        self._headers = headers

    @classmethod
    def _empty(cls, policy):
        # Used by the parser, which appends the headers it reads and then
        # calls _check_complete.
        self = cls.__new__(cls)
        self.policy = policy
        self._body = b''
        self._headers = []
        return self

    def __repr__(self):
        return '<{} from {!r} at {!r}>'.format(
            self.__class__.__name__, str(self.get_from()),
            str(self.get_date()))

    def __eq__(self, other):
        if not isinstance(other, Email):
            return NotImplemented
        return (self._comparable() == other._comparable() and
                self._body == other._body)

    def _comparable(self):
        return [(h.name.lower(), str(h)) for h in self._headers]

    def __str__(self):
        return self.as_string()

    def __bytes__(self):
        return self.as_bytes()

    def as_bytes(self, policy=None):
        """Return the entire formatted message as bytes.

        Optional 'policy' overrides the message's own policy for this call.
        """
        from email_format.generator import BytesGenerator
        fp = io.BytesIO()
        g = BytesGenerator(fp, policy=self.policy if policy is None else policy)
        g.flatten(self)
        return fp.getvalue()

    def as_string(self, policy=None):
        return self.as_bytes(policy).decode('ascii')

    #
    # Internals shared by the accessors.
    #

    def _make(self, name, value):
        try:
            return self.policy.make_header(name, value)
        except errors.GrammarError as err:
            logger.debug("rejected %s value %r: %s", name, value, err)
            raise

    def _factory(self):
        return self.policy.header_factory

    def _get_all(self, name):
        name = name.lower()
        return [h for h in self._headers if h.name.lower() == name]

    def _get(self, name):
        for h in self._headers:
            if h.name.lower() == name.lower():
                return h
        return None

    def _position(self, headers, name):
        # New registered fields go after every registered field that
        # precedes them in the registry order; anything else goes last.
        rank = self._factory().rank(name)
        if rank is None:
            return len(headers)
        pos = 0
        for i, h in enumerate(headers):
            r = self._factory().rank(h.name)
            if r is not None and r <= rank:
                pos = i + 1
        return pos

    def _check_sender(self, headers):
        from_ = senders = None
        for h in headers:
            if h.name.lower() == 'from':
                from_ = h
            elif h.name.lower() == 'sender':
                senders = h
        if from_ is not None and len(from_.addresses) > 1 and senders is None:
            raise errors.MultiplicityError('Sender',
                "Sender is required when From holds more than one mailbox")

    def _set(self, name, value):
        header = self._make(name, value)
        headers = list(self._headers)
        for i, h in enumerate(headers):
            if h.name.lower() == name.lower():
                headers[i] = header
                break
        else:
            headers.insert(self._position(headers, name), header)
        self._check_sender(headers)
        self._headers = headers

    def _add(self, name, value):
        header = self._make(name, value)
        self._headers.insert(self._position(self._headers, name), header)

    def _clear(self, name):
        if getattr(self._factory()[name], 'required', False):
            raise errors.MultiplicityError(name,
                "{} is required and cannot be removed".format(
                    self._factory().canonical_name(name)))
        headers = [h for h in self._headers if h.name.lower() != name.lower()]
        self._check_sender(headers)
        self._headers = headers

    def _append(self, header):
        """Add a header read from a message, enforcing its max_count."""
        max_count = header.max_count
        if (max_count is not None and
                len(self._get_all(header.name)) >= max_count):
            raise errors.MultiplicityError(header.name,
                "{} may appear at most {} time(s)".format(
                    header.name, max_count))
        self._headers.append(header)

    def _check_complete(self):
        factory = self._factory()
        for name, cls in factory.registry.items():
            if getattr(cls, 'required', False) and self._get(name) is None:
                raise errors.MultiplicityError(name,
                    "required field {} is missing".format(
                        factory.canonical_name(name)))
        self._check_sender(self._headers)

    #
    # Public API
    #

    def headers(self):
        """Return the header fields in order, as a tuple."""
        return tuple(self._headers)

    def set_date(self, date):
        """Set the origination date from a date-time string or a datetime."""
        self._set('Date', date)

    def get_date(self):
        return self._get('Date')

    def clear_date(self):
        self._clear('Date')

    def set_from(self, from_):
        """Set the author mailbox-list.

        If it holds more than one mailbox a Sender must already be present.
        """
        self._set('From', from_)

    def get_from(self):
        return self._get('From')

    def clear_from(self):
        self._clear('From')

    def set_sender(self, sender):
        self._set('Sender', sender)

    def get_sender(self):
        return self._get('Sender')

    def clear_sender(self):
        self._clear('Sender')

    def set_reply_to(self, reply_to):
        self._set('Reply-To', reply_to)

    def get_reply_to(self):
        return self._get('Reply-To')

    def clear_reply_to(self):
        self._clear('Reply-To')

    def set_to(self, to):
        """Set the To address-list, replacing any existing one."""
        self._set('To', to)

    def get_to(self):
        return self._get('To')

    def clear_to(self):
        self._clear('To')

    def set_cc(self, cc):
        self._set('Cc', cc)

    def get_cc(self):
        return self._get('Cc')

    def clear_cc(self):
        self._clear('Cc')

    def set_bcc(self, bcc):
        """Set Bcc.  An empty value is allowed and produces an empty field."""
        self._set('Bcc', bcc)

    def get_bcc(self):
        return self._get('Bcc')

    def clear_bcc(self):
        self._clear('Bcc')

    def set_message_id(self, message_id):
        self._set('Message-ID', message_id)

    def get_message_id(self):
        return self._get('Message-ID')

    def clear_message_id(self):
        self._clear('Message-ID')

    def set_in_reply_to(self, in_reply_to):
        self._set('In-Reply-To', in_reply_to)

    def get_in_reply_to(self):
        return self._get('In-Reply-To')

    def clear_in_reply_to(self):
        self._clear('In-Reply-To')

    def set_references(self, references):
        self._set('References', references)

    def get_references(self):
        return self._get('References')

    def clear_references(self):
        self._clear('References')

    def set_subject(self, subject):
        self._set('Subject', subject)

    def get_subject(self):
        return self._get('Subject')

    def clear_subject(self):
        self._clear('Subject')

    def add_comments(self, comments):
        self._add('Comments', comments)

    def get_comments(self):
        return self._get_all('Comments')

    def clear_comments(self):
        self._clear('Comments')

    def add_keywords(self, keywords):
        """Add a Keywords field holding a comma separated list of phrases."""
        self._add('Keywords', keywords)

    def get_keywords(self):
        return self._get_all('Keywords')

    def clear_keywords(self):
        self._clear('Keywords')

    def add_optional_field(self, field):
        """Append an optional field given as a (name, value) pair.

        The name must be a valid field-name that is not one of the fields
        with a dedicated method; the value is unstructured text.
        """
        name, value = field
        try:
            check_field_name(name)
        except errors.GrammarError as err:
            logger.debug("rejected field name %r: %s", name, err)
            raise
        if name in self._factory():
            raise errors.GrammarError('optional-field', name, offset=0,
                message="{} is not an optional field".format(
                    self._factory().canonical_name(name)))
        self._headers.append(self._make(name, value))

    def get_optional_fields(self):
        """Return the optional fields as a list of (name, value) pairs."""
        factory = self._factory()
        return [(h.name, h) for h in self._headers if h.name not in factory]

    def clear_optional_fields(self):
        factory = self._factory()
        self._headers = [h for h in self._headers if h.name in factory]

    def set_body(self, body):
        """Set the body from bytes or str.

        The body must be 7-bit ASCII text with CRLF line endings and no line
        longer than 998 characters.
        """
        try:
            self._body = check_body(body)
        except errors.GrammarError as err:
            logger.debug("rejected body: %s", err)
            raise

    def get_body(self):
        return self._body

    def clear_body(self):
        self._body = b''
