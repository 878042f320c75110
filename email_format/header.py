"""Header field classes, value views and the header registry.

A header object is a read-only str whose text is the canonical rendering of
the field value.  It is built by a HeaderFactory, which picks the class for
a field from its name and checks the value against that field's grammar.
"""

__all__ = [
    'Address',
    'Group',
    'MessageID',
    'BaseHeader',
    'HeaderFactory',
    ]

import datetime
import re

from email_format import utils
from email_format import errors
from email_format import _header_value_parser as parser

NL = '\r\n'
EMPTYSTRING = ''
MAXLINELEN = 78
# RFC 5322 2.1.1: lines must not be longer than 998 characters, excluding
# the CRLF.
MAXLINELEN_HARD = 998
FWS = ' \t'
SPLITCHARS = ';, \t'

# A run of white space followed by the text up to the next white space; the
# units the folder can place on a line.
_fold_unit_finder = re.compile('[' + FWS + ']*[^' + FWS + ']+').finditer


def _quote_phrase(value):
    if parser.is_phrase_text(value):
        return value
    return parser.quote_string(value)


def _check_line_length(value):
    """Raise a GrammarError if value cannot be folded into legal lines."""
    for m in _fold_unit_finder(' ' + value):
        if len(m.group()) > MAXLINELEN_HARD:
            start = max(m.start() - 1, 0)
            raise errors.GrammarError('line-length', value[start:],
                offset=start,
                message="{} characters without folding white space".format(
                    len(m.group().lstrip(FWS))))


def check_field_name(name):
    """Raise a GrammarError unless name is a field-name that fits on a line."""
    parser.parse_complete(parser.get_field_name, name, 'field-name')
    # "Name: " must fit on the first line of the field.
    if len(name) + 2 > MAXLINELEN_HARD:
        raise errors.GrammarError('line-length', name, offset=0,
            message="field name of {} characters".format(len(name)))


class _ValueFormatter:

    """Fold a header value at its white space.

    Every run of white space in a canonical rendering is a legal FWS point,
    so the value is split into (fws, text) parts and lines are broken in front
    of an fws.  Higher level breaks (after ';' or ',') are preferred.
    """

    def __init__(self, headerlen, maxlen, splitchars=SPLITCHARS):
        self._maxlen = maxlen
        self._splitchars = splitchars
        self._lines = []
        self._current_line = _Accumulator(headerlen)

    def _str(self, linesep):
        self.newline()
        return linesep.join(self._lines)

    def __str__(self):
        return self._str(NL)

    def newline(self):
        if len(self._current_line) > 0:
            if self._current_line.is_onlyws() and self._lines:
                self._lines[-1] += str(self._current_line)
            else:
                self._lines.append(str(self._current_line))
        self._current_line.reset()

    def feed(self, fws, string):
        parts = re.split("(["+FWS+"]+)", fws+string)
        if parts[0]:
            parts[:0] = ['']
        else:
            parts.pop(0)
        for fws, part in zip(*[iter(parts)]*2):
            self._append_chunk(fws, part)

    def _append_chunk(self, fws, string):
        self._current_line.push(fws, string)
        # A break at an early ';' or ',' can carry over a remainder that is
        # itself too long.
        while len(self._current_line) > self._maxlen:
            if not self._split_current_line():
                break

    def _split_current_line(self):
        """Break the current line at its best split point.

        Return False if the line has no split point left.
        """
        # Work backward from the end.  There might be no split point on a
        # long first line.
        for ch in self._splitchars:
            for i in range(self._current_line.part_count()-1, 0, -1):
                if ch.isspace():
                    fws = self._current_line[i][0]
                    if fws and fws[0]==ch:
                        break
                prevpart = self._current_line[i-1][1]
                if prevpart and prevpart[-1]==ch:
                    break
            else:
                continue
            break
        else:
            fws, part = self._current_line.pop()
            if self._current_line._initial_size > 0:
                # There is a field name, so leave it on a line by itself.
                self.newline()
            self._current_line.push(fws, part)
            return False
        remainder = self._current_line.pop_from(i)
        self._lines.append(str(self._current_line))
        self._current_line.reset(remainder)
        return True


class _Accumulator(list):

    def __init__(self, initial_size=0):
        self._initial_size = initial_size
        super().__init__()

    def push(self, fws, string):
        self.append((fws, string))

    def pop_from(self, i=0):
        popped = self[i:]
        self[i:] = []
        return popped

    def pop(self):
        if self.part_count()==0:
            return ('', '')
        return super().pop()

    def __len__(self):
        return sum((len(fws)+len(part) for fws, part in self),
                   self._initial_size)

    def __str__(self):
        return EMPTYSTRING.join((EMPTYSTRING.join((fws, part))
                                for fws, part in self))

    def reset(self, startval=None):
        if startval is None:
            startval = []
        self[:] = startval
        self._initial_size = 0

    def is_onlyws(self):
        return self._initial_size==0 and (not self or str(self).isspace())

    def part_count(self):
        return super().__len__()


# Value views #

class Address(str):

    """A single mailbox.

    The string value is the canonical rendering: the addr-spec alone, or the
    display name (quoted when it is not a plain run of atoms) followed by the
    addr-spec in angle brackets.  display_name is None for a bare addr-spec.
    """

    def __new__(cls, display_name, local_part, domain):
        addr_spec = local_part
        if not parser.is_dot_atom_text(addr_spec):
            addr_spec = parser.quote_string(addr_spec)
        addr_spec += '@' + domain
        if display_name is None:
            value = addr_spec
        else:
            value = '{} <{}>'.format(_quote_phrase(display_name), addr_spec)
        self = str.__new__(cls, value)
        self._display_name = display_name
        self._local_part = local_part
        self._domain = domain
        self._addr_spec = addr_spec
        return self

    @classmethod
    def _from_mailbox(cls, mailbox):
        return cls(mailbox.display_name, mailbox.local_part, mailbox.domain)

    @property
    def display_name(self):
        return self._display_name

    @property
    def local_part(self):
        return self._local_part

    @property
    def domain(self):
        return self._domain

    @property
    def addr_spec(self):
        return self._addr_spec

    def __getnewargs__(self):
        return (self.display_name, self.local_part, self.domain)


class Group(str):

    """An element of an address list.

    Either a named group, possibly empty, or a lone mailbox, in which case
    display_name is None and addresses holds that one mailbox.
    """

    def __new__(cls, display_name, addresses):
        addresses = tuple(addresses)
        if display_name is None:
            if len(addresses) != 1:
                raise ValueError("a lone mailbox group needs exactly one "
                                 "address")
            value = str(addresses[0])
        else:
            value = '{}:{};'.format(_quote_phrase(display_name),
                ' ' + ', '.join(addresses) if addresses else '')
        self = str.__new__(cls, value)
        self._display_name = display_name
        self._addresses = addresses
        return self

    @property
    def display_name(self):
        return self._display_name

    @property
    def addresses(self):
        return self._addresses

    def __getnewargs__(self):
        return (self.display_name, self.addresses)


class MessageID(str):

    def __new__(cls, id_left, id_right):
        self = str.__new__(cls, '<{}@{}>'.format(id_left, id_right))
        self._id_left = id_left
        self._id_right = id_right
        return self

    @property
    def id_left(self):
        return self._id_left

    @property
    def id_right(self):
        return self._id_right

    def __getnewargs__(self):
        return (self.id_left, self.id_right)


# Header Classes #

class BaseHeader(str):

    """Base class for message headers.

    Implements generic behavior and provides tools for subclasses.

    A subclass must define a classmethod named 'parse' that takes a value and
    a dictionary as its arguments.  After the call the dictionary must contain
    the key 'canonical', set to the canonical rendering of the value, and the
    key 'parse_tree', set to the TokenList produced by the grammar.  parse
    raises GrammarError if the value does not match the field's grammar.

    The parse method may add additional keys to the dictionary.  In this case
    the subclass must define an 'init' method, which will be passed the
    dictionary as its keyword arguments.  The method should use (usually by
    setting them as the value of similarly named attributes) and remove all the
    extra keys added by its parse method, and then use super to call its parent
    class with the remaining arguments and keywords.

    The subclass should also define a 'max_count' attribute that is either
    None or 1, and a 'required' attribute.

    If 'source' is given, it is the value exactly as it appeared in a
    parsed message, starting right after the colon and including any folds;
    it is parsed instead of 'value' and kept so the field can be written back
    out unchanged.

    """

    max_count = None
    required = False

    def __new__(cls, name, value, *, source=None):
        if source is not None:
            value = source
        kwds = {}
        cls.parse(value, kwds)
        _check_line_length(kwds['canonical'])
        self = str.__new__(cls, kwds['canonical'])
        self.init(name, source=source, **kwds)
        return self

    def init(self, name, *, source, canonical, parse_tree):
        self._name = name
        self._source = source
        self._parse_tree = parse_tree

    @property
    def name(self):
        return self._name

    @property
    def source(self):
        return self._source

    @property
    def value(self):
        return str(self)

    @property
    def parse_tree(self):
        return self._parse_tree

    def fold(self, *, policy):
        """Return the complete field, CRLF terminated, as it should be written.

        If policy.preserve_source is true and the header came from a parsed
        message, the source text is reproduced exactly.  Otherwise the
        canonical value is folded to fit within policy.max_line_length where
        possible.

        """
        if self.source is not None and policy.preserve_source:
            return self.name + ':' + self.source + NL
        maxlen = policy.max_line_length or MAXLINELEN_HARD
        formatter = _ValueFormatter(len(self.name) + 1,
                                    min(maxlen, MAXLINELEN_HARD))
        formatter.feed(' ', str(self))
        return self.name + ':' + formatter._str(NL) + NL

    def __reduce__(self):
        return (
            _reconstruct_header,
            (
                self.__class__.__name__,
                self.__class__.__bases__,
                self.name,
                str(self),
                self.source,
            ),
            )


def _reconstruct_header(cls_name, bases, name, value, source):
    return type(cls_name, bases, {})(name, value, source=source)


def _parse_complete(getter, value, production):
    if not isinstance(value, str):
        raise TypeError("{} value must be a string, not {}".format(
            production, type(value).__name__))
    return parser.parse_complete(getter, value, production)


class UnstructuredHeader:

    max_count = None

    @classmethod
    def parse(cls, value, kwds):
        kwds['parse_tree'] = _parse_complete(parser.get_unstructured, value,
                                             'unstructured')
        kwds['canonical'] = kwds['parse_tree'].value


class UniqueUnstructuredHeader(UnstructuredHeader):

    max_count = 1


class DateHeader:

    """Header whose value consists of a single timestamp.

    Provides an additional attribute, datetime, which is either an aware
    datetime using a timezone, or a naive datetime if the timezone
    in the input string is -0000, or None for a year outside 1-9999.  Also
    accepts a datetime as input.
    The value is the canonical form of the timestamp: named zones become
    numeric, and an absent day-of-week or seconds field stays absent.
    """

    max_count = 1
    required = True

    @classmethod
    def parse(cls, value, kwds):
        if isinstance(value, datetime.datetime):
            value = utils.format_datetime(value)
        tree = _parse_complete(parser.get_date_time, value, 'date-time')
        kwds['parse_tree'] = tree
        kwds['datetime'] = tree.datetime
        kwds['canonical'] = tree.value

    def init(self, *args, **kw):
        self._datetime = kw.pop('datetime')
        super().init(*args, **kw)

    @property
    def datetime(self):
        return self._datetime


class AddressHeader:

    """Header whose value is an address-list (To, Cc, Reply-To)."""

    max_count = 1
    getter = staticmethod(parser.get_address_list)
    production = 'address-list'

    @classmethod
    def parse(cls, value, kwds):
        # We are translating here from the RFC language (address/mailbox)
        # to our API language (group/address).
        address_list = _parse_complete(cls.getter, value, cls.production)
        groups = []
        for addr in address_list.addresses:
            groups.append(Group(addr.display_name if addr.is_group else None,
                                [Address._from_mailbox(mb)
                                 for mb in addr.mailboxes]))
        kwds['parse_tree'] = address_list
        kwds['groups'] = groups
        kwds['canonical'] = ', '.join(groups)

    def init(self, *args, **kw):
        self._groups = tuple(kw.pop('groups'))
        self._addresses = tuple(self._flatten())
        super().init(*args, **kw)

    @property
    def groups(self):
        return self._groups

    @property
    def addresses(self):
        return self._addresses

    def _flatten(self):
        for group in self._groups:
            for address in group.addresses:
                yield address


class BccHeader(AddressHeader):

    """Bcc may be empty, or hold nothing but comments and white space."""

    getter = staticmethod(parser.get_optional_address_list)
    production = 'bcc'


class MailboxListHeader(AddressHeader):

    """Header whose value is a mailbox-list (From)."""

    required = True

    @classmethod
    def parse(cls, value, kwds):
        mailbox_list = _parse_complete(parser.get_mailbox_list, value,
                                       'mailbox-list')
        addresses = [Address._from_mailbox(mb)
                     for mb in mailbox_list.mailboxes]
        kwds['parse_tree'] = mailbox_list
        kwds['groups'] = [Group(None, [address]) for address in addresses]
        kwds['canonical'] = ', '.join(addresses)


class SingleAddressHeader(AddressHeader):

    """Header whose value is a single mailbox (Sender)."""

    @classmethod
    def parse(cls, value, kwds):
        mailbox = _parse_complete(parser.get_mailbox, value, 'mailbox')
        address = Address._from_mailbox(mailbox)
        kwds['parse_tree'] = mailbox
        kwds['groups'] = [Group(None, [address])]
        kwds['canonical'] = str(address)

    @property
    def address(self):
        return self.addresses[0]


class MessageIDHeader:

    max_count = 1

    @classmethod
    def parse(cls, value, kwds):
        msg_id = _parse_complete(parser.get_msg_id, value, 'msg-id')
        kwds['parse_tree'] = msg_id
        kwds['msg_id'] = MessageID(msg_id.id_left, msg_id.id_right)
        kwds['canonical'] = str(kwds['msg_id'])

    def init(self, *args, **kw):
        self._msg_id = kw.pop('msg_id')
        super().init(*args, **kw)

    @property
    def msg_id(self):
        return self._msg_id


class MessageIDListHeader:

    """Header whose value is one or more msg-ids (In-Reply-To, References)."""

    max_count = 1

    @classmethod
    def parse(cls, value, kwds):
        msg_id_list = _parse_complete(parser.get_msg_id_list, value,
                                      'msg-id-list')
        kwds['parse_tree'] = msg_id_list
        kwds['msg_ids'] = [MessageID(m.id_left, m.id_right)
                           for m in msg_id_list.msg_ids]
        kwds['canonical'] = ' '.join(kwds['msg_ids'])

    def init(self, *args, **kw):
        self._msg_ids = tuple(kw.pop('msg_ids'))
        super().init(*args, **kw)

    @property
    def msg_ids(self):
        return self._msg_ids


class KeywordsHeader:

    max_count = None

    @classmethod
    def parse(cls, value, kwds):
        keywords = _parse_complete(parser.get_keywords, value, 'keywords')
        kwds['parse_tree'] = keywords
        kwds['keywords'] = [phrase.value for phrase in keywords.phrases]
        kwds['canonical'] = ', '.join(_quote_phrase(keyword)
                                      for keyword in kwds['keywords'])

    def init(self, *args, **kw):
        self._keywords = tuple(kw.pop('keywords'))
        super().init(*args, **kw)

    @property
    def keywords(self):
        return self._keywords


# The header factory #

# In the order fields are placed in a new message.
_default_header_map = [
    ('Date',            DateHeader),
    ('From',            MailboxListHeader),
    ('Sender',          SingleAddressHeader),
    ('Reply-To',        AddressHeader),
    ('To',              AddressHeader),
    ('Cc',              AddressHeader),
    ('Bcc',             BccHeader),
    ('Message-ID',      MessageIDHeader),
    ('In-Reply-To',     MessageIDListHeader),
    ('References',      MessageIDListHeader),
    ('Subject',         UniqueUnstructuredHeader),
    ('Comments',        UnstructuredHeader),
    ('Keywords',        KeywordsHeader),
    ]

class HeaderFactory:

    """A header_factory and header registry."""

    def __init__(self, base_class=BaseHeader, default_class=UnstructuredHeader,
                       use_default_map=True):
        """Create a header_factory that works with the Policy API.

        base_class is the class that will be the last class in the created
        header class's __bases__ list.  default_class is the class that will be
        used if "name" (see __call__) does not appear in the registry; these
        are the optional fields.  use_default_map controls whether or not the
        default mapping of names to specialized classes is copied in to the
        registry when the factory is created.  The default is True.

        """
        self.registry = {}
        self.canonical_names = {}
        self.base_class = base_class
        self.default_class = default_class
        if use_default_map:
            for name, cls in _default_header_map:
                self.map_to_type(name, cls)

    def map_to_type(self, name, cls):
        """Register cls as the specialized class for handling "name" headers.

        The case of name as given here is the case used when the field is
        written out.

        """
        check_field_name(name)
        self.registry[name.lower()] = cls
        self.canonical_names[name.lower()] = name

    def __contains__(self, name):
        return name.lower() in self.registry

    def canonical_name(self, name):
        """Return name in its registered case, or unchanged if unregistered."""
        return self.canonical_names.get(name.lower(), name)

    def rank(self, name):
        """Return the position of name in the registry, or None."""
        try:
            return list(self.registry).index(name.lower())
        except ValueError:
            return None

    def __getitem__(self, name):
        cls = self.registry.get(name.lower(), self.default_class)
        return type('_'+cls.__name__, (cls, self.base_class), {})

    def __call__(self, name, value, *, source=None):
        """Create a header instance for header "name".

        Creates a header instance by creating a specialized class for parsing
        and representing the specified header by combining the factory
        base_class with a specialized class from the registry or the
        default_class, and passing the canonical name, value and source
        arguments to the constructed class's constructor.

        """
        return self[name](self.canonical_name(name), value, source=source)
