"""Header value parser implementing the RFC 5322 generation grammar.

The parsing methods defined in this module implement the non-obsolete rules of
RFC 5322.  Unlike a parser for inbound mail, which follows Postel's Law and
records deviations from the standard as defects, this parser is strict: input
that does not match the grammar is rejected with a GrammarError, and nothing
is silently repaired.  The one concession to the obsolete syntax is the named
time zones of obs-zone, which are accepted and turned into numeric offsets.

The general structure of the parser follows RFC 5322, and uses its terminology
where there is a direct correspondence.  It really helps to have a copy of RFC
5322 handy when studying this code.

Input to the parser is a string of 7-bit ASCII.  Unlike a parser that works on
already unfolded text, the FWS rule here understands the CRLF of a folded
line, so a header value can be parsed exactly as it appears in a message, and
the resulting tree reproduces it byte for byte.

The output of the parser is a TokenList object, which is a list subclass.  A
TokenList is a recursive data structure.  The terminal nodes of the structure
are Terminal objects, which are subclasses of str.  These do not correspond
directly to terminal objects in the formal grammar, but are instead more
practical higher level combinations of true terminals.

Comments and folding white space may appear between almost any two tokens.
They are not stored as siblings of the tokens they separate.  Instead each
TokenList carries them as attachments: 'pre_cfws' holds the CFWS matched in
front of the token and 'post_cfws' the CFWS matched after it.  Either may be
None.

All TokenList and Terminal objects have a 'value' attribute, which produces the
semantically meaningful value of that part of the parse subtree: quoted pairs
are unquoted, the CRLF of folds is removed, and comments are dropped.  The
value of a CFWS token is a single space.

The string value of a TokenList or Terminal is the exact text it was parsed
from, attachments included.  That is, for any parse,

    str(token) + remaining == input

Comment tokens also have a 'content' attribute providing the string found
between the parens (including any nested comments).

Each object in a parse tree is called a 'token', and each has a 'token_type'
attribute that gives the name from the RFC 5322 grammar that it represents.

"""

import calendar
import datetime
import re
from email_format import errors

#
# Useful constants and functions
#

WSP = set(' \t')
CFWS_LEADER = WSP | set('(\r')
SPECIALS = set(r'()<>[]:;@\,."')
PHRASE_ENDS = SPECIALS - set('"')

MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
DAY_NAMES = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

# obs-zone.  Military zones carry no reliable information (RFC 5322 4.3) and
# are not listed; they are read as -0000.
OBS_ZONES = {
    'UT': 0, 'GMT': 0,
    'EST': -5, 'EDT': -4,
    'CST': -6, 'CDT': -5,
    'MST': -7, 'MDT': -6,
    'PST': -8, 'PDT': -7,
    }

def quote_string(value):
    return '"'+str(value).replace('\\', '\\\\').replace('"', r'\"')+'"'

def is_dot_atom_text(value):
    return _dot_atom_text_matcher(value) is not None

def is_phrase_text(value):
    """Return True if value can be written as a run of atoms."""
    return all(is_dot_atom_text(x) and '.' not in x
               for x in value.split(' ')) if value else False

#
# TokenList and its subclasses
#

class TokenList(list):

    token_type = None

    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self.pre_cfws = None
        self.post_cfws = None

    def __str__(self):
        return ''.join([str(self.pre_cfws or '')] +
                       [str(x) for x in self] +
                       [str(self.post_cfws or '')])

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__,
                             super().__repr__())

    @property
    def value(self):
        return ''.join(x.value for x in self if x.value)

    @property
    def comments(self):
        res = []
        for token in [self.pre_cfws] + list(self) + [self.post_cfws]:
            if token is not None:
                res.extend(token.comments)
        return res


class CFWSList(TokenList):

    token_type = 'cfws'

    @property
    def value(self):
        return ' '

    @property
    def comments(self):
        return [x.content for x in self if x.token_type=='comment']


class Comment(TokenList):

    token_type = 'comment'

    def __str__(self):
        return '(' + ''.join(str(x) for x in self) + ')'

    @property
    def value(self):
        return ' '

    @property
    def content(self):
        return ''.join(str(x) for x in self)

    @property
    def comments(self):
        return [self.content]


class UnstructuredTokenList(TokenList):

    token_type = 'unstructured'

    @property
    def value(self):
        return ''.join(str(x) for x in self).replace('\r\n', '').strip(' \t')


class Atom(TokenList):

    token_type = 'atom'


class DotAtomText(TokenList):

    token_type = 'dot-atom-text'


class DotAtom(TokenList):

    token_type = 'dot-atom'


class BareQuotedString(TokenList):

    token_type = 'bare-quoted-string'

    def __str__(self):
        return '"' + ''.join(str(x) for x in self) + '"'

    @property
    def value(self):
        # Inside a quoted string white space is content; only the CRLF of a
        # fold is removed.
        return ''.join(x.unfolded if x.token_type == 'fws' else x.value
                       for x in self)


class QuotedString(TokenList):

    token_type = 'quoted-string'

    @property
    def content(self):
        return self[0].value

    @property
    def value(self):
        return self.content

    @property
    def quoted_value(self):
        return quote_string(self.content)


class Phrase(TokenList):

    token_type = 'phrase'

    @property
    def value(self):
        # Words are separated by a single space only where CFWS separated
        # them in the source.
        res = []
        for i, word in enumerate(self):
            if i and (self[i-1].post_cfws is not None or
                      word.pre_cfws is not None):
                res.append(' ')
            res.append(word.value)
        return ''.join(res)

    @property
    def words(self):
        return [x.value for x in self]

    @property
    def has_quoted_string(self):
        return any(x.token_type == 'quoted-string' for x in self)


class DisplayName(Phrase):

    token_type = 'display-name'

    @property
    def display_name(self):
        return self.value


class LocalPart(TokenList):

    token_type = 'local-part'

    @property
    def local_part(self):
        return self[0].value


class DomainLiteral(TokenList):

    token_type = 'domain-literal'

    @property
    def value(self):
        return '[' + ''.join(x for x in self if x.token_type == 'dtext') + ']'

    @property
    def domain(self):
        return self.value

    @property
    def ip(self):
        return self.value[1:-1]


class Domain(TokenList):

    token_type = 'domain'

    @property
    def domain(self):
        return self[0].value


class AddrSpec(TokenList):

    token_type = 'addr-spec'

    @property
    def local_part(self):
        return self[0].local_part

    @property
    def domain(self):
        return self[2].domain

    @property
    def value(self):
        return self.addr_spec

    @property
    def addr_spec(self):
        lp = self.local_part
        if not is_dot_atom_text(lp):
            lp = quote_string(lp)
        return lp + '@' + self.domain


class AngleAddr(TokenList):

    token_type = 'angle-addr'

    @property
    def local_part(self):
        return self[1].local_part

    @property
    def domain(self):
        return self[1].domain

    @property
    def addr_spec(self):
        return self[1].addr_spec

    @property
    def value(self):
        return '<' + self.addr_spec + '>'


class NameAddr(TokenList):

    token_type = 'name-addr'

    @property
    def display_name(self):
        if len(self) == 1:
            return None
        return self[0].display_name

    @property
    def local_part(self):
        return self[-1].local_part

    @property
    def domain(self):
        return self[-1].domain

    @property
    def addr_spec(self):
        return self[-1].addr_spec


class Mailbox(TokenList):

    token_type = 'mailbox'

    @property
    def display_name(self):
        if self[0].token_type == 'name-addr':
            return self[0].display_name

    @property
    def local_part(self):
        return self[0].local_part

    @property
    def domain(self):
        return self[0].domain

    @property
    def addr_spec(self):
        return self[0].addr_spec


class MailboxList(TokenList):

    token_type = 'mailbox-list'

    @property
    def mailboxes(self):
        return [x for x in self if x.token_type=='mailbox']


class GroupList(TokenList):

    token_type = 'group-list'

    @property
    def mailboxes(self):
        if not self or self[0].token_type != 'mailbox-list':
            return []
        return self[0].mailboxes


class Group(TokenList):

    token_type = "group"

    @property
    def mailboxes(self):
        if self[2].token_type != 'group-list':
            return []
        return self[2].mailboxes

    @property
    def display_name(self):
        return self[0].display_name


class Address(TokenList):

    token_type = 'address'

    @property
    def display_name(self):
        return self[0].display_name

    @property
    def is_group(self):
        return self[0].token_type == 'group'

    @property
    def mailboxes(self):
        if self[0].token_type == 'mailbox':
            return [self[0]]
        return self[0].mailboxes


class AddressList(TokenList):

    token_type = 'address-list'

    @property
    def addresses(self):
        return [x for x in self if x.token_type=='address']

    @property
    def mailboxes(self):
        return sum((x.mailboxes
                    for x in self if x.token_type=='address'), [])


class NoFoldLiteral(TokenList):

    token_type = 'no-fold-literal'

    @property
    def value(self):
        return ''.join(str(x) for x in self)


class MsgId(TokenList):

    token_type = 'msg-id'

    @property
    def id_left(self):
        return self[1].value

    @property
    def id_right(self):
        return self[3].value

    @property
    def value(self):
        return '<{}@{}>'.format(self.id_left, self.id_right)


class MsgIdList(TokenList):

    token_type = 'msg-id-list'

    @property
    def msg_ids(self):
        return [x for x in self if x.token_type == 'msg-id']


class KeywordList(TokenList):

    token_type = 'keywords'

    @property
    def phrases(self):
        return [x for x in self if x.token_type == 'phrase']


class DateTime(TokenList):

    """A date-time.

    The calendar fields are stored as they were found: 'day_name' and
    'second' are None when the source omitted them.  'offset' is a timedelta,
    or None for -0000 and military zones (no zone information).  'datetime'
    is None for a year that the datetime module cannot represent.

    """

    token_type = 'date-time'

    day_name = None
    day = month = year = hour = minute = None
    second = None
    offset = None

    @property
    def datetime(self):
        if not datetime.MINYEAR <= self.year <= datetime.MAXYEAR:
            return None
        tz = None
        if self.offset is not None:
            tz = datetime.timezone(self.offset)
        # datetime has no leap seconds.
        return datetime.datetime(self.year, self.month, self.day,
                                 self.hour, self.minute,
                                 min(self.second or 0, 59), tzinfo=tz)

    @property
    def zone(self):
        if self.offset is None:
            return '-0000'
        minutes = int(self.offset.total_seconds()) // 60
        sign = '-' if minutes < 0 else '+'
        return '{}{:02d}{:02d}'.format(sign, *divmod(abs(minutes), 60))

    @property
    def value(self):
        res = []
        if self.day_name is not None:
            res.append(self.day_name + ', ')
        res.append('{:02d} {} {:04d} {:02d}:{:02d}'.format(
            self.day, MONTH_NAMES[self.month-1], self.year,
            self.hour, self.minute))
        if self.second is not None:
            res.append(':{:02d}'.format(self.second))
        res.append(' ' + self.zone)
        return ''.join(res)


class FieldName(TokenList):

    token_type = 'field-name'


#
# Terminal classes and instances
#

class Terminal(str):

    def __new__(cls, value, token_type):
        self = super().__new__(cls, value)
        self.token_type = token_type
        return self

    def __repr__(self):
        return "{}({})".format(self.__class__.__name__, super().__repr__())

    @property
    def comments(self):
        return []


class WhiteSpaceTerminal(Terminal):

    @property
    def value(self):
        return ' '

    @property
    def unfolded(self):
        return str(self).replace('\r\n', '')


class ValueTerminal(Terminal):

    @property
    def value(self):
        return str(self)


class QuotedPairTerminal(Terminal):

    @property
    def value(self):
        return str(self)[1:]


DOT = ValueTerminal('.', 'dot')
ListSeparator = ValueTerminal(',', 'list-separator')

#
# Parser
#

"""Parse strings according to RFC 5322 rules.

This is a stateless parser.  Each get_XXX function accepts a string and
returns either a Terminal or a TokenList representing the RFC object named
by the method and a string containing the remaining unparsed characters
from the input.  Thus a parser method consumes the next syntactic construct
of a given type and returns a token representing the construct plus the
unparsed remainder of the input string.

For example, if the first element of a structured header is a 'phrase',
then:

    phrase, value = get_phrase(value)

returns the complete phrase from the start of the string value, plus any
characters left in the string after the phrase is removed.

When the input does not match, a GrammarError is raised whose 'remainder' is
the unparsed input at the point of failure.  Callers turn that into an offset.

"""

_fws_matcher = re.compile(r'(?:[ \t]*\r\n)?[ \t]+').match
_atext_matcher = re.compile(r"[A-Za-z0-9!#$%&'*+\-/=?^_`{|}~]+").match
_dot_atom_text_matcher = re.compile(
    r"[A-Za-z0-9!#$%&'*+\-/=?^_`{|}~]+(?:\.[A-Za-z0-9!#$%&'*+\-/=?^_`{|}~]+)*"
    r"\Z").match
_ctext_matcher = re.compile(r'[\x21-\x27\x2a-\x5b\x5d-\x7e]+').match
_qtext_matcher = re.compile(r'[\x21\x23-\x5b\x5d-\x7e]+').match
_dtext_matcher = re.compile(r'[\x21-\x5a\x5e-\x7e]+').match
_vchar_matcher = re.compile(r'[\x21-\x7e]+').match
_quoted_pair_matcher = re.compile(r'\\[\x21-\x7e \t]').match
_ftext_matcher = re.compile(r'[\x21-\x39\x3b-\x7e]+').match
_digits_matcher = re.compile(r'[0-9]+').match
_non_ascii_finder = re.compile(r'[^\x01-\x7f]').search

def _at_cfws(value):
    return bool(value) and value[0] in CFWS_LEADER and (
        value[0] == '(' or _fws_matcher(value) is not None)

def _first_match(value, production, *getters):
    """Return the result of the first getter that matches value.

    If none of them match, the failure that got furthest into value is
    raised, marked as having happened inside 'production'.
    """
    failures = []
    for getter in getters:
        try:
            return getter(value)
        except errors.GrammarError as err:
            failures.append(err)
    deepest = min(failures, key=lambda err: len(err.remainder))
    raise deepest.within(production)

def check_ascii(value):
    """Raise a GrammarError if value holds anything but 7-bit ASCII.

    NUL is not a CHAR either (RFC 5234 B.1).
    """
    m = _non_ascii_finder(value)
    if m:
        raise errors.GrammarError('CHAR', value[m.start():],
            message="non-ASCII or NUL character {!r}".format(m.group()))

def get_fws(value):
    """FWS = ([*WSP CRLF] 1*WSP)

    A CRLF is only part of FWS if it is followed by white space; that is what
    makes it a fold rather than the end of the header.

    """
    m = _fws_matcher(value)
    if not m:
        raise errors.GrammarError('FWS', value)
    fws = WhiteSpaceTerminal(m.group(), 'fws')
    return fws, value[m.end():]

def get_quoted_pair(value):
    """quoted-pair = ("\\" (VCHAR / WSP))

    """
    m = _quoted_pair_matcher(value)
    if not m:
        raise errors.GrammarError('quoted-pair', value)
    return QuotedPairTerminal(m.group(), 'quoted-pair'), value[2:]

def get_comment(value):
    """comment = "(" *([FWS] ccontent) [FWS] ")"
       ccontent = ctext / quoted-pair / comment

    Nested comments are handled with an explicit stack, so nesting depth is
    bounded only by the length of the input.
    """
    if not value or value[0] != '(':
        raise errors.GrammarError('comment', value)
    stack = [Comment()]
    value = value[1:]
    while True:
        if not value:
            raise errors.GrammarError('comment', value,
                message="end of input inside comment")
        if value[0] == ')':
            comment = stack.pop()
            value = value[1:]
            if not stack:
                return comment, value
            stack[-1].append(comment)
            continue
        if value[0] == '(':
            stack.append(Comment())
            value = value[1:]
            continue
        if value[0] in CFWS_LEADER:
            token, value = get_fws(value)
        elif value[0] == '\\':
            token, value = get_quoted_pair(value)
        else:
            m = _ctext_matcher(value)
            if not m:
                raise errors.GrammarError('ctext', value)
            token = ValueTerminal(m.group(), 'ctext')
            value = value[m.end():]
        stack[-1].append(token)

def get_cfws(value):
    """CFWS = (1*([FWS] comment) [FWS]) / FWS

    """
    cfws = CFWSList()
    while _at_cfws(value):
        if value[0] == '(':
            token, value = get_comment(value)
        else:
            token, value = get_fws(value)
        cfws.append(token)
    if not cfws:
        raise errors.GrammarError('CFWS', value)
    return cfws, value

def _get_optional_cfws(value):
    if _at_cfws(value):
        return get_cfws(value)
    return None, value

def get_bare_quoted_string(value):
    """bare-quoted-string = DQUOTE *([FWS] qcontent) [FWS] DQUOTE
       qcontent = qtext / quoted-pair

    A quoted-string without the leading or trailing CFWS.  Its value is the
    text between the quote marks, with white space preserved and quoted
    pairs decoded.
    """
    if not value or value[0] != '"':
        raise errors.GrammarError('quoted-string', value)
    bare_quoted_string = BareQuotedString()
    value = value[1:]
    while True:
        if not value:
            raise errors.GrammarError('quoted-string', value,
                message="end of input inside quoted-string")
        if value[0] == '"':
            return bare_quoted_string, value[1:]
        if value[0] in CFWS_LEADER and value[0] != '(':
            token, value = get_fws(value)
        elif value[0] == '\\':
            token, value = get_quoted_pair(value)
        else:
            m = _qtext_matcher(value)
            if not m:
                raise errors.GrammarError('qtext', value)
            token = ValueTerminal(m.group(), 'qtext')
            value = value[m.end():]
        bare_quoted_string.append(token)

def get_quoted_string(value):
    """quoted-string = [CFWS] <bare-quoted-string> [CFWS]

    'bare-quoted-string' is an intermediate class defined by this
    parser and not by the RFC grammar.  It is the quoted string
    without any attached CFWS.
    """
    quoted_string = QuotedString()
    quoted_string.pre_cfws, value = _get_optional_cfws(value)
    token, value = get_bare_quoted_string(value)
    quoted_string.append(token)
    quoted_string.post_cfws, value = _get_optional_cfws(value)
    return quoted_string, value

def get_atext(value):
    """atext = <matches _atext_matcher>

    """
    m = _atext_matcher(value)
    if not m:
        raise errors.GrammarError('atext', value)
    atext = ValueTerminal(m.group(), 'atext')
    return atext, value[m.end():]

def get_atom(value):
    """atom = [CFWS] 1*atext [CFWS]

    """
    atom = Atom()
    atom.pre_cfws, value = _get_optional_cfws(value)
    token, value = get_atext(value)
    atom.append(token)
    atom.post_cfws, value = _get_optional_cfws(value)
    return atom, value

def get_dot_atom_text(value):
    """ dot-atom-text = 1*atext *("." 1*atext)

    """
    dot_atom_text = DotAtomText()
    token, value = get_atext(value)
    dot_atom_text.append(token)
    while value and value[0] == '.':
        dot_atom_text.append(DOT)
        token, value = get_atext(value[1:])
        dot_atom_text.append(token)
    return dot_atom_text, value

def get_dot_atom(value):
    """ dot-atom = [CFWS] dot-atom-text [CFWS]

    """
    dot_atom = DotAtom()
    dot_atom.pre_cfws, value = _get_optional_cfws(value)
    token, value = get_dot_atom_text(value)
    dot_atom.append(token)
    dot_atom.post_cfws, value = _get_optional_cfws(value)
    return dot_atom, value

def get_word(value):
    """word = atom / quoted-string

    Either atom or quoted-string may start with CFWS.  We have to peel off this
    CFWS first to determine which type of word to parse.  Afterward we attach
    the leading CFWS, if any, to the parsed token.

    The token returned is either an Atom or a QuotedString, as appropriate.
    This means the 'word' level of the formal grammar is not represented in the
    parse tree; this is because having that extra layer when manipulating the
    parse tree is more confusing than it is helpful.

    """
    leader, value = _get_optional_cfws(value)
    if value and value[0] == '"':
        token, value = get_quoted_string(value)
    elif not value or value[0] in SPECIALS:
        raise errors.GrammarError('word', value)
    else:
        token, value = get_atom(value)
    token.pre_cfws = leader
    return token, value

def get_phrase(value):
    """ phrase = 1*word

    The obsolete form, which allows periods between words, is not accepted.

    """
    phrase = Phrase()
    token, value = get_word(value)
    phrase.append(token)
    while value and value[0] not in PHRASE_ENDS:
        token, value = get_word(value)
        phrase.append(token)
    return phrase, value

def get_unstructured(value):
    """unstructured = (*([FWS] VCHAR) *WSP)

    Because an 'unstructured' value must by definition constitute the entire
    value, this 'get' routine does not return a remaining value, only the
    parsed TokenList.  Control characters, DEL and bare CR or LF are not
    VCHAR and are rejected.

    """
    unstructured = UnstructuredTokenList()
    while value:
        m = _fws_matcher(value)
        if m:
            if '\r' in m.group() and not value[m.end():]:
                # Only WSP may trail; a fold must be followed by text.
                raise errors.GrammarError('VCHAR', value[m.end():],
                    message="fold at end of unstructured value"
                    ).within('unstructured')
            unstructured.append(WhiteSpaceTerminal(m.group(), 'fws'))
            value = value[m.end():]
            continue
        m = _vchar_matcher(value)
        if not m:
            raise errors.GrammarError('VCHAR', value).within('unstructured')
        unstructured.append(ValueTerminal(m.group(), 'vtext'))
        value = value[m.end():]
    return unstructured

def get_local_part(value):
    """ local-part = dot-atom / quoted-string

    """
    local_part = LocalPart()
    leader, value = _get_optional_cfws(value)
    if value and value[0] == '"':
        token, value = get_quoted_string(value)
    else:
        token, value = get_dot_atom(value)
    if leader is not None:
        token.pre_cfws = leader
    local_part.append(token)
    return local_part, value

def get_domain_literal(value):
    """ domain-literal = [CFWS] "[" *([FWS] dtext) [FWS] "]" [CFWS]

    """
    domain_literal = DomainLiteral()
    domain_literal.pre_cfws, value = _get_optional_cfws(value)
    if not value or value[0] != '[':
        raise errors.GrammarError('domain-literal', value)
    domain_literal.append(ValueTerminal('[', 'domain-literal-start'))
    value = value[1:]
    while True:
        if not value:
            raise errors.GrammarError('domain-literal', value,
                message="end of input inside domain-literal")
        if value[0] == ']':
            break
        if value[0] in CFWS_LEADER and value[0] != '(':
            token, value = get_fws(value)
        else:
            m = _dtext_matcher(value)
            if not m:
                raise errors.GrammarError('dtext', value)
            token = ValueTerminal(m.group(), 'dtext')
            value = value[m.end():]
        domain_literal.append(token)
    domain_literal.append(ValueTerminal(']', 'domain-literal-end'))
    domain_literal.post_cfws, value = _get_optional_cfws(value[1:])
    return domain_literal, value

def get_domain(value):
    """ domain = dot-atom / domain-literal

    """
    domain = Domain()
    leader, value = _get_optional_cfws(value)
    if value and value[0] == '[':
        token, value = get_domain_literal(value)
    else:
        token, value = get_dot_atom(value)
    if leader is not None:
        token.pre_cfws = leader
    domain.append(token)
    return domain, value

def get_addr_spec(value):
    """ addr-spec = local-part "@" domain

    """
    addr_spec = AddrSpec()
    try:
        token, value = get_local_part(value)
        addr_spec.append(token)
        if not value or value[0] != '@':
            raise errors.GrammarError('addr-spec', value,
                message="expected '@' after local-part")
        addr_spec.append(ValueTerminal('@', 'address-at-symbol'))
        token, value = get_domain(value[1:])
    except errors.GrammarError as err:
        raise err.within('addr-spec')
    addr_spec.append(token)
    return addr_spec, value

def get_angle_addr(value):
    """ angle-addr = [CFWS] "<" addr-spec ">" [CFWS]

    """
    angle_addr = AngleAddr()
    angle_addr.pre_cfws, value = _get_optional_cfws(value)
    if not value or value[0] != '<':
        raise errors.GrammarError('angle-addr', value)
    angle_addr.append(ValueTerminal('<', 'angle-addr-start'))
    try:
        token, value = get_addr_spec(value[1:])
    except errors.GrammarError as err:
        raise err.within('angle-addr')
    angle_addr.append(token)
    if not value or value[0] != '>':
        raise errors.GrammarError('angle-addr', value,
            message="expected '>' after addr-spec")
    angle_addr.append(ValueTerminal('>', 'angle-addr-end'))
    angle_addr.post_cfws, value = _get_optional_cfws(value[1:])
    return angle_addr, value

def get_display_name(value):
    """ display-name = phrase

    Because this is simply a name-rule, we don't return a display-name
    token containing a phrase, but rather a display-name token with
    the content of the phrase.

    """
    display_name = DisplayName()
    token, value = get_phrase(value)
    display_name.extend(token[:])
    return display_name, value

def get_name_addr(value):
    """ name-addr = [display-name] angle-addr

    """
    name_addr = NameAddr()
    # Both the optional display name and the angle-addr can start with cfws.
    leader, value = _get_optional_cfws(value)
    if not value:
        raise errors.GrammarError('name-addr', value)
    try:
        if value[0] != '<':
            token, value = get_display_name(value)
            token[0].pre_cfws = leader
            leader = None
            name_addr.append(token)
        token, value = get_angle_addr(value)
    except errors.GrammarError as err:
        raise err.within('name-addr')
    if leader is not None:
        token.pre_cfws = leader
    name_addr.append(token)
    return name_addr, value

def get_mailbox(value):
    """ mailbox = name-addr / addr-spec

    """
    # The only way to figure out if we are dealing with a name-addr or an
    # addr-spec is to try parsing each one.
    mailbox = Mailbox()
    token, value = _first_match(value, 'mailbox', get_name_addr, get_addr_spec)
    mailbox.append(token)
    return mailbox, value

def get_mailbox_list(value):
    """ mailbox-list = (mailbox *("," mailbox))

    The list ends at the first character after a mailbox that is not a
    comma; the caller decides whether what follows is acceptable.

    """
    mailbox_list = MailboxList()
    while True:
        try:
            token, value = get_mailbox(value)
        except errors.GrammarError as err:
            raise err.within('mailbox-list')
        mailbox_list.append(token)
        if not value or value[0] != ',':
            return mailbox_list, value
        mailbox_list.append(ListSeparator)
        value = value[1:]

def get_group_list(value):
    """ group-list = mailbox-list / CFWS

    """
    group_list = GroupList()
    if _at_cfws(value):
        leader, rest = get_cfws(value)
        if not rest or rest[0] == ';':
            group_list.pre_cfws = leader
            return group_list, rest
    token, value = get_mailbox_list(value)
    group_list.append(token)
    return group_list, value

def get_group(value):
    """ group = display-name ":" [group-list] ";" [CFWS]

    """
    group = Group()
    try:
        token, value = get_display_name(value)
        if not value or value[0] != ':':
            raise errors.GrammarError('group', value,
                message="expected ':' after group display-name")
        group.append(token)
        group.append(ValueTerminal(':', 'group-display-name-terminator'))
        value = value[1:]
        if value and value[0] != ';':
            token, value = get_group_list(value)
            group.append(token)
        else:
            group.append(GroupList())
        if not value or value[0] != ';':
            raise errors.GrammarError('group', value,
                message="expected ';' at end of group")
    except errors.GrammarError as err:
        raise err.within('group')
    group.append(ValueTerminal(';', 'group-terminator'))
    group.post_cfws, value = _get_optional_cfws(value[1:])
    return group, value

def get_address(value):
    """ address = mailbox / group

    Note that counter-intuitively, an address can be either a single address or
    a list of addresses (a group).  This is why the returned Address object has
    a 'mailboxes' attribute which treats a single address as a list of length
    one.  When you need to differentiate between to two cases, extract the single
    element, which is either a mailbox or a group token.

    """
    # mailbox and group start off very similarly.  It is only when you reach
    # one of @, <, or : that you know what you've got.  So, we try each one in
    # turn.
    address = Address()
    token, value = _first_match(value, 'address', get_mailbox, get_group)
    address.append(token)
    return address, value

def get_address_list(value):
    """ address-list = (address *("," address))

    The address-list always constitutes the entire value, so anything after
    an address other than a comma is an error.

    """
    address_list = AddressList()
    while True:
        try:
            token, value = get_address(value)
        except errors.GrammarError as err:
            raise err.within('address-list')
        address_list.append(token)
        if not value:
            return address_list, value
        if value[0] != ',':
            raise errors.GrammarError('address-list', value,
                message="expected ',' between addresses")
        address_list.append(ListSeparator)
        value = value[1:]

def get_optional_address_list(value):
    """ bcc = [address-list / CFWS]

    An empty value or one made only of CFWS produces an empty AddressList.

    """
    if not value:
        return AddressList(), value
    if _at_cfws(value):
        cfws, rest = get_cfws(value)
        if not rest:
            address_list = AddressList()
            address_list.pre_cfws = cfws
            return address_list, rest
    return get_address_list(value)

def get_no_fold_literal(value):
    """ no-fold-literal = "[" *dtext "]"

    """
    no_fold_literal = NoFoldLiteral()
    if not value or value[0] != '[':
        raise errors.GrammarError('no-fold-literal', value)
    no_fold_literal.append(ValueTerminal('[', 'no-fold-literal-start'))
    value = value[1:]
    m = _dtext_matcher(value)
    if m:
        no_fold_literal.append(ValueTerminal(m.group(), 'dtext'))
        value = value[m.end():]
    if not value or value[0] != ']':
        raise errors.GrammarError('no-fold-literal', value)
    no_fold_literal.append(ValueTerminal(']', 'no-fold-literal-end'))
    return no_fold_literal, value[1:]

def get_msg_id(value):
    """ msg-id = [CFWS] "<" id-left "@" id-right ">" [CFWS]
        id-left = dot-atom-text
        id-right = dot-atom-text / no-fold-literal

    """
    msg_id = MsgId()
    msg_id.pre_cfws, value = _get_optional_cfws(value)
    if not value or value[0] != '<':
        raise errors.GrammarError('msg-id', value)
    msg_id.append(ValueTerminal('<', 'msg-id-start'))
    try:
        token, value = get_dot_atom_text(value[1:])
        msg_id.append(token)
        if not value or value[0] != '@':
            raise errors.GrammarError('msg-id', value,
                message="expected '@' after id-left")
        msg_id.append(ValueTerminal('@', 'msg-id-at-symbol'))
        value = value[1:]
        if value and value[0] == '[':
            token, value = get_no_fold_literal(value)
        else:
            token, value = get_dot_atom_text(value)
        msg_id.append(token)
        if not value or value[0] != '>':
            raise errors.GrammarError('msg-id', value,
                message="expected '>' after id-right")
    except errors.GrammarError as err:
        raise err.within('msg-id')
    msg_id.append(ValueTerminal('>', 'msg-id-end'))
    msg_id.post_cfws, value = _get_optional_cfws(value[1:])
    return msg_id, value

def get_msg_id_list(value):
    """ in-reply-to = 1*msg-id
        references = 1*msg-id

    """
    msg_id_list = MsgIdList()
    while True:
        try:
            token, value = get_msg_id(value)
        except errors.GrammarError as err:
            raise err.within('msg-id-list')
        msg_id_list.append(token)
        if not value:
            return msg_id_list, value

def get_keywords(value):
    """ keywords = phrase *("," phrase)

    """
    keywords = KeywordList()
    while True:
        try:
            token, value = get_phrase(value)
        except errors.GrammarError as err:
            raise err.within('keywords')
        keywords.append(token)
        if not value:
            return keywords, value
        if value[0] != ',':
            raise errors.GrammarError('keywords', value,
                message="expected ',' between keywords")
        keywords.append(ListSeparator)
        value = value[1:]

def get_field_name(value):
    """ field-name = 1*ftext
        ftext = %d33-57 / %d59-126

    """
    m = _ftext_matcher(value)
    if not m:
        raise errors.GrammarError('field-name', value)
    return FieldName([ValueTerminal(m.group(), 'ftext')]), value[m.end():]

#
# date-time
#

def _get_digits(value, rule, min_count, max_count):
    m = _digits_matcher(value)
    if not m or not min_count <= len(m.group()) <= max_count:
        raise errors.GrammarError(rule, value)
    return ValueTerminal(m.group(), rule), value[m.end():]

def _get_name(value, rule, names):
    name = value[:3]
    for candidate in names:
        if name.lower() == candidate.lower():
            return ValueTerminal(name, rule), candidate, value[3:]
    raise errors.GrammarError(rule, value)

def get_day_of_week(value, date_time):
    """ day-of-week = ([FWS] day-name)
        day-name = "Mon" / "Tue" / "Wed" / "Thu" / "Fri" / "Sat" / "Sun"

    """
    if value and value[0] in CFWS_LEADER:
        token, value = get_fws(value)
        date_time.append(token)
    token, date_time.day_name, value = _get_name(value, 'day-name', DAY_NAMES)
    date_time.append(token)
    return value

def get_date(value, date_time):
    """ date = day month year
        day = ([FWS] 1*2DIGIT FWS)
        month = "Jan" / "Feb" / "Mar" / "Apr" / "May" / "Jun" /
                "Jul" / "Aug" / "Sep" / "Oct" / "Nov" / "Dec"
        year = (FWS 4*DIGIT FWS)

    """
    start = value
    if value and value[0] in CFWS_LEADER:
        token, value = get_fws(value)
        date_time.append(token)
    token, value = _get_digits(value, 'day', 1, 2)
    date_time.append(token)
    date_time.day = int(token)
    token, value = get_fws(value)
    date_time.append(token)
    token, month, value = _get_name(value, 'month', MONTH_NAMES)
    date_time.append(token)
    date_time.month = MONTH_NAMES.index(month) + 1
    token, value = get_fws(value)
    date_time.append(token)
    token, value = _get_digits(value, 'year', 4, len(value))
    date_time.append(token)
    date_time.year = int(token)
    token, value = get_fws(value)
    date_time.append(token)
    days = calendar.mdays[date_time.month]
    if date_time.month == 2 and calendar.isleap(date_time.year):
        days += 1
    if not 1 <= date_time.day <= days:
        raise errors.GrammarError('date', start,
            message="day is out of range for month")
    return value

def get_time_of_day(value, date_time):
    """ time-of-day = hour ":" minute [ ":" second ]
        hour = 2DIGIT, minute = 2DIGIT, second = 2DIGIT

    """
    start = value
    token, value = _get_digits(value, 'hour', 2, 2)
    date_time.append(token)
    date_time.hour = int(token)
    if not value or value[0] != ':':
        raise errors.GrammarError('time-of-day', value)
    date_time.append(ValueTerminal(':', 'time-separator'))
    token, value = _get_digits(value[1:], 'minute', 2, 2)
    date_time.append(token)
    date_time.minute = int(token)
    if value and value[0] == ':':
        date_time.append(ValueTerminal(':', 'time-separator'))
        token, value = _get_digits(value[1:], 'second', 2, 2)
        date_time.append(token)
        date_time.second = int(token)
    # 60 is a leap second.
    if (date_time.hour > 23 or date_time.minute > 59 or
            (date_time.second or 0) > 60):
        raise errors.GrammarError('time-of-day', start,
            message="time out of range")
    return value

def get_zone(value, date_time):
    """ zone = (FWS ( "+" / "-" ) 4DIGIT) / obs-zone

    obs-zone is accepted so that named zones can be read, but the zone is
    always rendered in numeric form.
    """
    token, value = get_fws(value)
    date_time.append(token)
    if value and value[0] in '+-':
        sign = value[0]
        token, rest = _get_digits(value[1:], 'zone', 4, 4)
        hours, minutes = int(token[:2]), int(token[2:])
        if minutes > 59:
            raise errors.GrammarError('zone', value,
                message="zone minutes out of range")
        date_time.append(ValueTerminal(sign + token, 'zone'))
        offset = datetime.timedelta(hours=hours, minutes=minutes)
        if sign == '-':
            if not offset:
                # -0000: no information about the local zone.
                return rest
            offset = -offset
        date_time.offset = offset
        return rest
    m = re.match(r'[A-Za-z]+', value)
    if not m:
        raise errors.GrammarError('zone', value)
    name = m.group().upper()
    if name in OBS_ZONES:
        date_time.offset = datetime.timedelta(hours=OBS_ZONES[name])
    elif len(name) != 1 or name == 'J':
        raise errors.GrammarError('zone', value)
    date_time.append(ValueTerminal(m.group(), 'obs-zone'))
    return value[m.end():]

def get_date_time(value):
    """ date-time = [ day-of-week "," ] date time [CFWS]
        time = time-of-day zone

    """
    date_time = DateTime()
    try:
        rest = value.lstrip(' \t\r\n')
        if rest[:1].isalpha():
            value = get_day_of_week(value, date_time)
            if not value or value[0] != ',':
                raise errors.GrammarError('day-of-week', value,
                    message="expected ',' after day-name")
            date_time.append(ValueTerminal(',', 'day-of-week-separator'))
            value = value[1:]
        value = get_date(value, date_time)
        value = get_time_of_day(value, date_time)
        value = get_zone(value, date_time)
    except errors.GrammarError as err:
        raise err.within('date-time')
    date_time.post_cfws, value = _get_optional_cfws(value)
    return date_time, value

#
# Entry point for complete values
#

def parse_complete(getter, value, production):
    """Parse all of value with getter and return the token.

    The whole value must match the production named by 'production';
    leftover input is an error.  The GrammarError raised on failure has its
    offset set relative to the start of value.

    """
    try:
        check_ascii(value)
        if getter is get_unstructured:
            return getter(value)
        token, rest = getter(value)
        if rest:
            raise errors.GrammarError(production, rest,
                message="unexpected text after {}: {!r}".format(
                    production, rest[:20]))
    except errors.GrammarError as err:
        raise err.within(production).locate(value)
    return token
