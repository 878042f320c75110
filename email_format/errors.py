"""email_format exception classes."""


class MessageError(Exception):
    """Base class for errors in the email_format package."""


class GrammarError(MessageError):

    """Input does not match the RFC 5322 grammar.

    'rule' names the deepest production that was being matched when the
    input was rejected, and 'productions' lists the productions enclosing it,
    outermost first.  'offset' is the position of the failure: relative to the
    whole document when parsing a message, relative to the value when a single
    header value is validated.  'remainder' is the unparsed input starting at
    the failure point.

    """

    def __init__(self, rule, remainder='', offset=None, message=None):
        self.rule = rule
        self.remainder = remainder
        self.offset = offset
        self.productions = ()
        self.message = message
        super().__init__(rule, remainder)

    def within(self, production):
        """Record that the failure happened inside 'production'."""
        if not self.productions or self.productions[0] != production:
            self.productions = (production,) + self.productions
        return self

    def locate(self, value, base=0):
        """Compute the offset of the failure within 'value'.

        'base' is the offset of 'value' in the enclosing input.  An offset that
        was already computed for an inner value is shifted by 'base'.
        """
        if self.offset is None:
            self.offset = len(value) - len(self.remainder)
        self.offset += base
        return self

    def __str__(self):
        found = self.remainder[:20]
        if len(self.remainder) > 20:
            found += '...'
        where = '' if self.offset is None else ' at offset {}'.format(
            self.offset)
        if self.message:
            return '{}{}: {}'.format(self.rule, where, self.message)
        return "expected {}{} but found {!r}".format(self.rule, where, found)


class MultiplicityError(GrammarError):
    """A header field is missing, duplicated or required by another field."""

    def __init__(self, name, message, offset=0):
        super().__init__(name.lower(), '', offset, message)
