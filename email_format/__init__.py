"""A package for building, checking and serializing RFC 5322 messages."""

__all__ = [
    'Email',
    'GrammarError',
    'MultiplicityError',
    'errors',
    'generator',
    'header',
    'message',
    'message_from_bytes',
    'message_from_string',
    'parser',
    'policy',
    'utils',
    ]

from email_format.errors import GrammarError, MultiplicityError
from email_format.message import Email


# Some convenience routines.  The parser is imported when first needed.
def message_from_string(s, *args, **kws):
    """Parse a string into an Email object model.

    Optional policy is passed to the Parser constructor.
    """
    from email_format.parser import Parser
    return Parser(*args, **kws).parsestr(s)

def message_from_bytes(s, *args, **kws):
    """Parse a bytes string into an Email object model.

    Optional policy is passed to the BytesParser constructor.
    """
    from email_format.parser import BytesParser
    return BytesParser(*args, **kws).parsebytes(s)
