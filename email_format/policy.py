"""Policy framework for the email_format package.

Allows fine grained control of how the package folds and emits data.
"""

from email_format import header

__all__ = [
    'Policy',
    'default',
    'canonical',
    'unfolded',
    ]


class _PolicyBase:

    """Policy Object basic framework.

    This class is useless unless subclassed.  A subclass should define
    class attributes with defaults for any values that are to be
    managed by the Policy object.  The constructor will then allow
    non-default values to be set for these attributes at instance
    creation time.  The clone method takes these same attributes as
    keyword arguments and returns a new instance identical to the
    original except for those values.  Instances may be added, yielding
    new instances with any non-default values from the right hand
    operand overriding those in the left hand operand.  That is,

        A + B == A.clone(<non-default values of B>)

    The repr of an instance can be used to reconstruct the object
    if and only if the repr of the values can be used to reconstruct
    those values.

    """

    def __init__(self, **kw):
        """Create new Policy, possibly overriding some defaults.

        See class docstring for a list of overridable attributes.

        """
        for name, value in kw.items():
            if hasattr(self, name):
                object.__setattr__(self, name, value)
            else:
                raise TypeError(
                    "{!r} is an invalid keyword argument for {}".format(
                        name, self.__class__.__name__))

    def __repr__(self):
        args = [ "{}={!r}".format(name, value)
                 for name, value in self.__dict__.items() ]
        return "{}({})".format(self.__class__.__name__, ', '.join(args))

    def clone(self, **kw):
        """Return a new instance with specified attributes changed.

        The new instance has the same attribute values as the current object,
        except for the changes passed in as keyword arguments.

        """
        newpolicy = self.__class__.__new__(self.__class__)
        for attr, value in self.__dict__.items():
            object.__setattr__(newpolicy, attr, value)
        for attr, value in kw.items():
            if not hasattr(self, attr):
                raise TypeError(
                    "{!r} is an invalid keyword argument for {}".format(
                        attr, self.__class__.__name__))
            object.__setattr__(newpolicy, attr, value)
        return newpolicy

    def __setattr__(self, name, value):
        if hasattr(self, name):
            msg = "{!r} object attribute {!r} is read-only"
        else:
            msg = "{!r} object has no attribute {!r}"
        raise AttributeError(msg.format(self.__class__.__name__, name))

    def __add__(self, other):
        """Non-default values from right operand override those from left.

        The object returned is a new instance of the subclass.

        """
        return self.clone(**other.__dict__)


class Policy(_PolicyBase):

    """Controls for how messages are formatted.

    Email objects, the parser and the generator accept Policy objects as
    parameters.  A Policy object contains a set of values that control how
    output is rendered.  For example, 'max_line_length' controls where long
    header lines are folded when a message is serialized.

    Any valid attribute may be overridden when a Policy is created by
    passing it as a keyword argument to the constructor.  Policy
    objects are immutable, but a new Policy object can be created
    with only certain values changed by calling the clone method with
    keyword arguments.  Policy objects can also be added,
    producing a new Policy object in which the non-default attributes
    set in the right hand operand overwrite those specified in the
    left operand.

    Settable attributes:

    max_line_length     -- maximum length of header lines, excluding the
                           CRLF, during serialization.  None or 0 means no
                           folding is done beyond what is needed to keep
                           lines within the RFC 5322 limit of 998
                           characters.  Default is 78.

    preserve_source     -- if true (the default), a header that came from a
                           parsed message and has not been replaced is
                           written out exactly as it was read.  If false,
                           every header is written in canonical form.

    header_factory      -- a callable that can be used to create a new header
                           object given a name and a value.  See the header
                           documentation for details on the expected API.

    Methods:

    make_header(name, value, source=None)
        intended to be called by code that builds or parses a message.
        source is the value exactly as obtained from the source, if any.

    """

    max_line_length = 78
    preserve_source = True
    header_factory = header.HeaderFactory()

    def __init__(self, **kw):
        if 'header_factory' not in kw:
            object.__setattr__(self, 'header_factory', header.HeaderFactory())
        _PolicyBase.__init__(self, **kw)

    def make_header(self, name, value, source=None):
        """Return a header object for name holding the parsed value.

        The header_factory is called with these parameters.  GrammarError is
        raised if the value does not match the grammar of the field.

        """
        return self.header_factory(name, value, source=source)

default = Policy()
# Make the default Policy use the class default.
del default.header_factory
canonical = default.clone(preserve_source=False)
unfolded = default.clone(max_line_length=None)
